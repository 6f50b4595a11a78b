"""
User DAO - операции с пользователями

Работает ТОЛЬКО с таблицей users:
- язык и профиль из Telegram
- время уведомлений
"""

import logging
from typing import Any, Dict, List, Optional

import asyncpg

from intentions_bot.core.exceptions import UserNotFoundError

from .service import DatabaseService

logger = logging.getLogger(__name__)

# Колонки времени, которые можно менять командами
TIME_FIELDS = ('reminder_time', 'evening_time', 'monthly_time', 'weekly_time')

USER_COLUMNS = """
    id, telegram_id, language, first_name, last_name, username,
    reminder_time, evening_time, monthly_time, weekly_time,
    is_admin, created_at
"""


class UserDAO:
    """Data Access Object для работы с пользователями"""

    def __init__(self, db_service: DatabaseService):
        self.db = db_service

    async def get_user_by_telegram_id(self, telegram_id: int) -> Optional[Dict[str, Any]]:
        query = f"SELECT {USER_COLUMNS} FROM users WHERE telegram_id = $1"

        row = await self.db.fetch_one(query, int(telegram_id))
        if row:
            logger.debug(f"👤 User found: {telegram_id}")
            return dict(row)

        logger.debug(f"👤 User not found: {telegram_id}")
        return None

    async def upsert_language(
        self,
        telegram_id: int,
        language: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        username: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Создать пользователя или обновить язык и профиль"""

        query = f"""
        INSERT INTO users (telegram_id, language, first_name, last_name, username)
        VALUES ($1, $2, $3, $4, $5)
        ON CONFLICT (telegram_id) DO UPDATE SET
            language = EXCLUDED.language,
            first_name = EXCLUDED.first_name,
            last_name = EXCLUDED.last_name,
            username = EXCLUDED.username
        RETURNING {USER_COLUMNS}
        """

        try:
            row = await self.db.fetch_one(query, int(telegram_id), language, first_name, last_name, username)
            logger.info(f"✅ User {telegram_id} language set to {language}")
            return dict(row)
        except asyncpg.PostgresError as e:
            logger.error(f"❌ Error upserting user {telegram_id}: {e}")
            raise

    async def update_profile(
        self,
        telegram_id: int,
        first_name: Optional[str],
        last_name: Optional[str],
        username: Optional[str],
    ) -> bool:
        """Обновить имя из Telegram, только если оно изменилось"""

        query = """
        UPDATE users SET first_name = $2, last_name = $3, username = $4
        WHERE telegram_id = $1
          AND (first_name IS DISTINCT FROM $2
               OR last_name IS DISTINCT FROM $3
               OR username IS DISTINCT FROM $4)
        """

        result = await self.db.execute(query, int(telegram_id), first_name, last_name, username)
        updated = result.endswith(" 1")
        if updated:
            logger.debug(f"👤 Profile refreshed for {telegram_id}")
        return updated

    async def update_time(self, telegram_id: int, field: str, value: str) -> Dict[str, Any]:
        """Изменить время уведомления (reminder_time, evening_time, ...)"""

        if field not in TIME_FIELDS:
            raise ValueError(f"Unknown time field: {field}")

        query = f"UPDATE users SET {field} = $2 WHERE telegram_id = $1 RETURNING {USER_COLUMNS}"

        row = await self.db.fetch_one(query, int(telegram_id), value)
        if not row:
            raise UserNotFoundError(telegram_id)

        logger.info(f"⏰ User {telegram_id} {field} -> {value}")
        return dict(row)

    async def get_users_by_time(self, field: str, value: str) -> List[Dict[str, Any]]:
        """Пользователи, у которых настроено время value для field"""

        if field not in TIME_FIELDS:
            raise ValueError(f"Unknown time field: {field}")

        query = f"SELECT {USER_COLUMNS} FROM users WHERE {field} = $1 ORDER BY id"
        rows = await self.db.fetch_all(query, value)
        return [dict(row) for row in rows]

    async def get_all_telegram_ids(self) -> List[int]:
        rows = await self.db.fetch_all("SELECT telegram_id FROM users ORDER BY id")
        return [row['telegram_id'] for row in rows]

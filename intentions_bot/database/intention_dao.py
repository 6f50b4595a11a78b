"""
Intention DAO - намерения, их дата и категория

Все операции с id намерения проверяют владельца: чужой или удалённый id
ведёт себя как отсутствующий.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import asyncpg

from intentions_bot.crypto import EncryptedPayload

from .service import DatabaseService

logger = logging.getLogger(__name__)

INTENTION_SELECT = """
    SELECT i.id, i.user_id, i.ciphertext_b64, i.iv_b64, i.auth_tag_b64,
           i.category_id, c.name AS category_name, d.date, i.created_at
    FROM intentions i
    LEFT JOIN intention_dates d ON d.intention_id = i.id
    LEFT JOIN categories c ON c.id = i.category_id
"""


def _affected(status: str) -> int:
    """'DELETE 1' -> 1"""
    try:
        return int(status.split()[-1])
    except (AttributeError, ValueError, IndexError):
        return 0


class IntentionDAO:
    """Data Access Object для намерений"""

    def __init__(self, db_service: DatabaseService):
        self.db = db_service

    async def create(
        self,
        user_id: int,
        payload: EncryptedPayload,
        category_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        query = """
        INSERT INTO intentions (user_id, ciphertext_b64, iv_b64, auth_tag_b64, category_id)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING id, user_id, category_id, created_at
        """

        try:
            row = await self.db.fetch_one(
                query, user_id, payload.ciphertext_b64, payload.iv_b64, payload.auth_tag_b64, category_id
            )
            logger.info(f"✅ Intention {row['id']} created for user {user_id}")
            return dict(row)
        except asyncpg.PostgresError as e:
            logger.error(f"❌ Error creating intention for user {user_id}: {e}")
            raise

    async def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        query = f"{INTENTION_SELECT} WHERE i.user_id = $1 ORDER BY d.date NULLS LAST, i.created_at"
        rows = await self.db.fetch_all(query, user_id)
        return [dict(row) for row in rows]

    async def get_for_user(self, user_id: int, intention_id: int) -> Optional[Dict[str, Any]]:
        query = f"{INTENTION_SELECT} WHERE i.id = $1 AND i.user_id = $2"
        row = await self.db.fetch_one(query, intention_id, user_id)
        return dict(row) if row else None

    async def update_text(self, user_id: int, intention_id: int, payload: EncryptedPayload) -> bool:
        """Заменить текст на месте: id, дата и категория не меняются"""

        query = """
        UPDATE intentions SET ciphertext_b64 = $3, iv_b64 = $4, auth_tag_b64 = $5
        WHERE id = $1 AND user_id = $2
        """
        result = await self.db.execute(
            query, intention_id, user_id, payload.ciphertext_b64, payload.iv_b64, payload.auth_tag_b64
        )
        return _affected(result) == 1

    async def delete(self, user_id: int, intention_id: int) -> bool:
        result = await self.db.execute(
            "DELETE FROM intentions WHERE id = $1 AND user_id = $2", intention_id, user_id
        )
        deleted = _affected(result) == 1
        if deleted:
            logger.info(f"🗑️ Intention {intention_id} deleted by user {user_id}")
        return deleted

    async def set_date(self, user_id: int, intention_id: int, day: date) -> bool:
        """Заменить единственную дату намерения (delete + insert в одной транзакции)"""

        try:
            async with self.db.transaction() as conn:
                owned = await conn.fetchval(
                    "SELECT id FROM intentions WHERE id = $1 AND user_id = $2 FOR UPDATE",
                    intention_id, user_id
                )
                if not owned:
                    return False

                await conn.execute("DELETE FROM intention_dates WHERE intention_id = $1", intention_id)
                await conn.execute(
                    "INSERT INTO intention_dates (intention_id, date) VALUES ($1, $2)",
                    intention_id, day
                )

            logger.info(f"📅 Intention {intention_id} date set to {day.isoformat()}")
            return True

        except asyncpg.PostgresError as e:
            logger.error(f"❌ Error setting date for intention {intention_id}: {e}")
            raise

    async def set_category(self, user_id: int, intention_id: int, category_id: int) -> bool:
        """Привязать категорию; и намерение, и категория должны быть пользователя"""

        query = """
        UPDATE intentions SET category_id = $3
        WHERE id = $1 AND user_id = $2
          AND EXISTS (SELECT 1 FROM categories WHERE id = $3 AND user_id = $2)
        """
        result = await self.db.execute(query, intention_id, user_id, category_id)
        return _affected(result) == 1

    async def list_by_date(self, user_id: int, day: date) -> List[Dict[str, Any]]:
        query = f"{INTENTION_SELECT} WHERE i.user_id = $1 AND d.date = $2 ORDER BY i.created_at"
        rows = await self.db.fetch_all(query, user_id, day)
        return [dict(row) for row in rows]

    async def list_by_category(self, user_id: int, category_id: int) -> List[Dict[str, Any]]:
        query = f"{INTENTION_SELECT} WHERE i.user_id = $1 AND i.category_id = $2 ORDER BY i.created_at"
        rows = await self.db.fetch_all(query, user_id, category_id)
        return [dict(row) for row in rows]

    async def list_in_range(self, user_id: int, start: date, end: date) -> List[Dict[str, Any]]:
        """Намерения с датой в диапазоне [start, end]"""
        query = f"{INTENTION_SELECT} WHERE i.user_id = $1 AND d.date BETWEEN $2 AND $3 ORDER BY d.date"
        rows = await self.db.fetch_all(query, user_id, start, end)
        return [dict(row) for row in rows]

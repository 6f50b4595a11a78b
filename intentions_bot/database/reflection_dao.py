"""
Reflection DAO - рефлексии (текст + фото), одна строка на завершённую рефлексию
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import asyncpg

from intentions_bot.crypto import EncryptedPayload

from .service import DatabaseService

logger = logging.getLogger(__name__)


class ReflectionDAO:
    """Data Access Object для рефлексий"""

    def __init__(self, db_service: DatabaseService):
        self.db = db_service

    async def create(
        self,
        user_id: int,
        payload: EncryptedPayload,
        photo_file_ids: List[str],
        day: date,
        intention_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        query = """
        INSERT INTO reflections (
            user_id, intention_id, ciphertext_b64, iv_b64, auth_tag_b64, photo_file_ids, date
        ) VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING id, user_id, intention_id, photo_file_ids, date, created_at
        """

        try:
            row = await self.db.fetch_one(
                query,
                user_id,
                intention_id,
                payload.ciphertext_b64,
                payload.iv_b64,
                payload.auth_tag_b64,
                list(photo_file_ids),
                day,
            )
            logger.info(f"📝 Reflection {row['id']} saved for user {user_id} ({len(photo_file_ids)} photos)")
            return dict(row)
        except asyncpg.PostgresError as e:
            logger.error(f"❌ Error saving reflection for user {user_id}: {e}")
            raise

    async def list_for_user(self, user_id: int, limit: int = 20) -> List[Dict[str, Any]]:
        """Последние рефлексии, от старых к новым"""

        query = """
        SELECT * FROM (
            SELECT id, user_id, intention_id, ciphertext_b64, iv_b64, auth_tag_b64,
                   photo_file_ids, date, created_at
            FROM reflections
            WHERE user_id = $1
            ORDER BY date DESC, created_at DESC
            LIMIT $2
        ) recent
        ORDER BY date, created_at
        """
        rows = await self.db.fetch_all(query, user_id, limit)
        return [dict(row) for row in rows]

    async def count_in_range(self, user_id: int, start: date, end: date) -> int:
        count = await self.db.fetch_value(
            "SELECT COUNT(*) FROM reflections WHERE user_id = $1 AND date BETWEEN $2 AND $3",
            user_id, start, end
        )
        return int(count or 0)

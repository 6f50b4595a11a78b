"""
Category DAO - категории пользователя, (user_id, name) уникальны
"""

import logging
from typing import Any, Dict, List, Optional

from .service import DatabaseService

logger = logging.getLogger(__name__)


class CategoryDAO:
    """Data Access Object для категорий"""

    def __init__(self, db_service: DatabaseService):
        self.db = db_service

    async def get_or_create(self, user_id: int, name: str) -> Dict[str, Any]:
        """Создать категорию или вернуть существующую с тем же именем"""

        # DO UPDATE вместо DO NOTHING, чтобы RETURNING вернул существующую строку
        query = """
        INSERT INTO categories (user_id, name) VALUES ($1, $2)
        ON CONFLICT (user_id, name) DO UPDATE SET name = EXCLUDED.name
        RETURNING id, user_id, name
        """
        row = await self.db.fetch_one(query, user_id, name.strip())
        logger.debug(f"🏷️ Category {row['id']} ready for user {user_id}")
        return dict(row)

    async def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        rows = await self.db.fetch_all(
            "SELECT id, user_id, name FROM categories WHERE user_id = $1 ORDER BY name", user_id
        )
        return [dict(row) for row in rows]

    async def get_for_user(self, user_id: int, category_id: int) -> Optional[Dict[str, Any]]:
        row = await self.db.fetch_one(
            "SELECT id, user_id, name FROM categories WHERE id = $1 AND user_id = $2",
            category_id, user_id
        )
        return dict(row) if row else None

"""
Notification DAO - дедупликация запланированных уведомлений

claim() вставляет запись и держит транзакцию открытой, пока идёт отправка.
Если отправка падает, запись откатывается и уведомление уйдёт в следующий раз.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional

from .service import DatabaseService

logger = logging.getLogger(__name__)


class NotificationDAO:
    """Data Access Object для записей об отправленных уведомлениях"""

    def __init__(self, db_service: DatabaseService):
        self.db = db_service

    @asynccontextmanager
    async def claim(
        self,
        user_id: int,
        notification_type: str,
        key_date: date,
        intention_id: Optional[int] = None,
    ):
        """
        Занять уведомление

        Yields:
            True, если уведомление ещё не отправлялось и его нужно отправить
        """
        query = """
        INSERT INTO notifications (user_id, type, key_date, intention_id)
        VALUES ($1, $2, $3, $4)
        ON CONFLICT DO NOTHING
        RETURNING id
        """

        async with self.db.transaction() as conn:
            claimed = await conn.fetchval(query, user_id, notification_type, key_date, intention_id)
            if not claimed:
                logger.debug(f"🔁 {notification_type} for user {user_id} on {key_date} already sent")
            yield bool(claimed)

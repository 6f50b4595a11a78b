"""
State Logger Middleware - логирование режимов диалога

Middleware для отслеживания режима сессии до и после обработки события.
Полезно для отладки пользовательских потоков.
"""

import logging
import time
from typing import Callable, Dict, Any, Awaitable, Optional

from aiogram import BaseMiddleware
from aiogram.types import Message, CallbackQuery

logger = logging.getLogger(__name__)


class StateLoggerMiddleware(BaseMiddleware):
    """
    Middleware для логирования режимов диалога

    Логирует:
    - Тип события и текущий режим до выполнения handler
    - Новый режим и время обработки после handler
    """

    def __init__(self, sessions):
        """
        Args:
            sessions: SessionStore, из которого читается режим чата
        """
        self.sessions = sessions

    async def _mode(self, chat_id: Optional[int], user_id: Optional[int]) -> Optional[str]:
        if chat_id is None or user_id is None:
            return None
        session = await self.sessions.load(chat_id, user_id)
        return type(session.mode).__name__

    async def __call__(
        self,
        handler: Callable[[Message | CallbackQuery, Dict[str, Any]], Awaitable[Any]],
        event: Message | CallbackQuery,
        data: Dict[str, Any]
    ) -> Any:
        user_id = event.from_user.id if getattr(event, 'from_user', None) else None

        if isinstance(event, CallbackQuery):
            chat_id = event.message.chat.id if event.message else None
            kind = "button"
        else:
            chat_id = event.chat.id
            kind = "photo" if event.photo else "text"

        mode_before = await self._mode(chat_id, user_id)
        logger.debug(f"📨 Event [BEFORE]: chat={chat_id}, kind={kind}, mode={mode_before}")

        started = time.monotonic()
        result = await handler(event, data)
        elapsed_ms = (time.monotonic() - started) * 1000

        mode_after = await self._mode(chat_id, user_id)
        if mode_after != mode_before:
            logger.debug(f"✨ Mode [CHANGED]: chat={chat_id}, {mode_before} → {mode_after} ({elapsed_ms:.0f}ms)")
        else:
            logger.debug(f"📨 Event [AFTER]: chat={chat_id}, mode={mode_after} ({elapsed_ms:.0f}ms)")

        return result

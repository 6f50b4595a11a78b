"""
Callback Handlers - нажатия inline кнопок

Callback data разбирается в DialogueController; здесь только
событие и снятие "часиков" с кнопки.
"""

import logging
from aiogram.types import CallbackQuery

from intentions_bot.dialogue import ButtonEvent

from .command_handlers import user_ref

logger = logging.getLogger(__name__)


class CallbackHandlers:
    """Обработчик callback кнопок"""

    @staticmethod
    async def handle_button(callback: CallbackQuery, dialogue):
        if callback.message is None:
            # Сообщение с кнопкой слишком старое
            await callback.answer()
            return

        try:
            await dialogue.handle(ButtonEvent(
                chat_id=callback.message.chat.id,
                user=user_ref(callback.from_user),
                data=callback.data or '',
            ))
        finally:
            await callback.answer()

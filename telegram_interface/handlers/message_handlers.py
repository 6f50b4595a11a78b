"""
Message Handlers - текст и фото пользователя
"""

import logging
from aiogram.types import Message

from intentions_bot.dialogue import PhotoEvent, TextEvent

from .command_handlers import user_ref

logger = logging.getLogger(__name__)


class MessageHandlers:
    """Обработчики обычных сообщений"""

    @staticmethod
    async def handle_text(message: Message, dialogue):
        await dialogue.handle(TextEvent(
            chat_id=message.chat.id,
            user=user_ref(message.from_user),
            text=message.text or '',
        ))

    @staticmethod
    async def handle_photo(message: Message, dialogue):
        """Фото: берём самый большой размер"""
        largest = message.photo[-1]
        logger.debug(f"📷 Photo from chat {message.chat.id}: {largest.width}x{largest.height}")
        await dialogue.handle(PhotoEvent(
            chat_id=message.chat.id,
            user=user_ref(message.from_user),
            file_id=largest.file_id,
            caption=message.caption,
        ))

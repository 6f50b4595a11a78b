"""
Aiogram Channel - отправка ответов диалога через Bot API

Переводит InlineKeyboard / ReplyKeyboard диалога в разметку aiogram.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from aiogram import Bot
from aiogram.types import (
    FSInputFile,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from intentions_bot.dialogue.channel import InlineKeyboard, Keyboard, ReplyKeyboard

logger = logging.getLogger(__name__)

Markup = Union[InlineKeyboardMarkup, ReplyKeyboardMarkup]


def to_markup(keyboard: Optional[Keyboard]) -> Optional[Markup]:
    """Клавиатура диалога -> reply_markup aiogram"""
    if keyboard is None:
        return None

    if isinstance(keyboard, InlineKeyboard):
        return InlineKeyboardMarkup(inline_keyboard=[
            [InlineKeyboardButton(text=button.text, callback_data=button.data) for button in row]
            for row in keyboard.rows
        ])

    if isinstance(keyboard, ReplyKeyboard):
        return ReplyKeyboardMarkup(
            keyboard=[[KeyboardButton(text=label) for label in row] for row in keyboard.rows],
            resize_keyboard=True,
        )

    raise TypeError(f"Unsupported keyboard type: {type(keyboard).__name__}")


class AiogramChannel:
    """MessageChannel поверх aiogram Bot, все сообщения в HTML"""

    def __init__(self, bot: Bot, parse_mode: str = 'HTML'):
        self.bot = bot
        self.parse_mode = parse_mode

    async def send_text(self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None) -> None:
        await self.bot.send_message(
            chat_id,
            text,
            reply_markup=to_markup(keyboard),
            parse_mode=self.parse_mode,
        )

    async def send_photo(
        self,
        chat_id: int,
        photo: str,
        caption: Optional[str] = None,
        keyboard: Optional[Keyboard] = None,
    ) -> None:
        # Локальный файл (приветственная картинка) или Telegram file_id
        source = FSInputFile(photo) if Path(photo).is_file() else photo
        await self.bot.send_photo(
            chat_id,
            source,
            caption=caption,
            reply_markup=to_markup(keyboard),
            parse_mode=self.parse_mode,
        )

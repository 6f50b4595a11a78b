"""
Handlers - адаптеры aiogram -> события диалога

Модули:
- command_handlers: /start и остальные команды
- message_handlers: текст и фото
- callback_handlers: inline кнопки
"""

from .command_handlers import CommandHandlers, user_ref
from .message_handlers import MessageHandlers
from .callback_handlers import CallbackHandlers

__all__ = [
    "CommandHandlers",
    "MessageHandlers",
    "CallbackHandlers",
    "user_ref",
]

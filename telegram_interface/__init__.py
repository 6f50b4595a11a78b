"""
Telegram Interface - aiogram слой бота намерений

Архитектура:
- controller: композиция и точка входа
- lifecycle: instance lock, запуск, graceful shutdown
- handlers: адаптеры aiogram -> события диалога
- middleware: логирование режимов диалога
- channel: отправка ответов через Bot API
- handler_registry: регистрация handlers с DI
- config: FSM storage и instance lock
"""

from .channel import AiogramChannel, to_markup
from .handler_registry import HandlerRegistry
from .lifecycle import BotInstanceLock, BotLifecycle
from .middleware import StateLoggerMiddleware

__all__ = [
    "AiogramChannel",
    "to_markup",
    "HandlerRegistry",
    "BotInstanceLock",
    "BotLifecycle",
    "StateLoggerMiddleware",
]

"""
Intentions Bot Messages

Централизованные тексты бота:
- en / uk локали, fallback на en
- HTML форматирование для Telegram
- Jinja2 шаблоны с переменными
- статические inline клавиатуры
"""

from typing import Optional

from .constants import MessageConstants
from .formatters import TelegramFormatter
from .service import MessageService
from .validators import MessageValidator, ValidationResult

_message_service: Optional[MessageService] = None


def get_message_service(debug_mode: bool = False) -> MessageService:
    """Получить синглтон MessageService"""
    global _message_service
    if _message_service is None:
        _message_service = MessageService(debug_mode=debug_mode)
    else:
        _message_service.debug_mode = debug_mode
    return _message_service


__all__ = [
    'MessageService',
    'MessageValidator',
    'ValidationResult',
    'TelegramFormatter',
    'MessageConstants',
    'get_message_service',
]

"""
Telegram Formatters

Безопасное форматирование пользовательского текста для HTML режима Telegram
"""

import html
import re
from typing import Iterable

from .constants import MessageConstants


class TelegramFormatter:
    """Форматтер для Telegram сообщений"""

    def __init__(self):
        self.constants = MessageConstants()

    def escape_html(self, text) -> str:
        """Экранирование пользовательского текста (<, >, &)"""
        if text is None:
            return ""
        return html.escape(str(text), quote=False)

    def format_list(self, items: Iterable[str], prefix: str = '-') -> str:
        """Список строк: каждая с prefix, текст экранируется"""
        return '\n'.join(f"{prefix} {self.escape_html(item)}" for item in items)

    def trim_label(self, text: str, max_length: int = None) -> str:
        """Обрезка подписи кнопки: 'Learn Spanish every...'"""
        max_length = max_length or self.constants.LIMITS['list_item_text']
        if len(text) <= max_length:
            return text
        return f"{text[:max_length - 3]}..."

    def truncate_message(self, text: str, max_length: int = 4096,
                         suffix: str = "...") -> str:
        """Обрезка сообщения до максимальной длины"""
        if len(text) <= max_length:
            return text

        truncated = text[:max_length - len(suffix)]

        # Пытаемся обрезать по границе слова
        last_space = truncated.rfind(' ')
        if last_space > max_length * 0.8:
            truncated = truncated[:last_space]

        return truncated + suffix

    def clean_telegram_text(self, text: str) -> str:
        """Очистка текста для Telegram"""
        if not text:
            return ""

        text = re.sub(r'\n{3,}', '\n\n', text)
        lines = [line.strip() for line in text.split('\n')]
        return '\n'.join(lines).strip()

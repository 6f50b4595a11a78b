"""
Message Constants

Локали, лимиты Telegram и общие эмодзи
"""


class MessageConstants:
    """Константы для сообщений"""

    EMOJI = {
        'sparkles': '✨',
        'success': '✅',
        'error': '❌',
        'warning': '⚠️',
        'calendar': '📅',
        'category': '🏷️',
        'reflection': '📝',
        'photo': '📷',
        'privacy': '🔒',
    }

    # Telegram limits
    LIMITS = {
        'message_length': 4096,
        'caption_length': 1024,
        'button_text': 64,
        'callback_data': 64,
        'list_item_text': 32,
    }

    PARSE_MODES = {
        'html': 'HTML',
    }

    LOCALES = {
        'default': 'en',
        'supported': ['en', 'uk'],
        'names': {
            'en': 'English',
            'uk': 'Українська',
        },
    }

    # Категории JSON шаблонов
    CATEGORIES = [
        'general',
        'buttons',
        'intentions',
        'categories',
        'reflections',
        'notifications',
    ]

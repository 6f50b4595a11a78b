"""
Message Service

Централизованные тексты бота: JSON шаблоны по локалям и категориям,
рендеринг через Jinja2, fallback на английский
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, Template, TemplateSyntaxError, UndefinedError
from pydantic import ValidationError

from intentions_bot.dialogue.channel import InlineButton, InlineKeyboard

from .constants import MessageConstants
from .formatters import TelegramFormatter
from .validators import MessageTemplateModel, MessageValidator, ValidationResult

logger = logging.getLogger(__name__)


class MessageService:
    """Централизованный сервис сообщений"""

    def __init__(self, templates_dir: Optional[str] = None, debug_mode: bool = False):
        if templates_dir is None:
            templates_dir = Path(__file__).parent / "templates"

        self.templates_dir = Path(templates_dir)
        self.debug_mode = debug_mode
        self.validator = MessageValidator()
        self.formatter = TelegramFormatter()
        self.constants = MessageConstants()
        self.default_locale = self.constants.LOCALES['default']

        # Экранирование делаем сами: переменные экранируются до рендеринга
        self.jinja_env = Environment(
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True
        )

        self._templates_cache: Dict[str, Dict[str, Dict[str, MessageTemplateModel]]] = {}
        self._keyboards_cache: Dict[str, Dict[str, Any]] = {}
        # Кэшируются скомпилированные шаблоны, не отрендеренный текст
        self._compiled_cache: Dict[str, Template] = {}

        self._load_all_templates()

        logger.info(f"MessageService initialized with templates from {self.templates_dir}")

    def _load_all_templates(self):
        if not self.templates_dir.exists():
            logger.warning(f"Templates directory not found: {self.templates_dir}")
            return

        for locale in self.constants.LOCALES['supported']:
            self._load_locale_templates(locale)

    def _load_locale_templates(self, locale: str):
        locale_path = self.templates_dir / locale
        if not locale_path.exists():
            logger.warning(f"Locale directory not found: {locale_path}")
            return

        self._templates_cache[locale] = {}
        self._keyboards_cache[locale] = {}

        for json_file in sorted(locale_path.glob("*.json")):
            try:
                with json_file.open('r', encoding='utf-8') as f:
                    data = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Failed to load {json_file}: {e}")
                continue

            category = json_file.stem
            self._keyboards_cache[locale].update(data.pop('keyboards', {}))

            entries = {}
            for key, raw in data.items():
                try:
                    entries[key] = MessageTemplateModel(**raw)
                except (TypeError, ValidationError) as e:
                    logger.error(f"Invalid template {locale}.{category}.{key}: {e}")
            self._templates_cache[locale][category] = entries

            logger.debug(f"Loaded templates for {locale}/{category}")

    def get_message(self, key: str, locale: str = 'en',
                    category: str = 'general', /, **kwargs) -> str:
        """
        Получить сообщение с подстановкой переменных

        Строковые переменные экранируются для HTML. Переменные с суффиксом
        _html считаются уже отформатированными.
        """
        template_data = self._get_template_data(key, locale, category)
        if not template_data:
            logger.error(f"❌ Missing message {locale}.{category}.{key}")
            return f"[MISSING: {locale}.{category}.{key}]"

        safe_kwargs = {
            name: value if name.endswith('_html') or not isinstance(value, str)
            else self.formatter.escape_html(value)
            for name, value in kwargs.items()
        }

        try:
            rendered = self._compile(template_data.template).render(**safe_kwargs)
        except (TemplateSyntaxError, UndefinedError) as e:
            logger.error(f"Error rendering template {locale}.{category}.{key}: {e}")
            return f"[TEMPLATE_ERROR: {key}]"

        cleaned = self.formatter.clean_telegram_text(rendered)
        limit = self.constants.LIMITS['message_length']

        if self.debug_mode:
            debug_info = f"\n─────────────────────\n🔧 <b>DEBUG:</b> <code>{key}</code> | <i>{category}.json</i>"
            cleaned = self.formatter.truncate_message(cleaned, limit - len(debug_info)) + debug_info
        elif len(cleaned) > limit:
            cleaned = self.formatter.truncate_message(cleaned, limit)
            logger.warning(f"Message truncated: {locale}.{category}.{key}")

        return cleaned

    def get_button_text(self, key: str, locale: str = 'en') -> str:
        """Текст кнопки - без HTML и без debug информации"""
        template_data = self._get_template_data(key, locale, 'buttons')
        if not template_data:
            logger.error(f"❌ Missing button {locale}.{key}")
            return key
        return template_data.template

    def button_variants(self, key: str) -> List[str]:
        """Текст кнопки во всех локалях - для распознавания reply кнопок"""
        return [self.get_button_text(key, locale) for locale in self.constants.LOCALES['supported']]

    def get_keyboard(self, keyboard_key: str, locale: str = 'en') -> Optional[InlineKeyboard]:
        """Статическая inline клавиатура из JSON"""
        keyboard_data = self._get_keyboard_data(keyboard_key, locale)
        if not keyboard_data:
            logger.warning(f"Keyboard not found: {locale}.{keyboard_key}")
            return None
        return self._build_keyboard(keyboard_data)

    def validate_template(self, key: str, locale: str = 'en',
                          category: str = 'general') -> ValidationResult:
        template_data = self._get_template_data(key, locale, category)
        if not template_data:
            result = ValidationResult()
            result.add_error(f"Template not found: {locale}.{category}.{key}")
            return result

        return self.validator.validate_template(
            template_data.template,
            set(template_data.variables) if template_data.variables else None
        )

    def reload_templates(self):
        self._templates_cache.clear()
        self._keyboards_cache.clear()
        self._compiled_cache.clear()
        self._load_all_templates()
        logger.info("Templates reloaded")

    def get_available_locales(self) -> List[str]:
        return list(self._templates_cache.keys())

    def get_message_keys(self, locale: str = 'en', category: str = 'general') -> List[str]:
        return list(self._templates_cache.get(locale, {}).get(category, {}).keys())

    def _compile(self, source: str) -> Template:
        compiled = self._compiled_cache.get(source)
        if compiled is None:
            compiled = self.jinja_env.from_string(source)
            self._compiled_cache[source] = compiled
        return compiled

    def _get_template_data(self, key: str, locale: str, category: str) -> Optional[MessageTemplateModel]:
        """Шаблон с fallback на локаль по умолчанию"""
        template_data = self._templates_cache.get(locale, {}).get(category, {}).get(key)
        if template_data:
            return template_data

        if locale != self.default_locale:
            template_data = self._templates_cache.get(self.default_locale, {}).get(category, {}).get(key)
            if template_data:
                logger.debug(f"Using fallback {self.default_locale} for {locale}.{category}.{key}")
                return template_data

        return None

    def _get_keyboard_data(self, keyboard_key: str, locale: str) -> Optional[Dict[str, Any]]:
        keyboard_data = self._keyboards_cache.get(locale, {}).get(keyboard_key)
        if keyboard_data is None and locale != self.default_locale:
            keyboard_data = self._keyboards_cache.get(self.default_locale, {}).get(keyboard_key)
        return keyboard_data

    def _build_keyboard(self, keyboard_data: Dict[str, Any]) -> InlineKeyboard:
        rows = []
        for row in keyboard_data.get('buttons', []):
            button_row = []
            for button_config in row:
                text = button_config.get('text', '')
                callback_data = button_config.get('callback_data', '')

                text_result = self.validator.validate_button_text(text)
                if not text_result.is_valid:
                    logger.warning(f"Invalid button text: {text_result.errors}")
                    continue

                callback_result = self.validator.validate_callback_data(callback_data)
                if not callback_result.is_valid:
                    logger.warning(f"Invalid callback_data: {callback_result.errors}")
                    continue

                button_row.append(InlineButton(text=text, data=callback_data))

            if button_row:
                rows.append(button_row)

        return InlineKeyboard(rows=rows)

"""
Message Validators

Проверка шаблонов, кнопок и callback data на совместимость с Telegram
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Set

from jinja2 import Environment, TemplateSyntaxError
from pydantic import BaseModel


@dataclass
class ValidationResult:
    """Результат валидации"""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: str):
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str):
        self.warnings.append(warning)


class MessageValidator:
    """Валидатор сообщений для Telegram"""

    TELEGRAM_HTML_TAGS = {'b', 'i', 'u', 's', 'code', 'pre', 'a'}

    JINJA_VAR_PATTERN = r'\{\{\s*([a-zA-Z_][a-zA-Z0-9_]*)'

    def validate_template(self, template: str, required_vars: Optional[Set[str]] = None) -> ValidationResult:
        result = ValidationResult()

        if not template or not template.strip():
            result.add_error("Template is empty")
            return result

        if len(template) > 4096:
            result.add_error(f"Template too long: {len(template)} characters (max 4096)")

        for _, tag in re.findall(r'<(/?)(\w+)[^>]*>', template):
            if tag.lower() not in self.TELEGRAM_HTML_TAGS:
                result.add_error(f"Unsupported HTML tag: <{tag}>")

        if required_vars:
            missing = required_vars - self.extract_template_variables(template)
            if missing:
                result.add_error(f"Missing required variables: {missing}")

        try:
            Environment().from_string(template)
        except TemplateSyntaxError as e:
            result.add_error(f"Jinja2 syntax error: {e}")

        return result

    def extract_template_variables(self, template: str) -> Set[str]:
        return set(re.findall(self.JINJA_VAR_PATTERN, template))

    def validate_button_text(self, text: str) -> ValidationResult:
        result = ValidationResult()

        if not text or not text.strip():
            result.add_error("Button text is empty")
            return result

        if len(text) > 64:
            result.add_error(f"Button text too long: {len(text)} characters (max 64)")

        return result

    def validate_callback_data(self, data: str) -> ValidationResult:
        result = ValidationResult()

        if not data:
            result.add_error("Callback data is empty")
            return result

        # Telegram считает лимит в байтах
        if len(data.encode('utf-8')) > 64:
            result.add_error(f"Callback data too long: {len(data)} characters (max 64 bytes)")

        if not re.match(r'^[a-zA-Z0-9_\-:.]+$', data):
            result.add_warning("Callback data contains special characters")

        return result


class MessageTemplateModel(BaseModel):
    """Pydantic модель для валидации шаблона сообщения"""
    template: str
    variables: List[str] = []
    parse_mode: Optional[str] = 'HTML'

    def validate_template_content(self) -> ValidationResult:
        result = MessageValidator().validate_template(
            self.template,
            set(self.variables) if self.variables else None
        )
        if not result.is_valid:
            raise ValueError(f"Template validation failed: {', '.join(result.errors)}")
        return result

"""
Middleware - промежуточные слои обработки

Модули:
- state_logger: логирование режимов диалога
"""

from .state_logger import StateLoggerMiddleware

__all__ = ["StateLoggerMiddleware"]

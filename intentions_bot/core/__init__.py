"""
Core - конфигурация, логирование и исключения
"""

from .config import Config, get_config
from .exceptions import (
    IntentionsBotError,
    ConfigurationError,
    EncryptionError,
    StoreError,
    UserNotFoundError,
)
from .logging import setup_logging

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "IntentionsBotError",
    "ConfigurationError",
    "EncryptionError",
    "StoreError",
    "UserNotFoundError",
]

"""
Centralized Configuration Management for the Intentions bot
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class DatabaseConfig:
    """Database configuration"""
    host: str
    port: int
    user: str
    password: str
    database: str
    schema: str = "intentions"

    @property
    def url(self) -> str:
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class TelegramConfig:
    """Telegram bot configuration"""
    bot_token: str
    admin_telegram_id: Optional[int] = None
    welcome_image_path: Optional[str] = None


@dataclass
class JournalConfig:
    """Journal behaviour: reference timezone, encryption, follow-up windows"""
    timezone: str = "Europe/Madrid"
    encryption_key: str = ""
    reflection_prompt_ttl_minutes: int = 30
    scheduler_enabled: bool = True


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    return int(value)


class Config:
    """Main configuration class"""

    def __init__(self):
        self.database = DatabaseConfig(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", 5432)),
            user=os.getenv("DB_USER", "postgres"),
            password=os.getenv("DB_PASSWORD", ""),
            database=os.getenv("DB_NAME", "intentions"),
            schema=os.getenv("DB_SCHEMA", "intentions"),
        )

        self.telegram = TelegramConfig(
            bot_token=os.getenv("BOT_TOKEN", ""),
            admin_telegram_id=_optional_int(os.getenv("ADMIN_TELEGRAM_ID")),
            welcome_image_path=os.getenv("WELCOME_IMAGE_PATH") or None,
        )

        self.journal = JournalConfig(
            timezone=os.getenv("APP_TIMEZONE", "Europe/Madrid"),
            encryption_key=os.getenv("ENCRYPTION_KEY", ""),
            reflection_prompt_ttl_minutes=int(os.getenv("REFLECTION_PROMPT_TTL_MINUTES", 30)),
            scheduler_enabled=os.getenv("SCHEDULER_ENABLED", "true").lower() == "true",
        )

        # Logging configuration
        self.logging = {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file_path": Path(os.getenv("LOG_DIR", "logs")),
            "max_file_size": 10 * 1024 * 1024,  # 10MB
            "backup_count": 5,
        }


# Global configuration instance
config = Config()


def get_config() -> Config:
    """Get the global configuration instance"""
    return config

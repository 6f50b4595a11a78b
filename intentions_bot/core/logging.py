"""
Shared logging setup for the Intentions bot
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .config import get_config


def setup_logging(level: Optional[str] = None, log_dir: Optional[Path] = None) -> None:
    """
    Настроить root logger: консоль + файл с ротацией

    Args:
        level: уровень логирования (по умолчанию LOG_LEVEL)
        log_dir: каталог для файлов логов (по умолчанию LOG_DIR)
    """
    settings = get_config().logging

    level_name = (level or settings["level"]).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    log_dir = Path(log_dir or settings["file_path"])
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(log_level)

    formatter = logging.Formatter(settings["format"])

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    # File handler with rotation
    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / "intentions_bot.log",
        maxBytes=settings["max_file_size"],
        backupCount=settings["backup_count"],
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # Chatty third-party loggers
    logging.getLogger("aiogram").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

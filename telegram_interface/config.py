"""
Configuration - конфигурация Telegram слоя

Настройки бота, БД и журнала берутся из intentions_bot.core.config;
здесь только то, что нужно aiogram процессу: FSM storage и instance lock.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Session storage: "redis" (по умолчанию) или "memory"
SESSION_STORAGE = os.getenv("SESSION_STORAGE", "redis").lower()

# Redis FSM Storage Configuration
REDIS_FSM_HOST = os.getenv("REDIS_FSM_HOST", "localhost")
REDIS_FSM_PORT = int(os.getenv("REDIS_FSM_PORT", "6379"))
REDIS_FSM_DB = int(os.getenv("REDIS_FSM_DB", "1"))

# Bot Instance Lock Configuration
BOT_INSTANCE_LOCK_ENABLED = os.getenv("BOT_INSTANCE_LOCK_ENABLED", "true").lower() == "true"
BOT_INSTANCE_LOCK_KEY = os.getenv("BOT_INSTANCE_LOCK_KEY", "intentions:bot:instance_lock")
BOT_INSTANCE_LOCK_TTL = 30  # seconds

# Debug Configuration
DEBUG_MESSAGES = os.getenv("DEBUG_MESSAGES", "false").lower() == "true"

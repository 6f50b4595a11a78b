"""
Intentions Bot Controller - координатор

Только композиция: Bot, Dispatcher с FSM storage, MessageService,
instance lock и BotLifecycle. Бизнес-логика - в intentions_bot.dialogue.
"""

import asyncio
import logging
from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.base import BaseStorage
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import RedisStorage

from intentions_bot.core import ConfigurationError, get_config, setup_logging
from intentions_bot.messages import get_message_service

from .config import (
    SESSION_STORAGE,
    REDIS_FSM_HOST, REDIS_FSM_PORT, REDIS_FSM_DB,
    BOT_INSTANCE_LOCK_ENABLED, BOT_INSTANCE_LOCK_KEY, BOT_INSTANCE_LOCK_TTL,
    DEBUG_MESSAGES
)
from .lifecycle import BotInstanceLock, BotLifecycle

logger = logging.getLogger(__name__)


def create_storage() -> BaseStorage:
    """FSM storage для сессий диалога"""
    if SESSION_STORAGE == "memory":
        return MemoryStorage()
    return RedisStorage.from_url(f"redis://{REDIS_FSM_HOST}:{REDIS_FSM_PORT}/{REDIS_FSM_DB}")


class IntentionsBotController:
    """Композиция всех компонентов бота"""

    def __init__(self):
        logger.info("🤖 Initializing Intentions Bot Controller...")

        self.config = get_config()
        if not self.config.telegram.bot_token:
            raise ConfigurationError("BOT_TOKEN", "is not set")

        # 1. Bot и Dispatcher
        self.bot = Bot(token=self.config.telegram.bot_token)
        self.dp = Dispatcher(storage=create_storage())
        logger.info(f"✅ Bot and Dispatcher created (sessions: {SESSION_STORAGE})")

        # 2. Message Service
        self.messages = get_message_service(debug_mode=DEBUG_MESSAGES)

        # 3. Instance Lock
        self.instance_lock = None
        if BOT_INSTANCE_LOCK_ENABLED:
            self.instance_lock = BotInstanceLock(
                redis_host=REDIS_FSM_HOST,
                redis_port=REDIS_FSM_PORT,
                redis_db=REDIS_FSM_DB,
                lock_key=BOT_INSTANCE_LOCK_KEY,
                lock_ttl=BOT_INSTANCE_LOCK_TTL
            )

        # 4. Lifecycle (сервисы и handlers создаются при старте)
        self.lifecycle = BotLifecycle(
            bot=self.bot,
            dispatcher=self.dp,
            config=self.config,
            messages=self.messages,
            instance_lock=self.instance_lock,
        )

    async def start(self):
        logger.info("🚀 Starting Intentions Bot...")
        await self.lifecycle.start_polling()

    async def stop(self):
        logger.info("🛑 Stopping Intentions Bot...")
        await self.lifecycle.stop()


async def main():
    """
    Точка входа для запуска бота

    Использование:
        python -m telegram_interface.controller
    """
    setup_logging()

    controller = IntentionsBotController()
    await controller.start()


def run():
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()

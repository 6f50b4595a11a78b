"""
Bot Lifecycle Manager - управление жизненным циклом бота

Отвечает за:
- Инициализацию сервисов (Database, DataStore, шифрование, диалог)
- Запуск polling и планировщика уведомлений
- Обработку сигналов (SIGINT, SIGTERM)
- Корректное освобождение ресурсов
"""

import asyncio
import logging
import os
import signal
from datetime import timedelta
from typing import Optional

from aiogram import Bot, Dispatcher

from intentions_bot.core import Config
from intentions_bot.crypto import TextCipher
from intentions_bot.database import DatabaseService, DataStore
from intentions_bot.dialogue import DialogueController, FSMSessionStore
from intentions_bot.scheduler import NotificationJobs, SchedulerRunner

from ..channel import AiogramChannel
from ..handler_registry import HandlerRegistry

logger = logging.getLogger(__name__)


class BotLifecycle:
    """
    Управление жизненным циклом Telegram бота

    Координирует инициализацию, запуск и остановку всех компонентов.
    """

    def __init__(
        self,
        bot: Bot,
        dispatcher: Dispatcher,
        config: Config,
        messages,
        instance_lock=None,
    ):
        """
        Args:
            bot: Aiogram Bot instance
            dispatcher: Aiogram Dispatcher instance (с FSM storage для сессий)
            config: Конфигурация приложения
            messages: MessageService
            instance_lock: BotInstanceLock или None, если блокировка выключена
        """
        self.bot = bot
        self.dp = dispatcher
        self.config = config
        self.messages = messages
        self.instance_lock = instance_lock

        # Сервисы - инициализируются при старте
        self.db_service: Optional[DatabaseService] = None
        self.store: Optional[DataStore] = None
        self.dialogue: Optional[DialogueController] = None
        self.scheduler: Optional[SchedulerRunner] = None
        self.scheduler_task: Optional[asyncio.Task] = None

        # Shutdown event для graceful shutdown
        self._shutdown_event = asyncio.Event()

    async def setup_signal_handlers(self):
        loop = asyncio.get_running_loop()

        def signal_handler(sig):
            logger.info(f"🛑 Received signal {sig}, initiating graceful shutdown...")
            self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))

        logger.info("📡 Signal handlers configured (SIGINT, SIGTERM)")

    async def initialize_services(self) -> bool:
        """
        Инициализировать все сервисы бота

        Returns:
            True если инициализация успешна, False иначе
        """
        journal = self.config.journal

        # 🔐 Ключ шифрования проверяем до подключения к БД
        cipher = TextCipher(journal.encryption_key)
        logger.info("✅ Text encryption configured")

        # 🗄 Инициализация базы данных
        self.db_service = DatabaseService.from_config(self.config.database)
        if not await self.db_service.initialize():
            logger.error("❌ Failed to initialize database")
            return False

        self.store = DataStore(self.db_service)
        await self.store.create_tables()
        logger.info(f"✅ Tables created/verified in schema: {self.config.database.schema}")

        channel = AiogramChannel(self.bot)
        bot_user = await self.bot.get_me()

        self.dialogue = DialogueController(
            store=self.store,
            channel=channel,
            sessions=FSMSessionStore(self.dp.storage, bot_user.id),
            cipher=cipher,
            messages=self.messages,
            timezone=journal.timezone,
            admin_telegram_id=self.config.telegram.admin_telegram_id,
            reflection_prompt_ttl=timedelta(minutes=journal.reflection_prompt_ttl_minutes),
            welcome_image_path=self.config.telegram.welcome_image_path,
        )
        HandlerRegistry(self.dp, self.dialogue).register_all()
        logger.info(f"✅ DialogueController ready for @{bot_user.username}")

        if journal.scheduler_enabled:
            jobs = NotificationJobs(self.store, channel, cipher, self.messages)
            self.scheduler = SchedulerRunner(jobs, timezone=journal.timezone)
        else:
            logger.info("⏰ Scheduler disabled (SCHEDULER_ENABLED=false)")

        return True

    async def start_polling(self):
        """
        Запуск бота с проверкой на дублирующие экземпляры и graceful shutdown
        """
        try:
            if self.instance_lock:
                if not await self.instance_lock.acquire():
                    logger.error("🚫 Aborting startup - another instance is running")
                    return
                await self.instance_lock.start_refresh()

            await self.setup_signal_handlers()

            if not await self.initialize_services():
                logger.error("❌ Failed to initialize services, aborting")
                return

            self._print_startup_banner()

            if self.scheduler:
                self.scheduler_task = asyncio.create_task(self.scheduler.run())

            logger.info("Starting Intentions Bot polling...")
            polling_task = asyncio.create_task(self.dp.start_polling(self.bot, handle_signals=False))

            # Ждем сигнала shutdown или падения polling
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())
            await asyncio.wait({polling_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)

            logger.info("🛑 Initiating graceful shutdown...")
            shutdown_task.cancel()
            polling_task.cancel()

            try:
                await polling_task
            except asyncio.CancelledError:
                logger.info("✅ Polling task cancelled")

        except Exception as e:
            logger.error(f"Bot error: {e}", exc_info=True)
            raise
        finally:
            # Всегда освобождаем ресурсы
            await self.stop()

    async def stop(self):
        """Graceful остановка бота с освобождением всех ресурсов"""
        logger.info("🛑 Stopping bot gracefully...")

        # 1. Планировщик
        if self.scheduler_task and not self.scheduler_task.done():
            self.scheduler.stop()
            try:
                await asyncio.wait_for(self.scheduler_task, timeout=10)
            except asyncio.TimeoutError:
                self.scheduler_task.cancel()
            logger.info("✅ Scheduler stopped")

        # 2. Instance lock (также останавливает refresh task)
        if self.instance_lock:
            await self.instance_lock.release()

        # 3. Telegram bot session
        await self.bot.session.close()
        logger.info("✅ Bot session closed")

        # 4. FSM storage
        await self.dp.storage.close()

        # 5. Database
        if self.db_service:
            await self.db_service.close()
            logger.info("✅ Database connection closed")

        logger.info("🎉 Bot stopped successfully")

    def _print_startup_banner(self):
        journal = self.config.journal
        print("🚀 Intentions Bot")
        print("=" * 40)
        print(f"✅ Database schema: {self.config.database.schema}")
        print(f"✅ Session storage: {type(self.dp.storage).__name__}")
        print(f"✅ Instance lock: {'Active (PID: %d)' % os.getpid() if self.instance_lock else 'Disabled'}")
        print(f"✅ Available locales: {self.messages.get_available_locales()}")
        print(f"✅ Reference timezone: {journal.timezone}")
        print(f"✅ Scheduler: {'On' if self.scheduler else 'Off'}")
        print("🔗 Ready for users!")
        print("=" * 40)

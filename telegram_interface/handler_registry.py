"""
Handler Registry - регистрация всех обработчиков бота

Отвечает за:
- Регистрацию handlers с dependency injection
- Связывание handlers с командами и типами сообщений
- Middleware и логирование ошибок
"""

import logging
from functools import partial
from aiogram import Dispatcher, F
from aiogram.filters import Command, CommandStart
from aiogram.types import ErrorEvent

from intentions_bot.dialogue import DialogueController

from .handlers import CallbackHandlers, CommandHandlers, MessageHandlers
from .middleware import StateLoggerMiddleware

logger = logging.getLogger(__name__)

COMMANDS = ("help", "language", "reminder", "evening", "monthly", "weekly")


class HandlerRegistry:
    """
    Регистратор всех обработчиков бота

    Все события уходят в один DialogueController.
    """

    def __init__(self, dp: Dispatcher, dialogue: DialogueController):
        """
        Args:
            dp: Aiogram Dispatcher
            dialogue: DialogueController для обработки событий
        """
        self.dp = dp
        self.dialogue = dialogue

    def register_all(self):
        """Регистрация всех handlers и middleware"""
        logger.info("🔧 Registering all handlers...")

        self._register_middleware()
        self._register_command_handlers()
        self._register_message_handlers()
        self._register_callback_handlers()
        self._register_error_handler()

        logger.info("✅ All handlers registered successfully")

    def _register_middleware(self):
        state_logger = StateLoggerMiddleware(self.dialogue.sessions)
        self.dp.message.middleware(state_logger)
        self.dp.callback_query.middleware(state_logger)
        logger.info("🔄 Middleware registered: StateLoggerMiddleware")

    def _register_command_handlers(self):
        # /start
        self.dp.message.register(
            partial(CommandHandlers.cmd_start, dialogue=self.dialogue),
            CommandStart()
        )

        # /help, /language и настройки времени
        self.dp.message.register(
            partial(CommandHandlers.cmd_any, dialogue=self.dialogue),
            Command(*COMMANDS)
        )

        logger.info(f"📝 Command handlers registered: /start, {', '.join('/' + c for c in COMMANDS)}")

    def _register_message_handlers(self):
        self.dp.message.register(
            partial(MessageHandlers.handle_photo, dialogue=self.dialogue),
            F.photo
        )

        self.dp.message.register(
            partial(MessageHandlers.handle_text, dialogue=self.dialogue),
            F.text
        )

        logger.info("💬 Message handlers registered: text, photo")

    def _register_callback_handlers(self):
        self.dp.callback_query.register(
            partial(CallbackHandlers.handle_button, dialogue=self.dialogue)
        )
        logger.info("🔘 Callback handlers registered")

    def _register_error_handler(self):
        async def log_error(event: ErrorEvent):
            """Ошибка обработки события: сессия не сохранена, пишем в лог"""
            logger.error(
                f"❌ Update {event.update.update_id} failed: {event.exception}",
                exc_info=event.exception
            )
            return True

        self.dp.errors.register(log_error)
        logger.info("🧯 Error handler registered")

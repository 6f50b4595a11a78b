"""
Command Handlers - команды бота

/start, /help, /language, /reminder, /evening, /monthly, /weekly
превращаются в события диалога и передаются в DialogueController.
"""

import logging
from aiogram.filters import CommandObject
from aiogram.types import Message, User

from intentions_bot.dialogue import CommandEvent, StartEvent, UserRef

logger = logging.getLogger(__name__)


def user_ref(user: User) -> UserRef:
    """Telegram User -> UserRef диалога"""
    return UserRef(
        telegram_id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        username=user.username,
    )


class CommandHandlers:
    """Обработчики команд (статические, зависимости через partial)"""

    @staticmethod
    async def cmd_start(message: Message, dialogue):
        """Команда /start - точка входа в бота"""
        logger.info(f"👤 User started: {message.from_user.full_name} (ID: {message.from_user.id})")
        await dialogue.handle(StartEvent(chat_id=message.chat.id, user=user_ref(message.from_user)))

    @staticmethod
    async def cmd_any(message: Message, command: CommandObject, dialogue):
        """Остальные команды: имя + аргументы"""
        await dialogue.handle(CommandEvent(
            chat_id=message.chat.id,
            user=user_ref(message.from_user),
            name=command.command.lower(),
            args=(command.args or '').strip(),
        ))

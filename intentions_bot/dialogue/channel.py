"""
Message Channel - входящие события и исходящие сообщения диалога

Контроллер не знает про aiogram: он получает события из этого модуля
и отвечает через MessageChannel с клавиатурами InlineKeyboard / ReplyKeyboard.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Union


# ========== Keyboards ==========

@dataclass(frozen=True)
class InlineButton:
    text: str
    data: str


@dataclass(frozen=True)
class InlineKeyboard:
    rows: List[List[InlineButton]] = field(default_factory=list)

    @property
    def buttons(self) -> List[InlineButton]:
        return [button for row in self.rows for button in row]

    def callback_data(self) -> List[str]:
        return [button.data for button in self.buttons]


@dataclass(frozen=True)
class ReplyKeyboard:
    rows: List[List[str]] = field(default_factory=list)

    @property
    def labels(self) -> List[str]:
        return [label for row in self.rows for label in row]


Keyboard = Union[InlineKeyboard, ReplyKeyboard]


class MessageChannel(Protocol):
    async def send_text(self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None) -> None: ...

    async def send_photo(
        self,
        chat_id: int,
        photo: str,
        caption: Optional[str] = None,
        keyboard: Optional[Keyboard] = None,
    ) -> None: ...


# ========== Inbound events ==========

@dataclass(frozen=True)
class UserRef:
    """Идентичность пользователя на платформе"""
    telegram_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None


@dataclass(frozen=True)
class StartEvent:
    chat_id: int
    user: UserRef


@dataclass(frozen=True)
class CommandEvent:
    chat_id: int
    user: UserRef
    name: str
    args: str = ""


@dataclass(frozen=True)
class TextEvent:
    chat_id: int
    user: UserRef
    text: str


@dataclass(frozen=True)
class PhotoEvent:
    """Фото: file_id самого большого размера + подпись"""
    chat_id: int
    user: UserRef
    file_id: str
    caption: Optional[str] = None


@dataclass(frozen=True)
class ButtonEvent:
    chat_id: int
    user: UserRef
    data: str


InboundEvent = Union[StartEvent, CommandEvent, TextEvent, PhotoEvent, ButtonEvent]

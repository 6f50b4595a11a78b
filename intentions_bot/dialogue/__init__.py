"""
Dialogue - диалоговое ядро бота

Режимы, сессии, события/клавиатуры и контроллер. От aiogram зависит
только FSMSessionStore (хранилище сессий поверх FSM storage).
"""

from .channel import (
    ButtonEvent,
    CommandEvent,
    InlineButton,
    InlineKeyboard,
    MessageChannel,
    PhotoEvent,
    ReplyKeyboard,
    StartEvent,
    TextEvent,
    UserRef,
)
from .modes import CategoryTarget, Idle, ReflectionCapture
from .session import FSMSessionStore, MemorySessionStore, Session
from .controller import DialogueController

__all__ = [
    "ButtonEvent",
    "CommandEvent",
    "InlineButton",
    "InlineKeyboard",
    "MessageChannel",
    "PhotoEvent",
    "ReplyKeyboard",
    "StartEvent",
    "TextEvent",
    "UserRef",
    "CategoryTarget",
    "Idle",
    "ReflectionCapture",
    "FSMSessionStore",
    "MemorySessionStore",
    "Session",
    "DialogueController",
]

"""
Dialogue Session - эфемерное состояние диалога одного чата

Session хранит язык, текущий режим и последнее открытое намерение.
Хранилище пишет только изменившиеся поля верхнего уровня.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Protocol, Tuple

from aiogram.fsm.storage.base import BaseStorage, StorageKey

from .modes import Idle, Mode, ReflectionCapture, mode_from_dict, mode_to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Намерение, открытое в детальном просмотре"""
    intention_id: int
    selected_at: str

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        try:
            selected = datetime.fromisoformat(self.selected_at)
        except ValueError:
            return False
        if (selected.tzinfo is None) != (now.tzinfo is None):
            # naive vs aware - нельзя сравнить, считаем устаревшим
            return False
        return now - selected <= ttl


class Session:
    """Сессия чата: language + mode + selection"""

    def __init__(
        self,
        language: Optional[str] = None,
        mode: Optional[Mode] = None,
        selection: Optional[Selection] = None,
    ):
        self.language = language
        self.mode: Mode = mode if mode is not None else Idle()
        self.selection = selection
        self._origin: Dict[str, Any] = {}

    @classmethod
    def from_data(cls, data: Optional[Dict[str, Any]]) -> "Session":
        data = data or {}
        selection = None
        raw_selection = data.get("selection")
        if isinstance(raw_selection, dict) and "intention_id" in raw_selection:
            selection = Selection(
                intention_id=int(raw_selection["intention_id"]),
                selected_at=str(raw_selection.get("selected_at", "")),
            )

        session = cls(
            language=data.get("language"),
            mode=mode_from_dict(data.get("mode")),
            selection=selection,
        )
        session._origin = session.to_data()
        return session

    def to_data(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "mode": mode_to_dict(self.mode),
            "selection": (
                {"intention_id": self.selection.intention_id, "selected_at": self.selection.selected_at}
                if self.selection
                else None
            ),
        }

    def changes(self) -> Dict[str, Any]:
        """Только изменённые поля верхнего уровня"""
        current = self.to_data()
        return {key: value for key, value in current.items() if self._origin.get(key) != value}

    def mark_saved(self) -> None:
        self._origin = self.to_data()

    # ========== Mode helpers ==========

    def enter(self, mode: Mode) -> None:
        self.mode = mode

    def reset(self) -> None:
        self.mode = Idle()

    @property
    def in_reflection(self) -> bool:
        return isinstance(self.mode, ReflectionCapture)

    def select(self, intention_id: int, now: datetime) -> None:
        self.selection = Selection(intention_id=intention_id, selected_at=now.isoformat())

    def fresh_selection(self, now: datetime, ttl: timedelta) -> Optional[int]:
        if self.selection and self.selection.is_fresh(now, ttl):
            return self.selection.intention_id
        return None


class SessionStore(Protocol):
    async def load(self, chat_id: int, user_id: int) -> Session: ...

    async def save(self, chat_id: int, user_id: int, session: Session) -> None: ...


class MemorySessionStore:
    """Сессии в dict - для тестов и локального запуска"""

    def __init__(self):
        self._records: Dict[Tuple[int, int], Dict[str, Any]] = {}

    async def load(self, chat_id: int, user_id: int) -> Session:
        return Session.from_data(dict(self._records.get((chat_id, user_id), {})))

    async def save(self, chat_id: int, user_id: int, session: Session) -> None:
        changes = session.changes()
        if not changes:
            return
        record = self._records.setdefault((chat_id, user_id), {})
        record.update(changes)
        session.mark_saved()

    def raw(self, chat_id: int, user_id: int) -> Dict[str, Any]:
        return dict(self._records.get((chat_id, user_id), {}))


class FSMSessionStore:
    """Сессии в aiogram FSM storage (MemoryStorage / RedisStorage)"""

    def __init__(self, storage: BaseStorage, bot_id: int):
        self.storage = storage
        self.bot_id = bot_id

    def _key(self, chat_id: int, user_id: int) -> StorageKey:
        return StorageKey(bot_id=self.bot_id, chat_id=chat_id, user_id=user_id)

    async def load(self, chat_id: int, user_id: int) -> Session:
        data = await self.storage.get_data(self._key(chat_id, user_id))
        return Session.from_data(data)

    async def save(self, chat_id: int, user_id: int, session: Session) -> None:
        changes = session.changes()
        if not changes:
            return
        await self.storage.update_data(self._key(chat_id, user_id), changes)
        logger.debug(f"💾 Session {chat_id} updated fields: {sorted(changes)}")
        session.mark_saved()

"""
Dialogue Modes - режимы диалога как tagged union

Каждый режим - отдельный dataclass со своими полями. В сессии всегда
ровно один режим; вход в новый режим заменяет предыдущий целиком.
Сериализация: {"kind": <имя>, **поля}.
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

logger = logging.getLogger(__name__)


class CategoryTarget(str, Enum):
    """Куда идёт новая категория: к намерению или в управление категориями"""
    ATTACH = "attach"
    MANAGE = "manage"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingIntentionText:
    category_id: Optional[int] = None


@dataclass(frozen=True)
class IntentionConfig:
    intention_id: int


@dataclass(frozen=True)
class AwaitingDate:
    intention_id: int
    in_config: bool = False


@dataclass(frozen=True)
class AwaitingEditText:
    intention_id: int


@dataclass(frozen=True)
class AwaitingNewCategory:
    target: CategoryTarget = CategoryTarget.MANAGE
    intention_id: Optional[int] = None
    in_config: bool = False


@dataclass(frozen=True)
class AwaitingFeedbackText:
    intention_id: Optional[int] = None


@dataclass(frozen=True)
class AwaitingFeedbackPhoto:
    intention_id: Optional[int] = None


@dataclass(frozen=True)
class AwaitingFreeTextConfirm:
    text: str


@dataclass(frozen=True)
class AwaitingBroadcastText:
    pass


@dataclass(frozen=True)
class AwaitingBroadcastConfirm:
    text: str


@dataclass(frozen=True)
class ReflectionCapture:
    """Сбор рефлексии: тексты и фото копятся до Done / Cancel"""
    parts: List[str] = field(default_factory=list)
    photos: List[str] = field(default_factory=list)
    intention_id: Optional[int] = None
    started_at: Optional[str] = None

    def with_text(self, text: str) -> "ReflectionCapture":
        return ReflectionCapture(
            parts=[*self.parts, text],
            photos=list(self.photos),
            intention_id=self.intention_id,
            started_at=self.started_at,
        )

    def with_photo(self, file_id: str, caption: Optional[str] = None) -> "ReflectionCapture":
        parts = [*self.parts, caption] if caption else list(self.parts)
        return ReflectionCapture(
            parts=parts,
            photos=[*self.photos, file_id],
            intention_id=self.intention_id,
            started_at=self.started_at,
        )

    @property
    def is_empty(self) -> bool:
        return not self.parts and not self.photos


Mode = Union[
    Idle,
    AwaitingIntentionText,
    IntentionConfig,
    AwaitingDate,
    AwaitingEditText,
    AwaitingNewCategory,
    AwaitingFeedbackText,
    AwaitingFeedbackPhoto,
    AwaitingFreeTextConfirm,
    AwaitingBroadcastText,
    AwaitingBroadcastConfirm,
    ReflectionCapture,
]

MODE_REGISTRY: Dict[str, Type] = {
    cls.__name__: cls
    for cls in (
        Idle,
        AwaitingIntentionText,
        IntentionConfig,
        AwaitingDate,
        AwaitingEditText,
        AwaitingNewCategory,
        AwaitingFeedbackText,
        AwaitingFeedbackPhoto,
        AwaitingFreeTextConfirm,
        AwaitingBroadcastText,
        AwaitingBroadcastConfirm,
        ReflectionCapture,
    )
}


def mode_to_dict(mode: Mode) -> Dict[str, Any]:
    data = asdict(mode)
    if isinstance(mode, AwaitingNewCategory):
        data["target"] = mode.target.value
    return {"kind": type(mode).__name__, **data}


def mode_from_dict(data: Optional[Dict[str, Any]]) -> Mode:
    """Восстановить режим; неизвестный kind или битые поля -> Idle"""
    if not data:
        return Idle()

    cls = MODE_REGISTRY.get(data.get("kind"))
    if cls is None:
        logger.warning(f"⚠️ Unknown dialogue mode {data.get('kind')!r}, falling back to Idle")
        return Idle()

    allowed = {f.name for f in fields(cls)}
    kwargs = {key: value for key, value in data.items() if key in allowed}

    try:
        if cls is AwaitingNewCategory and "target" in kwargs:
            kwargs["target"] = CategoryTarget(kwargs["target"])
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        logger.warning(f"⚠️ Broken {cls.__name__} mode in session: {e}, falling back to Idle")
        return Idle()

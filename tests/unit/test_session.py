"""
Unit Tests: Dialogue Modes & Session

- сериализация режимов {"kind": ..., **fields}
- fallback на Idle для неизвестных/битых режимов
- запись только изменённых полей
- свежесть выбранного намерения
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

from aiogram.fsm.storage.memory import MemoryStorage

from intentions_bot.dialogue.modes import (
    AwaitingDate,
    AwaitingNewCategory,
    CategoryTarget,
    Idle,
    IntentionConfig,
    ReflectionCapture,
    mode_from_dict,
    mode_to_dict,
)
from intentions_bot.dialogue.session import FSMSessionStore, MemorySessionStore, Session


# ============================================================================
# MODES
# ============================================================================

def test_mode_serialization_is_tagged():
    assert mode_to_dict(AwaitingDate(intention_id=7, in_config=True)) == {
        "kind": "AwaitingDate",
        "intention_id": 7,
        "in_config": True,
    }
    assert mode_to_dict(Idle()) == {"kind": "Idle"}


def test_category_target_survives_serialization():
    mode = AwaitingNewCategory(target=CategoryTarget.ATTACH, intention_id=3, in_config=True)
    data = mode_to_dict(mode)
    assert data["target"] == "attach"
    assert mode_from_dict(data) == mode


@pytest.mark.parametrize("data", [
    None,
    {},
    {"kind": "SomethingRemoved"},
    {"kind": "IntentionConfig"},
    {"kind": "AwaitingNewCategory", "target": "nowhere"},
])
def test_unknown_or_broken_mode_falls_back_to_idle(data):
    assert mode_from_dict(data) == Idle()


def test_extra_fields_are_ignored():
    assert mode_from_dict({"kind": "IntentionConfig", "intention_id": 4, "legacy": 1}) == IntentionConfig(4)


def test_reflection_capture_accumulates_in_order():
    capture = ReflectionCapture(intention_id=5)
    capture = capture.with_text("good day")
    capture = capture.with_photo("photo-1", "sunset")
    capture = capture.with_photo("photo-2")

    assert capture.parts == ["good day", "sunset"]
    assert capture.photos == ["photo-1", "photo-2"]
    assert capture.intention_id == 5
    assert not capture.is_empty
    assert ReflectionCapture().is_empty


# ============================================================================
# SESSION
# ============================================================================

def test_new_session_has_no_changes_after_load():
    session = Session.from_data({"language": "uk", "mode": {"kind": "Idle"}, "selection": None})
    assert session.changes() == {}


def test_changes_contain_only_modified_fields():
    session = Session.from_data({"language": "en"})
    session.enter(IntentionConfig(intention_id=1))

    changes = session.changes()

    assert set(changes) == {"mode"}
    assert changes["mode"] == {"kind": "IntentionConfig", "intention_id": 1}


def test_selection_freshness():
    now = datetime(2030, 3, 4, 10, 0)
    session = Session()
    session.select(9, now)
    ttl = timedelta(minutes=30)

    assert session.fresh_selection(now + timedelta(minutes=29), ttl) == 9
    assert session.fresh_selection(now + timedelta(minutes=31), ttl) is None


def test_broken_selection_timestamp_is_never_fresh():
    session = Session.from_data({"selection": {"intention_id": 2, "selected_at": "garbage"}})
    assert session.fresh_selection(datetime(2030, 3, 4), timedelta(hours=1)) is None


# ============================================================================
# STORES
# ============================================================================

@pytest.mark.asyncio
async def test_memory_store_keeps_untouched_fields():
    store = MemorySessionStore()
    first = await store.load(1, 1)
    first.language = "uk"
    await store.save(1, 1, first)

    second = await store.load(1, 1)
    second.enter(IntentionConfig(intention_id=3))
    await store.save(1, 1, second)

    raw = store.raw(1, 1)
    assert raw["language"] == "uk"
    assert raw["mode"] == {"kind": "IntentionConfig", "intention_id": 3}


@pytest.mark.asyncio
async def test_fsm_store_writes_only_changed_fields():
    storage = AsyncMock()
    storage.get_data.return_value = {"language": "en", "mode": {"kind": "Idle"}, "selection": None}
    store = FSMSessionStore(storage, bot_id=42)

    session = await store.load(100, 100)
    session.enter(ReflectionCapture())
    await store.save(100, 100, session)

    key, changes = storage.update_data.call_args.args
    assert key.chat_id == 100 and key.bot_id == 42
    assert set(changes) == {"mode"}


@pytest.mark.asyncio
async def test_fsm_store_skips_write_without_changes():
    storage = AsyncMock()
    storage.get_data.return_value = {}
    store = FSMSessionStore(storage, bot_id=42)

    session = await store.load(100, 100)
    await store.save(100, 100, session)

    storage.update_data.assert_not_called()


@pytest.mark.asyncio
async def test_fsm_store_on_aiogram_memory_storage():
    store = FSMSessionStore(MemoryStorage(), bot_id=1)

    session = await store.load(5, 6)
    session.language = "uk"
    session.enter(AwaitingDate(intention_id=8))
    await store.save(5, 6, session)

    restored = await store.load(5, 6)
    assert restored.language == "uk"
    assert restored.mode == AwaitingDate(intention_id=8)

import pytest
from datetime import datetime
from zoneinfo import ZoneInfo

from intentions_bot.crypto import TextCipher
from intentions_bot.dialogue import DialogueController, MemorySessionStore, UserRef
from intentions_bot.messages import MessageService

from tests.fakes import FakeStore, FixedClock, RecordingChannel

TIMEZONE = "Europe/Madrid"
ADMIN_ID = 999
CHAT_ID = 100


@pytest.fixture
def clock():
    """Понедельник 4 марта 2030, 10:00 по Мадриду"""
    return FixedClock(datetime(2030, 3, 4, 10, 0, tzinfo=ZoneInfo(TIMEZONE)))


@pytest.fixture(scope="session")
def messages():
    return MessageService()


@pytest.fixture
def cipher():
    return TextCipher(TextCipher.generate_key())


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def sessions():
    return MemorySessionStore()


@pytest.fixture
def controller(store, channel, sessions, cipher, messages, clock):
    return DialogueController(
        store=store,
        channel=channel,
        sessions=sessions,
        cipher=cipher,
        messages=messages,
        timezone=TIMEZONE,
        admin_telegram_id=ADMIN_ID,
        clock=clock,
    )


@pytest.fixture
def user():
    return UserRef(telegram_id=CHAT_ID, first_name="Olena", username="olena")


@pytest.fixture
def admin():
    return UserRef(telegram_id=ADMIN_ID, first_name="Admin")

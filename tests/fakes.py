"""
In-memory fakes: DataStore с теми же методами, что у DAO, и канал,
который записывает все отправленные сообщения.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Set, Tuple

from intentions_bot.core.exceptions import UserNotFoundError
from intentions_bot.database.user_dao import TIME_FIELDS
from intentions_bot.dialogue.channel import InlineKeyboard, ReplyKeyboard
from intentions_bot.dialogue.session import MemorySessionStore


# ============================================================================
# STORE
# ============================================================================

class FakeUsers:
    def __init__(self):
        self.rows: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1

    async def get_user_by_telegram_id(self, telegram_id: int) -> Optional[Dict[str, Any]]:
        row = self.rows.get(int(telegram_id))
        return dict(row) if row else None

    async def upsert_language(self, telegram_id, language, first_name=None, last_name=None, username=None):
        row = self.rows.get(telegram_id)
        if row is None:
            row = {
                'id': self._next_id,
                'telegram_id': telegram_id,
                'reminder_time': '09:00',
                'evening_time': '20:30',
                'monthly_time': '20:00',
                'weekly_time': '19:00',
                'is_admin': False,
            }
            self._next_id += 1
            self.rows[telegram_id] = row
        row.update(language=language, first_name=first_name, last_name=last_name, username=username)
        return dict(row)

    async def update_profile(self, telegram_id, first_name, last_name, username) -> bool:
        row = self.rows.get(telegram_id)
        if not row:
            return False
        new = {'first_name': first_name, 'last_name': last_name, 'username': username}
        if all(row.get(key) == value for key, value in new.items()):
            return False
        row.update(new)
        return True

    async def update_time(self, telegram_id, field, value):
        if field not in TIME_FIELDS:
            raise ValueError(f"Unknown time field: {field}")
        row = self.rows.get(telegram_id)
        if not row:
            raise UserNotFoundError(telegram_id)
        row[field] = value
        return dict(row)

    async def get_users_by_time(self, field, value):
        if field not in TIME_FIELDS:
            raise ValueError(f"Unknown time field: {field}")
        return [dict(row) for row in sorted(self.rows.values(), key=lambda r: r['id']) if row[field] == value]

    async def get_all_telegram_ids(self) -> List[int]:
        return [row['telegram_id'] for row in sorted(self.rows.values(), key=lambda r: r['id'])]


class FakeCategories:
    def __init__(self):
        self.rows: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1

    async def get_or_create(self, user_id, name):
        name = name.strip()
        for row in self.rows.values():
            if row['user_id'] == user_id and row['name'] == name:
                return dict(row)
        row = {'id': self._next_id, 'user_id': user_id, 'name': name}
        self.rows[row['id']] = row
        self._next_id += 1
        return dict(row)

    async def list_for_user(self, user_id):
        return sorted(
            (dict(row) for row in self.rows.values() if row['user_id'] == user_id),
            key=lambda r: r['name'],
        )

    async def get_for_user(self, user_id, category_id):
        row = self.rows.get(category_id)
        if row and row['user_id'] == user_id:
            return dict(row)
        return None


class FakeIntentions:
    def __init__(self, categories: FakeCategories):
        self.categories = categories
        self.rows: Dict[int, Dict[str, Any]] = {}
        self.dates: Dict[int, date] = {}
        self._next_id = 1

    def _view(self, row):
        category = self.categories.rows.get(row['category_id']) if row['category_id'] else None
        return {
            **row,
            'date': self.dates.get(row['id']),
            'category_name': category['name'] if category else None,
        }

    def _owned(self, user_id, intention_id):
        row = self.rows.get(intention_id)
        return row if row and row['user_id'] == user_id else None

    async def create(self, user_id, payload, category_id=None):
        row = {
            'id': self._next_id,
            'user_id': user_id,
            'ciphertext_b64': payload.ciphertext_b64,
            'iv_b64': payload.iv_b64,
            'auth_tag_b64': payload.auth_tag_b64,
            'category_id': category_id,
            'created_at': self._next_id,
        }
        self.rows[row['id']] = row
        self._next_id += 1
        return {'id': row['id'], 'user_id': user_id, 'category_id': category_id}

    async def list_for_user(self, user_id):
        views = [self._view(row) for row in self.rows.values() if row['user_id'] == user_id]
        return sorted(views, key=lambda r: (r['date'] is None, r['date'] or date.min, r['created_at']))

    async def get_for_user(self, user_id, intention_id):
        row = self._owned(user_id, intention_id)
        return self._view(row) if row else None

    async def update_text(self, user_id, intention_id, payload):
        row = self._owned(user_id, intention_id)
        if not row:
            return False
        row.update(
            ciphertext_b64=payload.ciphertext_b64,
            iv_b64=payload.iv_b64,
            auth_tag_b64=payload.auth_tag_b64,
        )
        return True

    async def delete(self, user_id, intention_id):
        if not self._owned(user_id, intention_id):
            return False
        del self.rows[intention_id]
        self.dates.pop(intention_id, None)
        return True

    async def set_date(self, user_id, intention_id, day):
        if not self._owned(user_id, intention_id):
            return False
        self.dates[intention_id] = day
        return True

    async def set_category(self, user_id, intention_id, category_id):
        row = self._owned(user_id, intention_id)
        category = self.categories.rows.get(category_id)
        if not row or not category or category['user_id'] != user_id:
            return False
        row['category_id'] = category_id
        return True

    async def list_by_date(self, user_id, day):
        return [
            self._view(row) for row in self.rows.values()
            if row['user_id'] == user_id and self.dates.get(row['id']) == day
        ]

    async def list_by_category(self, user_id, category_id):
        return [
            self._view(row) for row in self.rows.values()
            if row['user_id'] == user_id and row['category_id'] == category_id
        ]

    async def list_in_range(self, user_id, start, end):
        views = [
            self._view(row) for row in self.rows.values()
            if row['user_id'] == user_id and row['id'] in self.dates and start <= self.dates[row['id']] <= end
        ]
        return sorted(views, key=lambda r: r['date'])


class FakeReflections:
    def __init__(self):
        self.rows: List[Dict[str, Any]] = []

    async def create(self, user_id, payload, photo_file_ids, day, intention_id=None):
        row = {
            'id': len(self.rows) + 1,
            'user_id': user_id,
            'intention_id': intention_id,
            'ciphertext_b64': payload.ciphertext_b64,
            'iv_b64': payload.iv_b64,
            'auth_tag_b64': payload.auth_tag_b64,
            'photo_file_ids': list(photo_file_ids),
            'date': day,
        }
        self.rows.append(row)
        return dict(row)

    async def list_for_user(self, user_id, limit=20):
        own = [dict(row) for row in self.rows if row['user_id'] == user_id]
        return own[-limit:]

    async def count_in_range(self, user_id, start, end):
        return sum(1 for row in self.rows if row['user_id'] == user_id and start <= row['date'] <= end)


class FakeNotifications:
    """claim() с откатом: запись фиксируется, только если блок не упал"""

    def __init__(self):
        self.sent: Set[Tuple[int, str, date, int]] = set()

    @asynccontextmanager
    async def claim(self, user_id, notification_type, key_date, intention_id=None):
        key = (user_id, notification_type, key_date, intention_id or 0)
        if key in self.sent:
            yield False
            return
        yield True
        self.sent.add(key)


class FakeStore:
    def __init__(self):
        self.users = FakeUsers()
        self.categories = FakeCategories()
        self.intentions = FakeIntentions(self.categories)
        self.reflections = FakeReflections()
        self.notifications = FakeNotifications()


# ============================================================================
# CHANNEL
# ============================================================================

@dataclass
class Sent:
    chat_id: int
    kind: str
    text: Optional[str]
    keyboard: Any = None
    photo: Optional[str] = None

    @property
    def callback_data(self) -> List[str]:
        if isinstance(self.keyboard, InlineKeyboard):
            return self.keyboard.callback_data()
        return []

    @property
    def labels(self) -> List[str]:
        if isinstance(self.keyboard, ReplyKeyboard):
            return self.keyboard.labels
        return []


class RecordingChannel:
    def __init__(self):
        self.sent: List[Sent] = []
        self.failing_chats: Set[int] = set()

    def _check(self, chat_id):
        if chat_id in self.failing_chats:
            raise RuntimeError(f"chat {chat_id} unreachable")

    async def send_text(self, chat_id, text, keyboard=None):
        self._check(chat_id)
        self.sent.append(Sent(chat_id, 'text', text, keyboard))

    async def send_photo(self, chat_id, photo, caption=None, keyboard=None):
        self._check(chat_id)
        self.sent.append(Sent(chat_id, 'photo', caption, keyboard, photo))

    def texts(self, chat_id=None) -> List[str]:
        return [s.text for s in self.sent if chat_id is None or s.chat_id == chat_id]

    def last(self) -> Sent:
        return self.sent[-1]

    def clear(self):
        self.sent.clear()


# ============================================================================
# CLOCK
# ============================================================================

class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


# ============================================================================
# SESSIONS
# ============================================================================

class YieldingSessionStore(MemorySessionStore):
    """Отдаёт управление циклу на load и save, как Redis storage"""

    async def load(self, chat_id, user_id):
        await asyncio.sleep(0)
        return await super().load(chat_id, user_id)

    async def save(self, chat_id, user_id, session):
        await asyncio.sleep(0)
        await super().save(chat_id, user_id, session)

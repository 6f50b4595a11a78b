"""
Unit Tests: Dialogue Controller

Тестирует state machine диалога на fake хранилище:
- регистрация и язык
- создание намерения и конфигурация (дата, категория)
- детальный просмотр, редактирование, удаление
- рефлексии и их изоляция от остальных кнопок
- настройки времени, рассылка
- сохранение сессии только после успешной обработки
"""

import base64
from datetime import date

import pytest
from unittest.mock import AsyncMock

from intentions_bot.core.exceptions import StoreError
from intentions_bot.crypto import EncryptedPayload
from intentions_bot.dialogue import (
    ButtonEvent,
    CommandEvent,
    DialogueController,
    PhotoEvent,
    StartEvent,
    TextEvent,
    UserRef,
)
from intentions_bot.dialogue.modes import (
    AwaitingBroadcastConfirm,
    AwaitingDate,
    AwaitingFreeTextConfirm,
    AwaitingIntentionText,
    AwaitingNewCategory,
    CategoryTarget,
    Idle,
    IntentionConfig,
    ReflectionCapture,
)

from tests.conftest import ADMIN_ID, CHAT_ID


# ============================================================================
# HELPERS
# ============================================================================

async def say(controller, user, text):
    await controller.handle(TextEvent(chat_id=user.telegram_id, user=user, text=text))


async def press(controller, user, data):
    await controller.handle(ButtonEvent(chat_id=user.telegram_id, user=user, data=data))


async def command(controller, user, name, args=""):
    await controller.handle(CommandEvent(chat_id=user.telegram_id, user=user, name=name, args=args))


async def photo(controller, user, file_id, caption=None):
    await controller.handle(PhotoEvent(chat_id=user.telegram_id, user=user, file_id=file_id, caption=caption))


async def mode_of(sessions, user):
    return (await sessions.load(user.telegram_id, user.telegram_id)).mode


async def register(controller, channel, user, label="English"):
    await say(controller, user, label)
    channel.clear()


async def add_intention(controller, channel, user, text="Learn Spanish"):
    """Свободный текст -> Yes -> IntentionConfig"""
    await say(controller, user, text)
    await press(controller, user, "free_text_yes")
    channel.clear()


def decrypt(cipher, row):
    return cipher.decrypt(EncryptedPayload.from_row(row))


# ============================================================================
# REGISTRATION & LANGUAGE
# ============================================================================

@pytest.mark.asyncio
async def test_unknown_user_is_asked_for_language(controller, channel, store, user, messages):
    await say(controller, user, "hello")

    assert channel.texts() == [
        messages.get_message('welcome', 'en'),
        messages.get_message('choose_language', 'en'),
    ]
    assert channel.last().labels == ["English", "Українська"]
    assert store.users.rows == {}


@pytest.mark.asyncio
async def test_welcome_image_is_sent_as_photo(store, channel, sessions, cipher, messages, clock, user):
    controller = DialogueController(
        store, channel, sessions, cipher, messages, clock=clock, welcome_image_path="assets/welcome.jpg"
    )

    await controller.handle(StartEvent(chat_id=CHAT_ID, user=user))

    assert channel.sent[0].kind == 'photo'
    assert channel.sent[0].photo == "assets/welcome.jpg"
    assert channel.sent[0].text == messages.get_message('welcome', 'en')


@pytest.mark.asyncio
async def test_language_selection_creates_user_and_shows_menu(controller, channel, store, user, messages):
    await say(controller, user, "Українська")

    assert store.users.rows[CHAT_ID]['language'] == 'uk'
    assert store.users.rows[CHAT_ID]['first_name'] == "Olena"
    intro, privacy = channel.sent
    assert intro.text == messages.get_message('intro', 'uk')
    assert messages.get_button_text('menu_add', 'uk') in intro.labels
    assert privacy.callback_data == ["learn_more"]


@pytest.mark.asyncio
async def test_language_change_keeps_mode(controller, channel, sessions, user):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)

    await say(controller, user, "Українська")

    assert isinstance(await mode_of(sessions, user), IntentionConfig)


@pytest.mark.asyncio
async def test_start_resets_mode(controller, channel, sessions, user, messages):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)

    await controller.handle(StartEvent(chat_id=CHAT_ID, user=user))

    assert await mode_of(sessions, user) == Idle()
    assert channel.texts()[0] == messages.get_message('intro', 'en')


@pytest.mark.asyncio
async def test_profile_is_refreshed_on_next_message(controller, channel, store, user):
    await register(controller, channel, user)

    renamed = UserRef(telegram_id=CHAT_ID, first_name="Lena", username="lena")
    await say(controller, renamed, "/unknown")

    assert store.users.rows[CHAT_ID]['first_name'] == "Lena"
    assert store.users.rows[CHAT_ID]['username'] == "lena"


@pytest.mark.asyncio
async def test_learn_more(controller, channel, user, messages):
    await register(controller, channel, user)
    await press(controller, user, "learn_more")
    assert channel.texts() == [messages.get_message('optional_info', 'en')]


# ============================================================================
# FREE TEXT & CONFIG
# ============================================================================

@pytest.mark.asyncio
async def test_free_text_offers_to_save(controller, channel, sessions, user, messages):
    await register(controller, channel, user)

    await say(controller, user, "Learn Spanish")

    assert await mode_of(sessions, user) == AwaitingFreeTextConfirm(text="Learn Spanish")
    assert channel.last().text == messages.get_message('free_text_prompt', 'en', text="Learn Spanish")
    assert channel.last().callback_data == ["free_text_yes", "free_text_no"]


@pytest.mark.asyncio
async def test_free_text_yes_creates_encrypted_intention(controller, channel, sessions, store, cipher, user):
    await register(controller, channel, user)

    await say(controller, user, "Learn Spanish")
    await press(controller, user, "free_text_yes")

    (row,) = store.intentions.rows.values()
    assert "Learn Spanish" not in row['ciphertext_b64']
    assert decrypt(cipher, row) == "Learn Spanish"
    assert await mode_of(sessions, user) == IntentionConfig(intention_id=row['id'])
    assert channel.last().labels == ["Add date", "Add category", "Done"]


@pytest.mark.asyncio
async def test_free_text_no_returns_to_menu(controller, channel, sessions, store, user, messages):
    await register(controller, channel, user)

    await say(controller, user, "Learn Spanish")
    await press(controller, user, "free_text_no")

    assert store.intentions.rows == {}
    assert await mode_of(sessions, user) == Idle()
    assert channel.last().text == messages.get_message('other_action', 'en')


@pytest.mark.asyncio
async def test_blank_and_command_text_are_ignored_in_idle(controller, channel, sessions, user):
    await register(controller, channel, user)

    await say(controller, user, "   ")
    await say(controller, user, "/whatever")

    assert channel.sent == []
    assert await mode_of(sessions, user) == Idle()


@pytest.mark.asyncio
async def test_config_add_date_then_done(controller, channel, sessions, store, user, messages):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)

    await say(controller, user, "Add date")
    assert await mode_of(sessions, user) == AwaitingDate(intention_id=1, in_config=True)

    await say(controller, user, "tomorrow")
    assert store.intentions.dates[1].isoformat() == "2030-03-05"
    assert await mode_of(sessions, user) == IntentionConfig(intention_id=1)
    assert messages.get_message('date_saved', 'en', 'intentions', date="2030-03-05") in channel.texts()

    channel.clear()
    await say(controller, user, "Done")
    assert await mode_of(sessions, user) == Idle()
    summary = channel.last().text
    assert "Learn Spanish" in summary
    assert "2030-03-05" in summary


@pytest.mark.parametrize("text, key", [
    ("2030-02-30", 'invalid_date_calendar'),
    ("2020-01-01", 'invalid_date_past'),
    ("banana", 'invalid_date_format'),
])
@pytest.mark.asyncio
async def test_rejected_dates_keep_waiting(controller, channel, sessions, store, user, messages, text, key):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)
    await say(controller, user, "Add date")
    channel.clear()

    await say(controller, user, text)

    assert channel.texts() == [messages.get_message(key, 'en', 'intentions')]
    assert await mode_of(sessions, user) == AwaitingDate(intention_id=1, in_config=True)
    assert store.intentions.dates == {}


@pytest.mark.asyncio
async def test_menu_during_config_leaves_config(controller, channel, sessions, user, messages):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)

    await say(controller, user, "My intentions")

    assert channel.texts()[0] == messages.get_message('main_menu_title', 'en')
    assert await mode_of(sessions, user) == Idle()


@pytest.mark.asyncio
async def test_config_labels_work_in_other_locale(controller, channel, sessions, user):
    await register(controller, channel, user, label="Українська")
    await add_intention(controller, channel, user)

    await say(controller, user, "Готово")

    assert await mode_of(sessions, user) == Idle()


# ============================================================================
# CATEGORIES
# ============================================================================

@pytest.mark.asyncio
async def test_new_category_attached_during_config(controller, channel, sessions, store, user):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)

    await say(controller, user, "Add category")
    assert channel.last().callback_data == ["cat_new:1"]

    await press(controller, user, "cat_new:1")
    assert await mode_of(sessions, user) == AwaitingNewCategory(
        target=CategoryTarget.ATTACH, intention_id=1, in_config=True
    )

    await say(controller, user, "Languages")
    assert store.intentions.rows[1]['category_id'] == 1
    assert await mode_of(sessions, user) == IntentionConfig(intention_id=1)

    await say(controller, user, "Done")
    assert "Languages" in channel.last().text


@pytest.mark.asyncio
async def test_pick_existing_category_from_detail_view(controller, channel, sessions, store, user):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)
    await say(controller, user, "Done")
    await store.categories.get_or_create(1, "Health")

    await press(controller, user, "intent_cat:1")
    assert channel.last().callback_data == ["cat_pick:1:1", "cat_new:1"]

    await press(controller, user, "cat_pick:1:1")

    assert store.intentions.rows[1]['category_id'] == 1
    assert await mode_of(sessions, user) == Idle()
    assert "Health" in channel.last().text


@pytest.mark.asyncio
async def test_manage_categories_and_add_intention_to_category(controller, channel, sessions, store, user, cipher):
    await register(controller, channel, user)

    await say(controller, user, "Categories")
    assert channel.last().callback_data == ["cat_add"]

    await press(controller, user, "cat_add")
    await say(controller, user, "Health")
    assert await mode_of(sessions, user) == Idle()
    assert channel.last().callback_data == ["cat_add_intention:1", "cat_back"]

    await press(controller, user, "cat_add_intention:1")
    assert await mode_of(sessions, user) == AwaitingIntentionText(category_id=1)

    await say(controller, user, "Run 5k")
    (row,) = store.intentions.rows.values()
    assert row['category_id'] == 1

    channel.clear()
    await press(controller, user, "cat_show:1")
    assert "Run 5k" in channel.last().text


@pytest.mark.asyncio
async def test_foreign_category_is_not_available(controller, channel, store, user, messages):
    await register(controller, channel, user)
    await store.categories.get_or_create(77, "Secret")

    await press(controller, user, "cat_show:1")

    assert channel.texts() == [messages.get_message('not_available', 'en')]


# ============================================================================
# DETAIL VIEW, EDIT, DELETE
# ============================================================================

@pytest.mark.asyncio
async def test_show_and_select_intention(controller, channel, user):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)
    await say(controller, user, "Done")
    channel.clear()

    await say(controller, user, "My intentions")
    assert channel.last().callback_data == ["intent_select:1"]
    assert channel.last().keyboard.buttons[0].text == "Learn Spanish"

    await press(controller, user, "intent_select:1")
    assert "Learn Spanish" in channel.last().text
    assert "intent_delete:1" in channel.last().callback_data


@pytest.mark.asyncio
async def test_date_from_detail_view_finalizes(controller, channel, sessions, store, user):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)
    await say(controller, user, "Done")

    await press(controller, user, "intent_add_date:1")
    assert await mode_of(sessions, user) == AwaitingDate(intention_id=1, in_config=False)

    await say(controller, user, "10.03.2030")

    assert store.intentions.dates[1].isoformat() == "2030-03-10"
    assert await mode_of(sessions, user) == Idle()


@pytest.mark.asyncio
async def test_edit_replaces_text_in_place(controller, channel, store, cipher, user, messages):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)
    await say(controller, user, "Done")

    await press(controller, user, "intent_edit:1")
    await say(controller, user, "Learn Italian")

    assert list(store.intentions.rows) == [1]
    assert decrypt(cipher, store.intentions.rows[1]) == "Learn Italian"
    assert channel.last().text == messages.get_message('intention_updated', 'en', 'intentions')


@pytest.mark.asyncio
async def test_delete_own_intention(controller, channel, store, user, messages):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)
    await say(controller, user, "Done")
    channel.clear()

    await press(controller, user, "intent_delete:1")

    assert store.intentions.rows == {}
    assert channel.texts() == [messages.get_message('intention_deleted', 'en', 'intentions')]


@pytest.mark.asyncio
async def test_forged_ids_never_touch_foreign_data(controller, channel, store, user, messages):
    other = UserRef(telegram_id=200)
    await register(controller, channel, other)
    await add_intention(controller, channel, other, "Other's plan")
    await register(controller, channel, user)

    await press(controller, user, "intent_delete:1")
    assert channel.texts() == [messages.get_message('intention_deleted', 'en', 'intentions')]
    assert 1 in store.intentions.rows

    channel.clear()
    for data in ("intent_select:1", "intent_edit:1", "intent_add_date:1", "cat_new:1"):
        await press(controller, user, data)
    assert channel.texts() == [messages.get_message('not_available', 'en')] * 4


@pytest.mark.asyncio
async def test_malformed_and_unknown_callbacks_are_dropped(controller, channel, user):
    await register(controller, channel, user)

    await press(controller, user, "intent_select:abc")
    await press(controller, user, "intent_select:-3")
    await press(controller, user, "something_else")

    assert channel.sent == []


@pytest.mark.asyncio
async def test_undecryptable_text_shows_placeholder(controller, channel, store, user, messages):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)
    await say(controller, user, "Done")
    store.intentions.rows[1]['ciphertext_b64'] = base64.b64encode(b"garbage").decode()
    channel.clear()

    await say(controller, user, "My intentions")

    assert channel.last().keyboard.buttons[0].text == messages.get_message('unable_to_decrypt', 'en')


# ============================================================================
# REFLECTIONS
# ============================================================================

async def open_detail_and_reflect(controller, channel, user):
    await add_intention(controller, channel, user)
    await say(controller, user, "Done")
    await press(controller, user, "intent_select:1")
    await press(controller, user, "REFLECT_YES")
    channel.clear()


@pytest.mark.asyncio
async def test_reflection_collects_text_and_photos(controller, channel, sessions, store, cipher, user, messages):
    await register(controller, channel, user)
    await open_detail_and_reflect(controller, channel, user)

    await say(controller, user, "Felt great")
    await photo(controller, user, "photo-1", caption="sunset")
    await say(controller, user, "Done ✨")

    (reflection,) = store.reflections.rows
    assert decrypt(cipher, reflection) == "Felt great\nsunset"
    assert reflection['photo_file_ids'] == ["photo-1"]
    assert reflection['intention_id'] == 1
    assert reflection['date'].isoformat() == "2030-03-04"
    assert await mode_of(sessions, user) == Idle()
    assert channel.texts() == [messages.get_message('reflection_saved', 'en', 'reflections')]


@pytest.mark.asyncio
async def test_reflection_ignores_everything_else(controller, channel, sessions, store, user, messages):
    await register(controller, channel, user)
    await open_detail_and_reflect(controller, channel, user)

    await say(controller, user, "My intentions")
    await say(controller, user, "English")
    await controller.handle(StartEvent(chat_id=CHAT_ID, user=user))
    await command(controller, user, "reminder", "08:00")
    await press(controller, user, "REFLECT_NO")
    assert channel.sent == []

    await press(controller, user, "intent_delete:1")
    assert channel.texts() == [messages.get_message('finish_reflection_first', 'en')]
    assert 1 in store.intentions.rows
    assert store.users.rows[CHAT_ID]['reminder_time'] == '09:00'
    assert isinstance(await mode_of(sessions, user), ReflectionCapture)


@pytest.mark.asyncio
async def test_empty_reflection_is_discarded(controller, channel, store, user, messages):
    await register(controller, channel, user)
    await open_detail_and_reflect(controller, channel, user)

    await say(controller, user, "Done ✨")

    assert store.reflections.rows == []
    assert channel.texts() == [messages.get_message('reflection_empty', 'en', 'reflections')]


@pytest.mark.asyncio
async def test_cancel_reflection_saves_nothing(controller, channel, sessions, store, user):
    await register(controller, channel, user)
    await open_detail_and_reflect(controller, channel, user)

    await say(controller, user, "some words")
    await say(controller, user, "Cancel")

    assert store.reflections.rows == []
    assert await mode_of(sessions, user) == Idle()


@pytest.mark.asyncio
async def test_stale_selection_gives_general_reflection(controller, channel, sessions, clock, user):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)
    await say(controller, user, "Done")
    await press(controller, user, "intent_select:1")

    clock.advance(minutes=31)
    await press(controller, user, "REFLECT_YES")

    assert (await mode_of(sessions, user)).intention_id is None


@pytest.mark.asyncio
async def test_reflect_no_outside_reflection(controller, channel, user, messages):
    await register(controller, channel, user)
    await press(controller, user, "REFLECT_NO")
    assert channel.texts() == [messages.get_message('reflection_declined', 'en', 'reflections')]


@pytest.mark.asyncio
async def test_show_reflections_with_photos(controller, channel, store, cipher, user):
    await register(controller, channel, user)
    await store.reflections.create(1, cipher.encrypt("walked"), ["p1", "p2"], date(2030, 3, 1))
    await store.reflections.create(1, cipher.encrypt(""), [], date(2030, 3, 2))

    await say(controller, user, "Reflections")

    header, first, second, third = channel.sent
    assert header.callback_data == ["REFLECT_YES"]
    assert (first.kind, first.photo) == ('photo', "p1")
    assert "walked" in first.text
    assert (second.kind, second.photo, second.text) == ('photo', "p2", None)
    assert third.kind == 'text'


@pytest.mark.asyncio
async def test_feedback_text_and_photo(controller, channel, sessions, store, cipher, user):
    await register(controller, channel, user)
    await add_intention(controller, channel, user)
    await say(controller, user, "Done")

    await press(controller, user, "feedback_write:1")
    await say(controller, user, "Nice day")
    await press(controller, user, "feedback_photo:1")
    await photo(controller, user, "photo-9", caption="view")

    text_row, photo_row = store.reflections.rows
    assert decrypt(cipher, text_row) == "Nice day"
    assert text_row['intention_id'] == 1
    assert photo_row['photo_file_ids'] == ["photo-9"]
    assert decrypt(cipher, photo_row) == "view"
    assert await mode_of(sessions, user) == Idle()


# ============================================================================
# COMMANDS
# ============================================================================

@pytest.mark.asyncio
async def test_time_command_updates_user(controller, channel, store, user, messages):
    await register(controller, channel, user)

    await command(controller, user, "evening", "7:45")

    assert store.users.rows[CHAT_ID]['evening_time'] == "07:45"
    assert channel.texts() == [messages.get_message('evening_set', 'en', time="07:45")]


@pytest.mark.asyncio
async def test_invalid_time_is_rejected(controller, channel, store, user, messages):
    await register(controller, channel, user)

    await command(controller, user, "weekly", "25:00")

    assert store.users.rows[CHAT_ID]['weekly_time'] == "19:00"
    assert channel.texts() == [messages.get_message('invalid_time', 'en')]


@pytest.mark.asyncio
async def test_time_command_requires_registration(controller, channel, store, user, messages):
    await command(controller, user, "reminder", "08:00")
    assert channel.texts()[-1] == messages.get_message('choose_language', 'en')


# ============================================================================
# BROADCAST
# ============================================================================

@pytest.mark.asyncio
async def test_broadcast_label_is_plain_text_for_regular_user(controller, channel, sessions, user):
    await register(controller, channel, user)

    await say(controller, user, "Broadcast")

    assert await mode_of(sessions, user) == AwaitingFreeTextConfirm(text="Broadcast")


@pytest.mark.asyncio
async def test_admin_broadcast(controller, channel, sessions, user, admin, messages):
    await register(controller, channel, user)
    await register(controller, channel, admin)
    third = UserRef(telegram_id=300)
    await register(controller, channel, third)
    channel.failing_chats.add(300)

    await say(controller, admin, "Broadcast")
    await say(controller, admin, "Hi <all>")
    assert await mode_of(sessions, admin) == AwaitingBroadcastConfirm(text="Hi <all>")

    channel.clear()
    await press(controller, admin, "broadcast_yes")

    assert [(s.chat_id, s.text) for s in channel.sent[:2]] == [
        (CHAT_ID, "Hi &lt;all&gt;"),
        (ADMIN_ID, "Hi &lt;all&gt;"),
    ]
    assert channel.last().text == messages.get_message('broadcast_sent', 'en', sent=2, total=3)
    assert await mode_of(sessions, admin) == Idle()


@pytest.mark.asyncio
async def test_broadcast_confirm_from_non_admin_is_refused(controller, channel, sessions, user, messages):
    await register(controller, channel, user)

    await press(controller, user, "broadcast_yes")

    assert channel.texts() == [messages.get_message('other_action', 'en')]


# ============================================================================
# SESSION PERSISTENCE
# ============================================================================

@pytest.mark.asyncio
async def test_failed_store_keeps_previous_session(controller, channel, sessions, store, user):
    await register(controller, channel, user)
    await say(controller, user, "Learn Spanish")
    store.intentions.create = AsyncMock(side_effect=StoreError("create_intention", "db down"))

    with pytest.raises(StoreError):
        await press(controller, user, "free_text_yes")

    assert sessions.raw(CHAT_ID, CHAT_ID)['mode'] == {"kind": "AwaitingFreeTextConfirm", "text": "Learn Spanish"}

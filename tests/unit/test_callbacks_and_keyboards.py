"""
Unit Tests: Callback Data & Keyboards
"""

import pytest

from intentions_bot.dialogue import callbacks
from intentions_bot.dialogue.callbacks import Actions, Callbacks, ParsedCallback
from intentions_bot.dialogue.keyboards import KeyboardFactory
from intentions_bot.messages.constants import MessageConstants


def test_build_and_parse_two_ids():
    data = callbacks.build(Actions.CAT_PICK, 5, 7)
    assert data == "cat_pick:5:7"
    assert callbacks.parse(data) == ParsedCallback(action="cat_pick", ids=(5, 7))


def test_parse_plain_action():
    parsed = callbacks.parse(Callbacks.REFLECT_YES)
    assert parsed.action == "REFLECT_YES"
    assert parsed.first_id is None


@pytest.mark.parametrize("data", ["", "intent_select:abc", "intent_select:-1", "intent_select:0", "intent_select:"])
def test_malformed_ids_are_rejected(data):
    assert callbacks.parse(data) is None


@pytest.fixture
def keyboards(messages):
    return KeyboardFactory(messages)


def test_main_menu_broadcast_only_for_admin(keyboards, messages):
    broadcast = messages.get_button_text('menu_broadcast', 'en')
    assert broadcast not in keyboards.main_menu('en').labels
    assert broadcast in keyboards.main_menu('en', is_admin=True).labels


def test_language_keyboard_has_both_languages(keyboards):
    assert keyboards.language().labels == ["English", "Українська"]


def test_intention_detail_buttons(keyboards):
    data = keyboards.intention_detail(12, has_date=False, locale='en').callback_data()
    assert data == [
        "intent_add_date:12",
        "intent_cat:12",
        "intent_edit:12",
        "intent_delete:12",
        "REFLECT_YES",
    ]


def test_evening_prompt_targets_intention(keyboards):
    data = keyboards.evening_prompt(4, 'uk').callback_data()
    assert "REFLECT_YES:4" in data
    assert "feedback_write:4" in data
    assert "feedback_photo:4" in data
    assert "feedback_skip" in data


def test_category_picker_has_new_category(keyboards):
    keyboard = keyboards.category_picker(3, [{'id': 1, 'name': 'Health'}], 'en')
    assert keyboard.callback_data() == ["cat_pick:3:1", "cat_new:3"]


def test_all_callback_data_fits_telegram_limit(keyboards):
    limit = MessageConstants.LIMITS['callback_data']
    big = 2 ** 31 - 1
    keyboard = keyboards.category_picker(big, [{'id': big, 'name': 'x'}], 'en')
    assert all(len(data.encode()) <= limit for data in keyboard.callback_data())

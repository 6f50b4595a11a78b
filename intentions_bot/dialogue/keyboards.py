"""
Keyboards - построение клавиатур диалога

Reply клавиатуры (главное меню, конфигурация намерения, рефлексия) и
inline клавиатуры с id в callback data.
"""

from typing import Any, Dict, Iterable, List, Optional

from . import callbacks
from .callbacks import Actions, Callbacks
from .channel import InlineButton, InlineKeyboard, ReplyKeyboard


class KeyboardFactory:
    """Клавиатуры на языке пользователя"""

    def __init__(self, messages):
        self.messages = messages

    def _button(self, key: str, locale: str) -> str:
        return self.messages.get_button_text(key, locale)

    # ========== Reply keyboards ==========

    def main_menu(self, locale: str, is_admin: bool = False) -> ReplyKeyboard:
        rows = [
            [self._button('menu_add', locale)],
            [self._button('menu_show', locale), self._button('menu_categories', locale)],
            [self._button('menu_reflections', locale)],
        ]
        if is_admin:
            rows.append([self._button('menu_broadcast', locale)])
        return ReplyKeyboard(rows=rows)

    def language(self) -> ReplyKeyboard:
        return ReplyKeyboard(rows=[[
            self._button('language_en', 'en'),
            self._button('language_uk', 'uk'),
        ]])

    def intention_config(self, locale: str) -> ReplyKeyboard:
        return ReplyKeyboard(rows=[
            [self._button('config_add_date', locale), self._button('config_add_category', locale)],
            [self._button('config_done', locale)],
        ])

    def reflection_mode(self, locale: str) -> ReplyKeyboard:
        return ReplyKeyboard(rows=[
            [self._button('reflection_done', locale)],
            [self._button('reflection_cancel', locale)],
        ])

    # ========== Inline keyboards ==========

    def static(self, key: str, locale: str) -> Optional[InlineKeyboard]:
        return self.messages.get_keyboard(key, locale)

    def intention_list(self, items: Iterable[Dict[str, Any]]) -> InlineKeyboard:
        """items: {'id', 'label'} - label уже обрезан"""
        return InlineKeyboard(rows=[
            [InlineButton(item['label'], callbacks.build(Actions.INTENT_SELECT, item['id']))]
            for item in items
        ])

    def intention_detail(self, intention_id: int, has_date: bool, locale: str) -> InlineKeyboard:
        date_key = 'edit_date' if has_date else 'add_date'
        return InlineKeyboard(rows=[
            [
                InlineButton(self._button(date_key, locale), callbacks.build(Actions.INTENT_ADD_DATE, intention_id)),
                InlineButton(self._button('category', locale), callbacks.build(Actions.INTENT_CAT, intention_id)),
            ],
            [
                InlineButton(self._button('edit', locale), callbacks.build(Actions.INTENT_EDIT, intention_id)),
                InlineButton(self._button('delete', locale), callbacks.build(Actions.INTENT_DELETE, intention_id)),
            ],
            [
                InlineButton(self._button('leave_reflection', locale), Callbacks.REFLECT_YES),
            ],
        ])

    def category_picker(self, intention_id: int, categories: List[Dict[str, Any]], locale: str) -> InlineKeyboard:
        rows = [
            [InlineButton(category['name'][:64], callbacks.build(Actions.CAT_PICK, intention_id, category['id']))]
            for category in categories
        ]
        rows.append([InlineButton(self._button('new_category', locale), callbacks.build(Actions.CAT_NEW, intention_id))])
        return InlineKeyboard(rows=rows)

    def category_list(self, categories: List[Dict[str, Any]], locale: str) -> InlineKeyboard:
        rows = [
            [InlineButton(category['name'][:64], callbacks.build(Actions.CAT_SHOW, category['id']))]
            for category in categories
        ]
        rows.append([InlineButton(self._button('add_category', locale), Callbacks.CAT_ADD)])
        return InlineKeyboard(rows=rows)

    def category_detail(self, category_id: int, locale: str) -> InlineKeyboard:
        return InlineKeyboard(rows=[
            [InlineButton(self._button('add_intention', locale), callbacks.build(Actions.CAT_ADD_INTENTION, category_id))],
            [InlineButton(self._button('back', locale), Callbacks.CAT_BACK)],
        ])

    def reflection_prompt(self, locale: str, intention_id: Optional[int] = None) -> InlineKeyboard:
        data = callbacks.build(Actions.REFLECT_YES, intention_id) if intention_id else Callbacks.REFLECT_YES
        return InlineKeyboard(rows=[
            [InlineButton(self._button('leave_reflection', locale), data)],
            [InlineButton(self._button('not_now', locale), Callbacks.REFLECT_NO)],
        ])

    def new_reflection(self, locale: str) -> InlineKeyboard:
        return InlineKeyboard(rows=[
            [InlineButton(self._button('new_reflection', locale), Callbacks.REFLECT_YES)],
        ])

    def evening_prompt(self, intention_id: int, locale: str) -> InlineKeyboard:
        return InlineKeyboard(rows=[
            [InlineButton(self._button('leave_reflection', locale), callbacks.build(Actions.REFLECT_YES, intention_id))],
            [
                InlineButton(self._button('write_feedback', locale), callbacks.build(Actions.FEEDBACK_WRITE, intention_id)),
                InlineButton(self._button('add_photo', locale), callbacks.build(Actions.FEEDBACK_PHOTO, intention_id)),
            ],
            [InlineButton(self._button('skip_today', locale), Callbacks.FEEDBACK_SKIP)],
        ])

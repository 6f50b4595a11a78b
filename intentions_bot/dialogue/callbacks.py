"""
Callback Data - константы и разбор данных inline кнопок

Кнопки с идентификатором имеют вид "<action>:<id>" или
"<action>:<intention_id>:<category_id>".
"""

from dataclasses import dataclass
from typing import Optional, Tuple


class Callbacks:
    """Данные кнопок без параметров"""

    LEARN_MORE = "learn_more"
    FREE_TEXT_YES = "free_text_yes"
    FREE_TEXT_NO = "free_text_no"
    CAT_ADD = "cat_add"
    CAT_BACK = "cat_back"
    REFLECT_YES = "REFLECT_YES"
    REFLECT_NO = "REFLECT_NO"
    FEEDBACK_WRITE = "feedback_write"
    FEEDBACK_PHOTO = "feedback_photo"
    FEEDBACK_SKIP = "feedback_skip"
    START_NEW_MONTH = "start_new_month"
    BROADCAST_YES = "broadcast_yes"
    BROADCAST_NO = "broadcast_no"


class Actions:
    """Действия с параметром"""

    INTENT_SELECT = "intent_select"
    INTENT_ADD_DATE = "intent_add_date"
    INTENT_DATE = "intent_date"
    INTENT_DONE = "intent_done"
    INTENT_EDIT = "intent_edit"
    INTENT_DELETE = "intent_delete"
    INTENT_CAT = "intent_cat"
    CAT_PICK = "cat_pick"
    CAT_NEW = "cat_new"
    CAT_SHOW = "cat_show"
    CAT_ADD_INTENTION = "cat_add_intention"
    # Эти три бывают и без id
    REFLECT_YES = Callbacks.REFLECT_YES
    FEEDBACK_WRITE = Callbacks.FEEDBACK_WRITE
    FEEDBACK_PHOTO = Callbacks.FEEDBACK_PHOTO


@dataclass(frozen=True)
class ParsedCallback:
    action: str
    ids: Tuple[int, ...] = ()

    @property
    def first_id(self) -> Optional[int]:
        return self.ids[0] if self.ids else None


def build(action: str, *ids: int) -> str:
    """build('cat_pick', 5, 7) -> 'cat_pick:5:7'"""
    return ":".join([action, *(str(value) for value in ids)])


def parse(data: str) -> Optional[ParsedCallback]:
    """
    Разобрать callback data

    Returns:
        ParsedCallback или None, если id не числовые
    """
    if not data:
        return None

    action, *raw_ids = data.split(":")
    try:
        ids = tuple(int(value) for value in raw_ids)
    except ValueError:
        return None

    if any(value <= 0 for value in ids):
        return None

    return ParsedCallback(action=action, ids=ids)

"""
Date Lexicon - словари для нормализации дат на русском и украинском

normalize_date_text() приводит ввод пользователя к английским токенам,
которые понимает dateparser: "через неделю" -> "in 1 week".
"""

import re
from typing import Dict, List

MONTHS_MAP: Dict[str, str] = {
    # RU
    "января": "january",
    "январь": "january",
    "февраля": "february",
    "февраль": "february",
    "марта": "march",
    "март": "march",
    "апреля": "april",
    "апрель": "april",
    "мая": "may",
    "май": "may",
    "июня": "june",
    "июнь": "june",
    "июля": "july",
    "июль": "july",
    "августа": "august",
    "август": "august",
    "сентября": "september",
    "сентябрь": "september",
    "октября": "october",
    "октябрь": "october",
    "ноября": "november",
    "ноябрь": "november",
    "декабря": "december",
    "декабрь": "december",
    # UA
    "січня": "january",
    "січень": "january",
    "лютого": "february",
    "лютий": "february",
    "березня": "march",
    "березень": "march",
    "квітня": "april",
    "квітень": "april",
    "травня": "may",
    "травень": "may",
    "червня": "june",
    "червень": "june",
    "липня": "july",
    "липень": "july",
    "серпня": "august",
    "серпень": "august",
    "вересня": "september",
    "вересень": "september",
    "жовтня": "october",
    "жовтень": "october",
    "листопада": "november",
    "листопад": "november",
    "грудня": "december",
    "грудень": "december",
}

WEEKDAYS_MAP: Dict[str, str] = {
    # RU
    "понедельник": "monday",
    "вторник": "tuesday",
    "среда": "wednesday",
    "среду": "wednesday",
    "четверг": "thursday",
    "пятница": "friday",
    "пятницу": "friday",
    "суббота": "saturday",
    "субботу": "saturday",
    "воскресенье": "sunday",
    # RU short
    "пн": "monday",
    "вт": "tuesday",
    "ср": "wednesday",
    "чт": "thursday",
    "пт": "friday",
    "сб": "saturday",
    "вс": "sunday",
    # UA
    "понеділок": "monday",
    "вівторок": "tuesday",
    "середа": "wednesday",
    "середу": "wednesday",
    "четвер": "thursday",
    "п'ятниця": "friday",
    "п'ятницю": "friday",
    "пятниця": "friday",
    "субота": "saturday",
    "суботу": "saturday",
    "неділя": "sunday",
    "неділю": "sunday",
}

RELATIVE_MAP: Dict[str, str] = {
    # days
    "сегодня": "today",
    "завтра": "tomorrow",
    "послезавтра": "in 2 days",
    "вчера": "yesterday",
    "сьогодні": "today",
    "післязавтра": "in 2 days",
    "вчора": "yesterday",
    # "через 3 дня" / "за 2 дні"
    "через": "in",
    "за": "in",
    # weeks
    "неделю": "week",
    "недели": "weeks",
    "недель": "weeks",
    "тиждень": "week",
    "тижні": "weeks",
    "тижнів": "weeks",
    # day units
    "день": "day",
    "дня": "days",
    "дней": "days",
    "дні": "days",
    "днів": "days",
    # hours
    "час": "hour",
    "часа": "hours",
    "часов": "hours",
    "годину": "hour",
    "години": "hours",
    "годин": "hours",
    # months
    "месяц": "month",
    "месяца": "months",
    "месяцев": "months",
    "місяць": "month",
    "місяці": "months",
    "місяців": "months",
    # "следующую пятницу" / "наступну п'ятницю"
    "следующий": "next",
    "следующую": "next",
    "следующее": "next",
    "наступний": "next",
    "наступну": "next",
    "наступне": "next",
}

# "в пятницу", "у п'ятницю", "on 5 march" - предлог даты не меняет
PREPOSITIONS = {"в", "во", "у", "на", "on"}

# ʼ (U+02BC), ’ (U+2019), ` -> обычный апостроф
_APOSTROPHES = re.compile(r"[’ʼ`]")
_PUNCTUATION = re.compile(r"[.,!?;:()]")
_WHITESPACE = re.compile(r"\s+")

_UNITS = {"day", "week", "month", "hour"}


def normalize_date_text(raw: str) -> str:
    """
    Нормализовать текст даты

    Lowercase, единый апостроф, пунктуация -> пробелы, затем каждый токен
    заменяется через MONTHS_MAP / WEEKDAYS_MAP / RELATIVE_MAP, предлоги
    отбрасываются.

    Note: точки тоже удаляются, поэтому "12.05.2030" сюда приходить
    не должен - dotted формат разбирается раньше.
    """
    lowered = _APOSTROPHES.sub("'", raw.lower())
    lowered = _PUNCTUATION.sub(" ", lowered)
    lowered = _WHITESPACE.sub(" ", lowered).strip()
    if not lowered:
        return ""

    normalized: List[str] = []
    for token in lowered.split(" "):
        if token in PREPOSITIONS:
            continue
        if token in MONTHS_MAP:
            normalized.append(MONTHS_MAP[token])
        elif token in WEEKDAYS_MAP:
            normalized.append(WEEKDAYS_MAP[token])
        elif token in RELATIVE_MAP:
            normalized.extend(RELATIVE_MAP[token].split(" "))
        else:
            normalized.append(token)

    return " ".join(_fill_missing_counts(normalized))


def _fill_missing_counts(tokens: List[str]) -> List[str]:
    """'in week' -> 'in 1 week' (dateparser не понимает единицу без числа)"""
    result: List[str] = []
    for index, token in enumerate(tokens):
        result.append(token)
        if token == "in" and index + 1 < len(tokens) and tokens[index + 1] in _UNITS:
            result.append("1")
    return result

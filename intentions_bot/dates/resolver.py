"""
Date Resolver - разбор дат, введённых пользователем

Цепочка стратегий, первая сработавшая побеждает:

1. ISO ``YYYY-MM-DD`` и год впереди ``YYYY-M-D``, ``YYYY/MM/DD``
2. Dotted ``D.M.YYYY`` / ``DD.MM.YYYY``
3. Лексическая нормализация (RU/UA -> EN) + today / tomorrow / yesterday
4. Только число месяца: ближайшее такое число, не раньше сегодня
5. День недели: ``friday`` (сегодня тоже подходит), ``next friday`` (строго после)
6. Natural-language fallback через dateparser

Каждая стратегия возвращает Resolved, Invalid или None (не её формат).
Invalid прерывает цепочку сразу. Итоговая дата не может быть раньше
сегодняшнего дня в опорной таймзоне.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

import dateparser

from .calendar import DEFAULT_TIMEZONE, anchored_now, is_valid_calendar_date
from .lexicon import normalize_date_text

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    MALFORMED = "malformed"
    INVALID_CALENDAR = "invalid_calendar"
    PAST = "past"


@dataclass(frozen=True)
class Resolved:
    value: date

    @property
    def canonical(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class Invalid:
    reason: RejectionReason


Outcome = Union[Resolved, Invalid]

# 2030-03-05, 2030-3-5, 2030/03/05, 2030.3.5: год первый, за ним месяц
_ISO_PATTERN = re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})$")
_DOTTED_PATTERN = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
_DAY_ONLY_PATTERN = re.compile(r"^(\d{1,2})$")

_MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]
_MONTH_ALTERNATION = "|".join(_MONTH_NAMES)
# "5 march 2030" / "5 march"
_DAY_FIRST = re.compile(rf"\b(\d{{1,2}}) ({_MONTH_ALTERNATION})\b(?: (\d{{4}}))?")
# "march 5 2030" / "march 5"
_MONTH_FIRST = re.compile(rf"\b({_MONTH_ALTERNATION}) (\d{{1,2}})\b(?: (\d{{4}}))?")

_EXACT_WORDS = {"today": 0, "tomorrow": 1, "yesterday": -1}

_WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
_WEEKDAY_ALTERNATION = "|".join(_WEEKDAY_NAMES)
_WEEKDAY_PATTERN = re.compile(rf"^(next )?({_WEEKDAY_ALTERNATION})$")

# число месяца ищется не дальше, чем на год вперёд
_DAY_ONLY_HORIZON_MONTHS = 12

# год для проверки дня без года: високосный, чтобы 29 февраля прошло
_LEAP_YEAR = 2000


def _explicit_components(normalized: str) -> Optional[Tuple[int, int, Optional[int]]]:
    """Явные день/месяц/(год) из нормализованного текста"""
    match = _DAY_FIRST.search(normalized)
    if match:
        day, month_name, year = match.groups()
    else:
        match = _MONTH_FIRST.search(normalized)
        if not match:
            return None
        month_name, day, year = match.groups()

    month = _MONTH_NAMES.index(month_name) + 1
    return int(day), month, int(year) if year else None


class DateResolver:
    """
    Разбор даты относительно anchored today

    Locale влияет только на выбор текста сообщения об ошибке у вызывающего,
    RU/UA словари применяются всегда.
    """

    def __init__(self, timezone: str = DEFAULT_TIMEZONE):
        self.timezone = timezone

    def resolve(
        self,
        text: str,
        locale: str = "en",
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Outcome:
        if now is None:
            now = datetime.combine(today, time(12, 0)) if today else anchored_now(self.timezone)
        if today is None:
            today = now.date()

        raw = (text or "").strip()
        if not raw:
            return Invalid(RejectionReason.MALFORMED)

        strategies: List[Callable[[str, datetime], Optional[Outcome]]] = [
            self._parse_iso,
            self._parse_dotted,
            self._parse_exact_words,
            self._parse_day_only,
            self._parse_weekday,
            self._parse_natural,
        ]

        outcome: Optional[Outcome] = None
        for strategy in strategies:
            outcome = strategy(raw, now)
            if outcome is not None:
                break

        if outcome is None:
            outcome = Invalid(RejectionReason.MALFORMED)

        if isinstance(outcome, Resolved) and outcome.value < today:
            outcome = Invalid(RejectionReason.PAST)

        logger.debug(f"📅 Date input ({len(raw)} chars, locale={locale}) -> {outcome}")
        return outcome

    @staticmethod
    def _parse_iso(raw: str, now: datetime) -> Optional[Outcome]:
        match = _ISO_PATTERN.match(raw)
        if not match:
            return None
        year, month, day = (int(part) for part in match.groups())
        if not is_valid_calendar_date(year, month, day):
            return Invalid(RejectionReason.INVALID_CALENDAR)
        return Resolved(date(year, month, day))

    @staticmethod
    def _parse_dotted(raw: str, now: datetime) -> Optional[Outcome]:
        match = _DOTTED_PATTERN.match(raw)
        if not match:
            return None
        day, month, year = (int(part) for part in match.groups())
        if not is_valid_calendar_date(year, month, day):
            return Invalid(RejectionReason.INVALID_CALENDAR)
        return Resolved(date(year, month, day))

    @staticmethod
    def _parse_exact_words(raw: str, now: datetime) -> Optional[Outcome]:
        normalized = normalize_date_text(raw)
        if not normalized:
            return Invalid(RejectionReason.MALFORMED)
        if normalized in _EXACT_WORDS:
            return Resolved(now.date() + timedelta(days=_EXACT_WORDS[normalized]))
        return None

    @staticmethod
    def _parse_day_only(raw: str, now: datetime) -> Optional[Outcome]:
        """Одно число: ближайшее такое число месяца, начиная с сегодня"""
        match = _DAY_ONLY_PATTERN.match(normalize_date_text(raw))
        if not match:
            return None
        day = int(match.group(1))
        if not 1 <= day <= 31:
            return Invalid(RejectionReason.INVALID_CALENDAR)

        today = now.date()
        year, month = today.year, today.month
        for _ in range(_DAY_ONLY_HORIZON_MONTHS + 1):
            if is_valid_calendar_date(year, month, day) and date(year, month, day) >= today:
                return Resolved(date(year, month, day))
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)

        return Invalid(RejectionReason.INVALID_CALENDAR)

    @staticmethod
    def _parse_weekday(raw: str, now: datetime) -> Optional[Outcome]:
        match = _WEEKDAY_PATTERN.match(normalize_date_text(raw))
        if not match:
            return None
        is_next, name = match.groups()

        today = now.date()
        days_ahead = (_WEEKDAY_NAMES.index(name) - today.weekday()) % 7
        if is_next and days_ahead == 0:
            days_ahead = 7
        return Resolved(today + timedelta(days=days_ahead))

    @staticmethod
    def _parse_natural(raw: str, now: datetime) -> Optional[Outcome]:
        normalized = normalize_date_text(raw)

        components = _explicit_components(normalized)
        if components:
            day, month, year = components
            if not is_valid_calendar_date(year or _LEAP_YEAR, month, day):
                return Invalid(RejectionReason.INVALID_CALENDAR)

        parsed = dateparser.parse(
            normalized,
            languages=["en"],
            settings={
                "PREFER_DATES_FROM": "future",
                "RELATIVE_BASE": now.replace(tzinfo=None),
                "DATE_ORDER": "DMY",
                "RETURN_AS_TIMEZONE_AWARE": False,
            },
        )
        if parsed is None:
            return None

        result = parsed.date()
        if components:
            day, month, year = components
            if (result.day, result.month) != (day, month) or (year and result.year != year):
                return Invalid(RejectionReason.INVALID_CALENDAR)

        return Resolved(result)


_default_resolver = DateResolver()


def resolve_date(
    text: str,
    locale: str = "en",
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Outcome:
    """Разобрать дату резолвером с таймзоной по умолчанию"""
    return _default_resolver.resolve(text, locale=locale, today=today, now=now)

"""
Calendar helpers: anchored today, calendar validation, schedule times
"""

import re
from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Europe/Madrid"

_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def anchored_now(timezone: str = DEFAULT_TIMEZONE) -> datetime:
    """Текущее время в опорной таймзоне (aware datetime)"""
    return datetime.now(ZoneInfo(timezone))


def anchored_today(timezone: str = DEFAULT_TIMEZONE) -> date:
    """Сегодняшняя дата в опорной таймзоне, не в таймзоне процесса"""
    return anchored_now(timezone).date()


def is_valid_calendar_date(year: int, month: int, day: int) -> bool:
    """Construct-and-compare: 2025-02-30 невалидна, никакого clamping"""
    try:
        built = date(year, month, day)
    except ValueError:
        return False
    return (built.year, built.month, built.day) == (year, month, day)


def parse_time(raw: str) -> Optional[str]:
    """'9:05' -> '09:05', невалидное время -> None"""
    match = _TIME_PATTERN.match(raw.strip())
    if not match:
        return None
    return f"{match.group(1).zfill(2)}:{match.group(2)}"


def month_range(day: date) -> Tuple[date, date]:
    """Первый и последний день месяца"""
    last = monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def is_last_day_of_month(day: date) -> bool:
    return (day + timedelta(days=1)).month != day.month


def week_range(day: date) -> Tuple[date, date]:
    """Последние 7 дней, включая day"""
    return day - timedelta(days=6), day


def format_date_for_user(value: date, locale: str = "en") -> str:
    """Дата для показа пользователю: 05.03.2030 для uk, 2030-03-05 для en"""
    if locale == "uk":
        return value.strftime("%d.%m.%Y")
    return value.isoformat()

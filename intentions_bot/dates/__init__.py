"""
Dates - разбор пользовательских дат и календарные утилиты
"""

from .calendar import (
    DEFAULT_TIMEZONE,
    anchored_now,
    anchored_today,
    format_date_for_user,
    is_last_day_of_month,
    is_valid_calendar_date,
    month_range,
    parse_time,
    week_range,
)
from .lexicon import normalize_date_text
from .resolver import DateResolver, Invalid, RejectionReason, Resolved, resolve_date

__all__ = [
    "DEFAULT_TIMEZONE",
    "anchored_now",
    "anchored_today",
    "format_date_for_user",
    "is_last_day_of_month",
    "is_valid_calendar_date",
    "month_range",
    "parse_time",
    "week_range",
    "normalize_date_text",
    "DateResolver",
    "Invalid",
    "RejectionReason",
    "Resolved",
    "resolve_date",
]

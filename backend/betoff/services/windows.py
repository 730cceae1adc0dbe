"""
backend/betoff/services/windows.py

Purpose:
    Calendar-window selection of bet records by their `added_date`
    (DD/MM/YYYY, day granularity). All windows are evaluated against the
    local wall-clock "now" passed by the caller.
"""

import re
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


class Period(str, Enum):
    day = "DAY"
    week = "WEEK"
    month = "MONTH"

    @classmethod
    def parse(cls, value: Any) -> "Period":
        """Lenient lookup for stored/queried preferences; unknown -> DAY."""
        text = str(value or "").strip().upper()
        for period in cls:
            if period.value == text:
                return period
        return cls.day


def format_dmy(day: date) -> str:
    return f"{day.day:02d}/{day.month:02d}/{day.year}"


def parse_dmy(value: Any) -> Optional[date]:
    """Parse DD/MM/YYYY; returns None for malformed or impossible dates.

    date() refuses out-of-range components instead of rolling them over,
    so 31/02/2024 is rejected rather than read as 2 March.
    """
    match = _DMY_RE.match(str(value or "").strip())
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def today_dmy(now: Optional[datetime] = None) -> str:
    return format_dmy((now or datetime.now()).date())


def _month_bounds(today: date) -> tuple[date, date]:
    start = today.replace(day=1)
    if start.month == 12:
        next_start = start.replace(year=start.year + 1, month=1)
    else:
        next_start = start.replace(month=start.month + 1)
    return start, next_start - timedelta(days=1)


def in_period(bet: Mapping[str, Any], period: Period, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now()
    today = now.date()

    if period is Period.day:
        return str(bet.get("added_date") or "").strip() == format_dmy(today)

    added = parse_dmy(bet.get("added_date"))
    if added is None:
        return False
    if period is Period.week:
        return today - timedelta(days=6) <= added <= today
    first, last = _month_bounds(today)
    return first <= added <= last


def filter_by_period(
    bets: Iterable[Mapping[str, Any]],
    period: Period,
    now: Optional[datetime] = None,
) -> list[Mapping[str, Any]]:
    """Subsequence of `bets` inside the window, original order preserved."""
    now = now or datetime.now()
    return [bet for bet in bets if in_period(bet, period, now)]

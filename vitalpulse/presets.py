from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from .utils import get_tz


def today_local() -> dt.date:
    return dt.datetime.now(get_tz()).date()


def _month_start(day: dt.date) -> dt.date:
    return day.replace(day=1)


class DatePreset(str, Enum):
    TODAY = "Today"
    YESTERDAY = "Yesterday"
    THIS_WEEK = "This Week"
    LAST_WEEK = "Last Week"
    THIS_MONTH = "This Month"
    LAST_MONTH = "Last Month"
    THIS_YEAR = "This Year"
    LAST_YEAR = "Last Year"
    LAST_7_DAYS = "Last 7 Days"
    LAST_14_DAYS = "Last 14 Days"
    LAST_30_DAYS = "Last 30 Days"
    LAST_365_DAYS = "Last 365 Days"

    @classmethod
    def parse(cls, value: str) -> "DatePreset":
        """Accepts the display name ("Last 7 Days") or the member name ("last_7_days")."""
        s = value.strip()
        for p in cls:
            if s.lower() in (p.value.lower(), p.name.lower(), p.value.lower().replace(" ", "-")):
                return p
        raise ValueError(f"unknown preset: {value!r}")

    def date_range(self, today: Optional[dt.date] = None) -> tuple[dt.date, dt.date]:
        """Inclusive (start, end) calendar days. Weeks start on Monday."""
        today = today or today_local()
        one = dt.timedelta(days=1)

        if self is DatePreset.TODAY:
            return today, today
        if self is DatePreset.YESTERDAY:
            return today - one, today - one
        if self is DatePreset.THIS_WEEK:
            return today - dt.timedelta(days=today.weekday()), today
        if self is DatePreset.LAST_WEEK:
            start = today - dt.timedelta(days=today.weekday() + 7)
            return start, start + dt.timedelta(days=6)
        if self is DatePreset.THIS_MONTH:
            return _month_start(today), today
        if self is DatePreset.LAST_MONTH:
            end = _month_start(today) - one
            return _month_start(end), end
        if self is DatePreset.THIS_YEAR:
            return dt.date(today.year, 1, 1), today
        if self is DatePreset.LAST_YEAR:
            return dt.date(today.year - 1, 1, 1), dt.date(today.year - 1, 12, 31)

        days = {
            DatePreset.LAST_7_DAYS: 7,
            DatePreset.LAST_14_DAYS: 14,
            DatePreset.LAST_30_DAYS: 30,
            DatePreset.LAST_365_DAYS: 365,
        }[self]
        return today - dt.timedelta(days=days - 1), today

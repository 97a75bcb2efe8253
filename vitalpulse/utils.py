from __future__ import annotations

import datetime as dt
import logging
import sys
from typing import Any, Iterator, Optional

import pytz
import structlog

from .config import get_settings


def get_tz() -> pytz.BaseTzInfo:
    return pytz.timezone(get_settings().TZ)


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # looked up per logger so a swapped sys.stderr is honoured
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(json_logs: Optional[bool] = None, debug: bool = False) -> None:
    if json_logs is None:
        json_logs = get_settings().LOG_JSON

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def iso_date(d: dt.date | dt.datetime) -> str:
    if isinstance(d, dt.datetime):
        d = d.date()
    return d.isoformat()


def as_day(value: dt.date | dt.datetime) -> dt.date:
    """Calendar day of a date or datetime (time component dropped)."""
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def iter_days(start_date: dt.date, end_date: dt.date) -> Iterator[dt.date]:
    """Every calendar day from start_date to end_date, both included."""
    delta = (end_date - start_date).days
    for n in range(delta + 1):
        yield start_date + dt.timedelta(days=n)


def localize(day: dt.date, hour: int = 0, tz: Optional[dt.tzinfo] = None) -> dt.datetime:
    """Wall-clock `hour` of `day` in the local zone."""
    tz = tz or get_tz()
    naive = dt.datetime.combine(day, dt.time(hour, 0))
    if isinstance(tz, pytz.BaseTzInfo):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def window_day(day: dt.date, tz: Optional[dt.tzinfo] = None) -> tuple[dt.datetime, dt.datetime]:
    """Calendar day: [00:00, +1d 00:00)."""
    return localize(day, 0, tz), localize(day + dt.timedelta(days=1), 0, tz)


def window_sleep_night(day: dt.date, tz: Optional[dt.tzinfo] = None) -> tuple[dt.datetime, dt.datetime]:
    """Night ending on `day`: [18:00 previous day, 14:00 day)."""
    return localize(day - dt.timedelta(days=1), 18, tz), localize(day, 14, tz)


def redact(value: Optional[str]) -> str:
    if not value:
        return ""
    return value[:4] + "…" if len(value) > 8 else "***"

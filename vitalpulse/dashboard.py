from __future__ import annotations

import asyncio
import datetime as dt
from typing import List, Optional

import structlog

from .errors import QueryFailed
from .models import DashboardSnapshot, Metric
from .query import MetricQueryService
from .utils import localize

log = structlog.get_logger()

# (metric, title, unit, decimals) in display order
CARDS: List[tuple[Metric, str, str, int]] = [
    (Metric.STEPS, "Steps", "", 0),
    (Metric.HEART_RATE, "Heart Rate", "BPM", 0),
    (Metric.ACTIVE_ENERGY, "Active Energy", "cal", 0),
    (Metric.EXERCISE_TIME, "Exercise", "min", 0),
    (Metric.STAND_TIME, "Stand", "min", 0),
    (Metric.HRV, "HRV", "ms", 0),
    (Metric.BLOOD_OXYGEN, "Blood Oxygen", "%", 0),
    (Metric.SLEEP, "Sleep", "h", 1),
    (Metric.WALKING_RUNNING_DISTANCE, "Walk+Run", "km", 2),
    (Metric.SWIMMING_DISTANCE, "Swim", "km", 2),
]

# point-in-time readings: the newest sample is shown even when it is not from today
LATEST_SAMPLE: frozenset[Metric] = frozenset({Metric.HEART_RATE, Metric.HRV, Metric.BLOOD_OXYGEN})


async def fetch_dashboard(service: MetricQueryService, now: Optional[dt.datetime] = None) -> DashboardSnapshot:
    """Today so far: [00:00 today, now) for totals, last night for sleep, latest sample for readings."""
    now = now or dt.datetime.now(service.tz)
    today = now.date()
    start_of_day = localize(today, 0, service.tz)

    async def one(metric: Metric) -> Optional[float]:
        try:
            if metric is Metric.SLEEP:
                return await service.query_day(metric, today)
            if metric in LATEST_SAMPLE:
                return await service.latest(metric, now)
            return await service.query(metric, start_of_day, now)
        except QueryFailed as e:
            log.warning("dashboard_query_failed", metric=metric.value, error=e.reason)
            return None

    metrics = [m for m, *_ in CARDS]
    values = await asyncio.gather(*(one(m) for m in metrics))
    return DashboardSnapshot(taken_at=now, values=dict(zip(metrics, values)))


def format_card(value: Optional[float], unit: str, decimals: int) -> str:
    if value is None:
        return "--"
    text = f"{value:,.{decimals}f}"
    return f"{text} {unit}" if unit else text


def render_dashboard(snapshot: DashboardSnapshot) -> List[tuple[str, str]]:
    return [(title, format_card(snapshot.get(m), unit, dec)) for m, title, unit, dec in CARDS]

from __future__ import annotations

import datetime as dt
from typing import Optional

import structlog

from .errors import QueryFailed
from .models import METRIC_SPECS, Metric, MetricQuerySpec, WindowPolicy
from .sources.base import HealthProvider
from .utils import get_tz, window_day, window_sleep_night

logger = structlog.get_logger()


class MetricQueryService:
    """
    One statistical query for one metric over one window.

    Returns the converted value, None for "no data", or raises QueryFailed.
    """

    def __init__(self, provider: HealthProvider, tz: Optional[dt.tzinfo] = None) -> None:
        self.provider = provider
        self.tz = tz or get_tz()

    def window_for(self, metric: Metric, day: dt.date) -> tuple[dt.datetime, dt.datetime]:
        spec = METRIC_SPECS[metric]
        if spec.window is WindowPolicy.SLEEP_NIGHT:
            return window_sleep_night(day, self.tz)
        return window_day(day, self.tz)

    async def query_day(self, metric: Metric, day: dt.date) -> Optional[float]:
        start, end = self.window_for(metric, day)
        return await self.query(metric, start, end)

    async def query(self, metric: Metric, start: dt.datetime, end: dt.datetime) -> Optional[float]:
        spec = METRIC_SPECS[metric]
        try:
            if metric is Metric.SLEEP:
                raw = await self._sleep_seconds(spec, start, end)
            else:
                raw = await self.provider.aggregate(spec.type_id, spec.mode, start, end)
        except Exception as e:
            # CancelledError is not an Exception and still propagates
            raise QueryFailed(metric.value, str(e) or type(e).__name__, (start, end)) from e
        return self._convert(metric, raw, (start, end))

    async def latest(self, metric: Metric, before: dt.datetime) -> Optional[float]:
        """Most recent sample starting before `before`, however old."""
        spec = METRIC_SPECS[metric]
        try:
            raw = await self.provider.latest_sample(spec.type_id, before)
        except Exception as e:
            raise QueryFailed(metric.value, str(e) or type(e).__name__) from e
        return self._convert(metric, raw, None)

    def _convert(self, metric: Metric, raw, window) -> Optional[float]:
        if raw is None:
            return None
        try:
            value = float(raw) * METRIC_SPECS[metric].factor
        except (TypeError, ValueError) as e:
            raise QueryFailed(metric.value, f"malformed value {raw!r}", window) from e
        if metric is Metric.STEPS:
            return int(value)
        return value

    async def _sleep_seconds(self, spec: MetricQuerySpec, start: dt.datetime, end: dt.datetime) -> Optional[float]:
        samples = await self.provider.category_samples(spec.type_id, start, end)
        if not samples:
            return None
        asleep = [s for s in samples if s.stage.is_asleep]
        total = sum(s.seconds for s in asleep)
        logger.debug(
            "sleep_samples",
            window_start=start.isoformat(),
            window_end=end.isoformat(),
            total_samples=len(samples),
            asleep_samples=len(asleep),
            hours=round(total / 3600.0, 2),
        )
        return total


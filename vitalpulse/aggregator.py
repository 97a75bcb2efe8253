from __future__ import annotations

import asyncio
import datetime as dt
from typing import Iterable, List, Optional

import structlog

from .config import get_settings
from .errors import InvalidRange, ProviderUnavailable, QueryFailed
from .models import DailyHealthRecord, Metric
from .query import MetricQueryService
from .utils import as_day, iter_days

log = structlog.get_logger()


class RangeAggregator:
    """
    Turns a calendar-day range into one DailyHealthRecord per day.

    Every (day, metric) pair is one query. Queries run concurrently, a day's
    record is built once all of its queries settled, and the whole range is
    returned sorted by date. A failed query only blanks its own field.
    """

    def __init__(self, service: MetricQueryService, max_concurrency: Optional[int] = None) -> None:
        self.service = service
        self.max_concurrency = max_concurrency or get_settings().MAX_CONCURRENT_QUERIES

    async def collect(
        self,
        start: dt.date | dt.datetime,
        end: dt.date | dt.datetime,
        metrics: Optional[Iterable[Metric]] = None,
    ) -> List[DailyHealthRecord]:
        start_date = as_day(start)
        end_date = as_day(end)
        if start_date > end_date:
            raise InvalidRange(start_date, end_date)

        selected = list(dict.fromkeys(metrics)) if metrics is not None else list(Metric)
        days = list(iter_days(start_date, end_date))
        log.info(
            "collect_range",
            start=start_date.isoformat(),
            end=end_date.isoformat(),
            days=len(days),
            metrics=[m.value for m in selected],
        )

        limit = asyncio.Semaphore(self.max_concurrency)
        results = await asyncio.gather(*(self._collect_day(day, selected, limit) for day in days))

        failures = sum(f for _, f in results)
        launched = len(days) * len(selected)
        if launched and failures == launched:
            raise ProviderUnavailable(f"all {launched} queries failed for {start_date} .. {end_date}")

        # completion order is not guaranteed, order by date
        records = sorted((r for r, _ in results), key=lambda r: r.date)
        log.info("collect_done", records=len(records), failed_queries=failures)
        return records

    async def _collect_day(
        self, day: dt.date, metrics: List[Metric], limit: asyncio.Semaphore
    ) -> tuple[DailyHealthRecord, int]:
        outcomes = await asyncio.gather(
            *(self._query(metric, day, limit) for metric in metrics),
            return_exceptions=True,
        )

        values: dict[Metric, Optional[float]] = {}
        failures = 0
        for metric, outcome in zip(metrics, outcomes):
            if isinstance(outcome, QueryFailed):
                log.warning("query_failed", metric=metric.value, date=day.isoformat(), error=outcome.reason)
                values[metric] = None
                failures += 1
            elif isinstance(outcome, BaseException):
                # cancellation
                raise outcome
            else:
                values[metric] = outcome
        return DailyHealthRecord.from_values(day, values), failures

    async def _query(self, metric: Metric, day: dt.date, limit: asyncio.Semaphore) -> Optional[float]:
        async with limit:
            return await self.service.query_day(metric, day)

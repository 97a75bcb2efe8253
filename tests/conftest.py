import asyncio
import datetime as dt
from typing import Dict, List, Optional, Tuple

import pytest
import pytz
import structlog

from vitalpulse.errors import ProviderError
from vitalpulse.models import METRIC_SPECS, AggregationMode, Metric, SleepSample
from vitalpulse.query import MetricQueryService


class StubProvider:
    """
    In-memory provider keyed by (type_id, window start day).

    Values may be numbers, None or an Exception instance (raised on read).
    Later days answer first so completion order is the reverse of date order.
    """

    def __init__(self, authorized: bool = True, delay: float = 0.0002) -> None:
        self.authorized = authorized
        self.delay = delay
        self.values: Dict[Tuple[str, dt.date], object] = {}
        self.sleep: List[SleepSample] = []
        self.samples: Dict[str, List[Tuple[dt.datetime, object]]] = {}
        self.calls: List[Tuple[str, dt.datetime, dt.datetime]] = []
        self.completed: List[Tuple[str, dt.date]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def set(self, metric: Metric, day: dt.date, value: object) -> None:
        self.values[(METRIC_SPECS[metric].type_id, day)] = value

    def add_sample(self, metric: Metric, when: dt.datetime, value: object) -> None:
        self.samples.setdefault(METRIC_SPECS[metric].type_id, []).append((when, value))

    async def request_authorization(self, type_ids) -> bool:
        return self.authorized

    async def _wait(self, start: dt.datetime) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # later windows finish first (within any 100-day stretch)
            rank = (dt.date(2030, 1, 1) - start.date()).days % 100
            await asyncio.sleep(self.delay * rank)
        finally:
            self.in_flight -= 1

    async def aggregate(self, type_id: str, mode: AggregationMode, start, end) -> Optional[float]:
        self.calls.append((type_id, start, end))
        await self._wait(start)
        value = self.values.get((type_id, start.date()))
        self.completed.append((type_id, start.date()))
        if isinstance(value, Exception):
            raise value
        return value  # type: ignore[return-value]

    async def category_samples(self, type_id: str, start, end) -> List[SleepSample]:
        self.calls.append((type_id, start, end))
        await self._wait(start)
        value = self.values.get((type_id, end.date()))
        if isinstance(value, Exception):
            raise value
        return [s for s in self.sleep if start <= s.start < end]

    async def latest_sample(self, type_id: str, before) -> Optional[float]:
        self.calls.append((type_id, before, before))
        earlier = [(when, v) for when, v in self.samples.get(type_id, []) if when < before]
        if not earlier:
            return None
        value = max(earlier, key=lambda s: s[0])[1]
        if isinstance(value, Exception):
            raise value
        return value  # type: ignore[return-value]


def utc(y, m, d, h=0, mi=0) -> dt.datetime:
    return pytz.UTC.localize(dt.datetime(y, m, d, h, mi))


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def service(provider: StubProvider) -> MetricQueryService:
    return MetricQueryService(provider, tz=pytz.UTC)


@pytest.fixture
def provider_error() -> ProviderError:
    return ProviderError("permission denied")

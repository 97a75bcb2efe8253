from __future__ import annotations

import datetime as dt
from typing import Iterable, List, Optional, Protocol

from ..models import AggregationMode, SleepSample


class HealthProvider(Protocol):
    """Read-only health data source the query layer talks to."""

    async def request_authorization(self, type_ids: Iterable[str]) -> bool:
        ...

    async def aggregate(
        self,
        type_id: str,
        mode: AggregationMode,
        start: dt.datetime,
        end: dt.datetime,
    ) -> Optional[float]:
        """Sum or mean of samples with start in [start, end); None when there are no samples."""
        ...

    async def category_samples(
        self,
        type_id: str,
        start: dt.datetime,
        end: dt.datetime,
    ) -> List[SleepSample]:
        ...

    async def latest_sample(self, type_id: str, before: dt.datetime) -> Optional[float]:
        """Value of the newest sample starting before `before`; None when there is none."""
        ...

from __future__ import annotations

import asyncio
import bisect
import datetime as dt
import os
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

import structlog
from lxml import etree  # type: ignore

from ..config import get_settings
from ..models import METRIC_SPECS, AggregationMode, SleepSample, SleepStage
from ..errors import AuthorizationDenied, ProviderError

logger = structlog.get_logger()

DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"

# Multiplier into the unit METRIC_SPECS expects (count, count/min, kcal, min, ms, m, fraction)
UNIT_FACTORS: Dict[str, float] = {
    "count": 1.0,
    "count/min": 1.0,
    "kcal": 1.0,
    "Cal": 1.0,
    "kJ": 1 / 4.184,
    "min": 1.0,
    "s": 1 / 60.0,
    "hr": 60.0,
    "ms": 1.0,
    "m": 1.0,
    "km": 1000.0,
    "mi": 1609.344,
    "yd": 0.9144,
    "ft": 0.3048,
    "%": 1.0,
}

# Record types we index; everything else in export.xml is skipped
KNOWN_TYPES: Set[str] = {spec.type_id for spec in METRIC_SPECS.values()}


@dataclass(frozen=True)
class _Sample:
    start: dt.datetime
    end: dt.datetime
    value: float | str


def parse_date(value: Optional[str]) -> Optional[dt.datetime]:
    if not value:
        return None
    try:
        return dt.datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return None


class AppleHealthExportProvider:
    """
    HealthProvider backed by an Apple Health export.xml.

    The file is parsed once (lxml iterparse, elements cleared as we go) into
    per-type lists sorted by start date. Windows follow HealthKit's
    strict-start rule: a sample belongs to [start, end) if its start does.
    """

    def __init__(self, export_path: Optional[str | Path] = None, sources: Optional[Iterable[str]] = None) -> None:
        self.export_path = Path(export_path or get_settings().APPLE_HEALTH_EXPORT)
        self.sources = set(sources) if sources else None
        self._index: Optional[Dict[str, List[_Sample]]] = None
        self._starts: Dict[str, List[dt.datetime]] = {}

    # --------------------------- loading ---------------------------

    def load(self) -> None:
        if self._index is not None:
            return
        if not self.export_path.exists():
            raise ProviderError(f"Apple Health export not found: {self.export_path}")

        index: Dict[str, List[_Sample]] = defaultdict(list)
        skipped = 0
        try:
            for _, elem in etree.iterparse(str(self.export_path), events=("end",), tag="Record"):
                sample = self._sample_from(elem)
                if sample is None:
                    skipped += 1
                else:
                    index[elem.get("type")].append(sample)
                elem.clear()
        except etree.XMLSyntaxError as e:
            raise ProviderError(f"malformed export {self.export_path}: {e}") from e
        except OSError as e:
            raise ProviderError(f"cannot read export {self.export_path}: {e.strerror or e}") from e

        for samples in index.values():
            samples.sort(key=lambda s: s.start)
        self._index = dict(index)
        self._starts = {t: [s.start for s in samples] for t, samples in self._index.items()}
        logger.info(
            "apple_export_loaded",
            path=str(self.export_path),
            types=len(self._index),
            samples=sum(len(v) for v in self._index.values()),
            skipped=skipped,
        )

    def _sample_from(self, elem: etree._Element) -> Optional[_Sample]:
        type_id = elem.get("type")
        if type_id not in KNOWN_TYPES:
            return None
        if self.sources is not None and elem.get("sourceName") not in self.sources:
            return None
        start = parse_date(elem.get("startDate"))
        end = parse_date(elem.get("endDate")) or start
        raw = elem.get("value")
        if start is None or end is None or raw is None:
            return None
        if type_id.startswith("HKCategoryType"):
            return _Sample(start, end, raw)
        factor = UNIT_FACTORS.get(elem.get("unit") or "count")
        if factor is None:
            return None
        try:
            return _Sample(start, end, float(raw) * factor)
        except ValueError:
            return None

    def _window(self, type_id: str, start: dt.datetime, end: dt.datetime) -> List[_Sample]:
        self.load()
        assert self._index is not None
        samples = self._index.get(type_id, [])
        starts = self._starts.get(type_id, [])
        lo = bisect.bisect_left(starts, start)
        hi = bisect.bisect_left(starts, end)
        return samples[lo:hi]

    # --------------------------- HealthProvider ---------------------------

    async def request_authorization(self, type_ids: Iterable[str]) -> bool:
        if not os.access(self.export_path, os.R_OK):
            logger.warning("apple_export_unreadable", path=str(self.export_path))
            return False
        try:
            await asyncio.to_thread(self.load)
        except ProviderError as e:
            logger.warning("apple_export_unusable", path=str(self.export_path), error=str(e))
            raise AuthorizationDenied(str(e)) from e
        return True

    async def aggregate(
        self,
        type_id: str,
        mode: AggregationMode,
        start: dt.datetime,
        end: dt.datetime,
    ) -> Optional[float]:
        values = [s.value for s in self._window(type_id, start, end) if isinstance(s.value, float)]
        if not values:
            return None
        if mode is AggregationMode.AVERAGE:
            return sum(values) / len(values)
        return sum(values)

    async def category_samples(self, type_id: str, start: dt.datetime, end: dt.datetime) -> List[SleepSample]:
        out: List[SleepSample] = []
        for s in self._window(type_id, start, end):
            try:
                stage = SleepStage(s.value)
            except ValueError:
                # older exports use the bare "Asleep" value
                if s.value == "HKCategoryValueSleepAnalysisAsleep":
                    stage = SleepStage.ASLEEP_UNSPECIFIED
                else:
                    continue
            out.append(SleepSample(start=s.start, end=s.end, stage=stage))
        return out

    async def latest_sample(self, type_id: str, before: dt.datetime) -> Optional[float]:
        self.load()
        assert self._index is not None
        samples = self._index.get(type_id, [])
        hi = bisect.bisect_left(self._starts.get(type_id, []), before)
        for s in reversed(samples[:hi]):
            if isinstance(s.value, float):
                return s.value
        return None

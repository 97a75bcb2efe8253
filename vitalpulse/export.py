from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import structlog

from .aggregator import RangeAggregator
from .config import get_settings
from .csv_export import export_filename, render_csv, write_csv
from .errors import AuthorizationDenied, InvalidRange, SerializationFailed, VitalPulseError
from .models import EXPORT_METRICS, METRIC_SPECS, DailyHealthRecord
from .presets import DatePreset
from .query import MetricQueryService
from .sources.base import HealthProvider

log = structlog.get_logger()

CUSTOM_KIND = "Custom"


@dataclass
class ExportResult:
    status: str
    path: Optional[Path] = None
    records: List[DailyHealthRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.path is not None


class ExportService:
    """Authorize, collect a range, write the CSV and describe the outcome."""

    def __init__(
        self,
        provider: HealthProvider,
        export_dir: Optional[str | Path] = None,
        aggregator: Optional[RangeAggregator] = None,
    ) -> None:
        self.provider = provider
        self.export_dir = Path(export_dir or get_settings().EXPORT_DIR)
        self.aggregator = aggregator or RangeAggregator(MetricQueryService(provider))

    async def authorize(self) -> None:
        type_ids = [METRIC_SPECS[m].type_id for m in EXPORT_METRICS]
        if not await self.provider.request_authorization(type_ids):
            raise AuthorizationDenied()

    async def export_preset(self, preset: DatePreset, today: Optional[dt.date] = None) -> ExportResult:
        start, end = preset.date_range(today)
        return await self._export(start, end, preset.value, f" for {preset.value}")

    async def export_range(self, start: dt.date, end: dt.date) -> ExportResult:
        return await self._export(start, end, CUSTOM_KIND, "")

    async def _export(self, start: dt.date, end: dt.date, kind: str, suffix: str) -> ExportResult:
        if start > end:
            raise InvalidRange(start, end)
        await self.authorize()
        records = await self.aggregator.collect(start, end, EXPORT_METRICS)
        path = self.export_dir / export_filename(kind, start, end)
        write_csv(path, render_csv(records))
        status = f"Export successful! {len(records)} days exported{suffix}."
        log.info("export_done", kind=kind, path=str(path), days=len(records))
        return ExportResult(status=status, path=path, records=records)

    async def run_preset(self, preset: DatePreset, today: Optional[dt.date] = None) -> ExportResult:
        try:
            return await self.export_preset(preset, today)
        except VitalPulseError as e:
            return _failed(e)

    async def run_range(self, start: dt.date, end: dt.date) -> ExportResult:
        try:
            return await self.export_range(start, end)
        except VitalPulseError as e:
            return _failed(e)


def _failed(e: VitalPulseError) -> ExportResult:
    if isinstance(e, SerializationFailed):
        status = f"Failed to save CSV file: {e}"
    else:
        status = f"Export failed: {e}"
    log.error("export_failed", error_type=type(e).__name__, error=str(e))
    return ExportResult(status=status)

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, List, Optional

from . import CSV_HEADER


class Metric(str, Enum):
    STEPS = "steps"
    HEART_RATE = "heart_rate"
    ACTIVE_ENERGY = "active_energy"
    EXERCISE_TIME = "exercise_time"
    STAND_TIME = "stand_time"
    HRV = "hrv"
    BLOOD_OXYGEN = "blood_oxygen"
    SLEEP = "sleep"
    WALKING_RUNNING_DISTANCE = "walking_running_distance"
    SWIMMING_DISTANCE = "swimming_distance"


class AggregationMode(str, Enum):
    SUM = "sum"
    AVERAGE = "average"


class WindowPolicy(str, Enum):
    CALENDAR_DAY = "calendar_day"   # [00:00, +1d 00:00)
    SLEEP_NIGHT = "sleep_night"     # [-1d 18:00, 14:00)


class SleepStage(str, Enum):
    IN_BED = "HKCategoryValueSleepAnalysisInBed"
    ASLEEP_UNSPECIFIED = "HKCategoryValueSleepAnalysisAsleepUnspecified"
    AWAKE = "HKCategoryValueSleepAnalysisAwake"
    ASLEEP_CORE = "HKCategoryValueSleepAnalysisAsleepCore"
    ASLEEP_DEEP = "HKCategoryValueSleepAnalysisAsleepDeep"
    ASLEEP_REM = "HKCategoryValueSleepAnalysisAsleepREM"

    @property
    def is_asleep(self) -> bool:
        return self not in (SleepStage.IN_BED, SleepStage.AWAKE)


@dataclass(frozen=True)
class SleepSample:
    start: dt.datetime
    end: dt.datetime
    stage: SleepStage

    @property
    def seconds(self) -> float:
        return max(0.0, (self.end - self.start).total_seconds())


@dataclass(frozen=True)
class MetricQuerySpec:
    metric: Metric
    type_id: str
    mode: AggregationMode
    factor: float = 1.0
    window: WindowPolicy = WindowPolicy.CALENDAR_DAY


METRIC_SPECS: dict[Metric, MetricQuerySpec] = {
    Metric.STEPS: MetricQuerySpec(
        Metric.STEPS, "HKQuantityTypeIdentifierStepCount", AggregationMode.SUM,
    ),
    Metric.HEART_RATE: MetricQuerySpec(
        Metric.HEART_RATE, "HKQuantityTypeIdentifierHeartRate", AggregationMode.AVERAGE,
    ),
    Metric.ACTIVE_ENERGY: MetricQuerySpec(
        Metric.ACTIVE_ENERGY, "HKQuantityTypeIdentifierActiveEnergyBurned", AggregationMode.SUM,
    ),
    Metric.EXERCISE_TIME: MetricQuerySpec(
        Metric.EXERCISE_TIME, "HKQuantityTypeIdentifierAppleExerciseTime", AggregationMode.SUM,
    ),
    Metric.STAND_TIME: MetricQuerySpec(
        Metric.STAND_TIME, "HKQuantityTypeIdentifierAppleStandTime", AggregationMode.SUM,
    ),
    Metric.HRV: MetricQuerySpec(
        Metric.HRV, "HKQuantityTypeIdentifierHeartRateVariabilitySDNN", AggregationMode.AVERAGE,
    ),
    # provider reports a fraction, we show percent
    Metric.BLOOD_OXYGEN: MetricQuerySpec(
        Metric.BLOOD_OXYGEN, "HKQuantityTypeIdentifierOxygenSaturation", AggregationMode.AVERAGE, factor=100.0,
    ),
    # summed sleep-stage seconds -> hours
    Metric.SLEEP: MetricQuerySpec(
        Metric.SLEEP, "HKCategoryTypeIdentifierSleepAnalysis", AggregationMode.SUM,
        factor=1 / 3600.0, window=WindowPolicy.SLEEP_NIGHT,
    ),
    # meters -> km
    Metric.WALKING_RUNNING_DISTANCE: MetricQuerySpec(
        Metric.WALKING_RUNNING_DISTANCE, "HKQuantityTypeIdentifierDistanceWalkingRunning", AggregationMode.SUM,
        factor=1 / 1000.0,
    ),
    Metric.SWIMMING_DISTANCE: MetricQuerySpec(
        Metric.SWIMMING_DISTANCE, "HKQuantityTypeIdentifierDistanceSwimming", AggregationMode.SUM,
        factor=1 / 1000.0,
    ),
}

# Metrics that end up in the CSV export, in column order
EXPORT_METRICS: List[Metric] = [
    Metric.STEPS,
    Metric.HEART_RATE,
    Metric.ACTIVE_ENERGY,
    Metric.EXERCISE_TIME,
    Metric.STAND_TIME,
    Metric.HRV,
    Metric.WALKING_RUNNING_DISTANCE,
    Metric.SWIMMING_DISTANCE,
]


@dataclass(frozen=True)
class DailyHealthRecord:
    date: dt.date
    steps: Optional[int] = None
    heart_rate: Optional[float] = None
    active_energy: Optional[float] = None
    exercise_time: Optional[float] = None
    stand_time: Optional[float] = None
    hrv: Optional[float] = None
    blood_oxygen: Optional[float] = None
    sleep: Optional[float] = None
    walking_running_distance: Optional[float] = None
    swimming_distance: Optional[float] = None

    @classmethod
    def from_values(cls, day: dt.date, values: dict[Metric, Optional[float]]) -> "DailyHealthRecord":
        kwargs: dict[str, Any] = {m.value: v for m, v in values.items()}
        steps = kwargs.get("steps")
        if steps is not None:
            kwargs["steps"] = int(steps)
        return cls(date=day, **kwargs)

    def get(self, metric: Metric) -> Optional[float]:
        return getattr(self, metric.value)

    def values(self) -> dict[Metric, Optional[float]]:
        return {Metric(f.name): getattr(self, f.name) for f in fields(self) if f.name != "date"}

    @staticmethod
    def headers() -> List[str]:
        return CSV_HEADER

    def as_row(self) -> List[Any]:
        # order must match headers(); absent values become 0
        def cell(v: Optional[float], fmt: str) -> Any:
            if v is None:
                return 0
            return format(float(v), fmt) if fmt else int(v)

        return [
            self.date.isoformat(),
            cell(self.steps, ""),
            cell(self.heart_rate, ".1f"),
            cell(self.active_energy, ""),
            cell(self.exercise_time, ""),
            cell(self.stand_time, ""),
            cell(self.hrv, ""),
            cell(self.walking_running_distance, ".2f"),
            cell(self.swimming_distance, ".2f"),
        ]


@dataclass(frozen=True)
class DashboardSnapshot:
    taken_at: dt.datetime
    values: dict[Metric, Optional[float]]

    def get(self, metric: Metric) -> Optional[float]:
        return self.values.get(metric)

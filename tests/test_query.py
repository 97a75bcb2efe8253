import asyncio
import datetime as dt

import pytest
import pytz

from conftest import utc
from vitalpulse.errors import ProviderError, QueryFailed
from vitalpulse.models import METRIC_SPECS, Metric, SleepSample, SleepStage

DAY = dt.date(2024, 1, 2)


def test_calendar_day_window_is_half_open_midnight_to_midnight(service):
    start, end = service.window_for(Metric.STEPS, DAY)
    assert start == utc(2024, 1, 2)
    assert end == utc(2024, 1, 3)


def test_sleep_window_runs_from_six_pm_to_two_pm(service):
    start, end = service.window_for(Metric.SLEEP, DAY)
    assert start == utc(2024, 1, 1, 18)
    assert end == utc(2024, 1, 2, 14)


def test_window_respects_local_zone(provider):
    from vitalpulse.query import MetricQueryService

    tz = pytz.timezone("Europe/Sarajevo")
    svc = MetricQueryService(provider, tz=tz)
    start, end = svc.window_for(Metric.STEPS, DAY)
    assert start.utcoffset() == dt.timedelta(hours=1)
    assert (end - start) == dt.timedelta(days=1)


def test_sum_metric_returns_total(service, provider):
    provider.set(Metric.ACTIVE_ENERGY, DAY, 412.5)
    assert asyncio.run(service.query_day(Metric.ACTIVE_ENERGY, DAY)) == 412.5


def test_steps_are_integers(service, provider):
    provider.set(Metric.STEPS, DAY, 5000.7)
    value = asyncio.run(service.query_day(Metric.STEPS, DAY))
    assert value == 5000
    assert isinstance(value, int)


def test_distance_converted_to_km(service, provider):
    provider.set(Metric.WALKING_RUNNING_DISTANCE, DAY, 4250.0)
    assert asyncio.run(service.query_day(Metric.WALKING_RUNNING_DISTANCE, DAY)) == pytest.approx(4.25)


def test_blood_oxygen_converted_to_percent(service, provider):
    provider.set(Metric.BLOOD_OXYGEN, DAY, 0.97)
    assert asyncio.run(service.query_day(Metric.BLOOD_OXYGEN, DAY)) == pytest.approx(97.0)


def test_no_samples_is_none_not_zero(service):
    assert asyncio.run(service.query_day(Metric.HEART_RATE, DAY)) is None


def test_zero_sum_stays_zero(service, provider):
    provider.set(Metric.SWIMMING_DISTANCE, DAY, 0.0)
    assert asyncio.run(service.query_day(Metric.SWIMMING_DISTANCE, DAY)) == 0.0


def test_provider_error_becomes_query_failed(service, provider, provider_error):
    provider.set(Metric.HRV, DAY, provider_error)
    with pytest.raises(QueryFailed) as exc:
        asyncio.run(service.query_day(Metric.HRV, DAY))
    assert exc.value.metric == "hrv"
    assert exc.value.reason == "permission denied"
    assert exc.value.window == (utc(2024, 1, 2), utc(2024, 1, 3))


def test_malformed_value_becomes_query_failed(service, provider):
    provider.set(Metric.HEART_RATE, DAY, "seventy")
    with pytest.raises(QueryFailed, match="malformed"):
        asyncio.run(service.query_day(Metric.HEART_RATE, DAY))


def test_sleep_counts_only_sleep_stages(service, provider):
    provider.sleep = [
        SleepSample(utc(2024, 1, 1, 22), utc(2024, 1, 2, 0), SleepStage.IN_BED),
        SleepSample(utc(2024, 1, 2, 0), utc(2024, 1, 2, 3), SleepStage.ASLEEP_CORE),
        SleepSample(utc(2024, 1, 2, 3), utc(2024, 1, 2, 3, 30), SleepStage.AWAKE),
    ]
    assert asyncio.run(service.query_day(Metric.SLEEP, DAY)) == pytest.approx(3.0)


def test_sleep_sums_all_asleep_stages(service, provider):
    provider.sleep = [
        SleepSample(utc(2024, 1, 1, 23), utc(2024, 1, 2, 0), SleepStage.ASLEEP_UNSPECIFIED),
        SleepSample(utc(2024, 1, 2, 0), utc(2024, 1, 2, 1, 30), SleepStage.ASLEEP_DEEP),
        SleepSample(utc(2024, 1, 2, 1, 30), utc(2024, 1, 2, 2), SleepStage.ASLEEP_REM),
    ]
    assert asyncio.run(service.query_day(Metric.SLEEP, DAY)) == pytest.approx(3.0)


def test_sleep_outside_window_is_ignored(service, provider):
    provider.sleep = [
        # afternoon nap before the window opens
        SleepSample(utc(2024, 1, 1, 15), utc(2024, 1, 1, 16), SleepStage.ASLEEP_CORE),
        SleepSample(utc(2024, 1, 2, 1), utc(2024, 1, 2, 2), SleepStage.ASLEEP_CORE),
        # starts at 14:00, belongs to the next night
        SleepSample(utc(2024, 1, 2, 14), utc(2024, 1, 2, 15), SleepStage.ASLEEP_CORE),
    ]
    assert asyncio.run(service.query_day(Metric.SLEEP, DAY)) == pytest.approx(1.0)


def test_sleep_without_samples_is_none(service):
    assert asyncio.run(service.query_day(Metric.SLEEP, DAY)) is None


def test_sleep_only_in_bed_is_zero(service, provider):
    provider.sleep = [SleepSample(utc(2024, 1, 1, 22), utc(2024, 1, 2, 6), SleepStage.IN_BED)]
    assert asyncio.run(service.query_day(Metric.SLEEP, DAY)) == 0.0


def test_sleep_provider_error_becomes_query_failed(service, provider, provider_error):
    provider.values[(METRIC_SPECS[Metric.SLEEP].type_id, DAY)] = provider_error
    with pytest.raises(QueryFailed):
        asyncio.run(service.query_day(Metric.SLEEP, DAY))


def test_query_is_read_only(service, provider):
    provider.set(Metric.STEPS, DAY, 10)
    asyncio.run(service.query_day(Metric.STEPS, DAY))
    assert provider.values == {(METRIC_SPECS[Metric.STEPS].type_id, DAY): 10}


def test_partial_window_query_wraps_provider_error(service, provider):
    provider.set(Metric.STEPS, DAY, ProviderError("store unavailable"))
    with pytest.raises(QueryFailed, match="store unavailable"):
        asyncio.run(service.query(Metric.STEPS, utc(2024, 1, 2), utc(2024, 1, 2, 12)))


def test_any_provider_exception_becomes_query_failed(service, provider):
    provider.set(Metric.HEART_RATE, DAY, ConnectionError("socket closed"))
    with pytest.raises(QueryFailed, match="socket closed"):
        asyncio.run(service.query_day(Metric.HEART_RATE, DAY))


def test_latest_reading_is_converted(service, provider):
    provider.add_sample(Metric.BLOOD_OXYGEN, utc(2023, 12, 20, 4), 0.97)
    assert asyncio.run(service.latest(Metric.BLOOD_OXYGEN, utc(2024, 1, 2))) == pytest.approx(97.0)
    assert asyncio.run(service.latest(Metric.HRV, utc(2024, 1, 2))) is None

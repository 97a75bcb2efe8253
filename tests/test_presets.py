import datetime as dt

import pytest

from vitalpulse.presets import DatePreset

# a Wednesday
TODAY = dt.date(2024, 3, 13)


@pytest.mark.parametrize(
    "preset,expected",
    [
        (DatePreset.TODAY, (dt.date(2024, 3, 13), dt.date(2024, 3, 13))),
        (DatePreset.YESTERDAY, (dt.date(2024, 3, 12), dt.date(2024, 3, 12))),
        (DatePreset.THIS_WEEK, (dt.date(2024, 3, 11), dt.date(2024, 3, 13))),
        (DatePreset.LAST_WEEK, (dt.date(2024, 3, 4), dt.date(2024, 3, 10))),
        (DatePreset.THIS_MONTH, (dt.date(2024, 3, 1), dt.date(2024, 3, 13))),
        (DatePreset.LAST_MONTH, (dt.date(2024, 2, 1), dt.date(2024, 2, 29))),
        (DatePreset.THIS_YEAR, (dt.date(2024, 1, 1), dt.date(2024, 3, 13))),
        (DatePreset.LAST_YEAR, (dt.date(2023, 1, 1), dt.date(2023, 12, 31))),
    ],
)
def test_calendar_presets(preset, expected):
    assert preset.date_range(TODAY) == expected


@pytest.mark.parametrize(
    "preset,days",
    [
        (DatePreset.LAST_7_DAYS, 7),
        (DatePreset.LAST_14_DAYS, 14),
        (DatePreset.LAST_30_DAYS, 30),
        (DatePreset.LAST_365_DAYS, 365),
    ],
)
def test_last_n_days_covers_exactly_n_days_ending_today(preset, days):
    start, end = preset.date_range(TODAY)
    assert end == TODAY
    assert (end - start).days + 1 == days


def test_last_month_across_year_boundary():
    assert DatePreset.LAST_MONTH.date_range(dt.date(2024, 1, 15)) == (dt.date(2023, 12, 1), dt.date(2023, 12, 31))


def test_last_week_from_a_monday():
    assert DatePreset.LAST_WEEK.date_range(dt.date(2024, 3, 11)) == (dt.date(2024, 3, 4), dt.date(2024, 3, 10))


def test_every_preset_is_a_valid_range():
    for p in DatePreset:
        start, end = p.date_range(TODAY)
        assert start <= end


@pytest.mark.parametrize("text", ["Last 7 Days", "last_7_days", "LAST-7-DAYS", " last 7 days "])
def test_parse_accepts_display_and_member_names(text):
    assert DatePreset.parse(text) is DatePreset.LAST_7_DAYS


def test_parse_rejects_unknown():
    with pytest.raises(ValueError):
        DatePreset.parse("fortnight")


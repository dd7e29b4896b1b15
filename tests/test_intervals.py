from datetime import date

import pytest

from river_monitor.exceptions import ValidationError
from river_monitor.models.domain import DateInterval
from river_monitor.utils.intervals import (
    FIFTEEN_DAYS,
    THREE_MONTHS,
    Cadence,
    generate_intervals,
)


def _pairs(intervals):
    return [(i.start.isoformat(), i.end.isoformat()) for i in intervals]


class TestThreeMonthCadence:
    def test_half_year_yields_two_quarters(self):
        intervals = generate_intervals(date(2020, 1, 1), date(2020, 7, 1), THREE_MONTHS)
        assert _pairs(intervals) == [
            ("2020-01-01", "2020-04-01"),
            ("2020-04-01", "2020-07-01"),
        ]

    def test_last_interval_is_clamped(self):
        intervals = generate_intervals(date(2020, 1, 1), date(2020, 5, 15), THREE_MONTHS)
        assert _pairs(intervals) == [
            ("2020-01-01", "2020-04-01"),
            ("2020-04-01", "2020-05-15"),
        ]

    def test_default_batch_range(self):
        intervals = generate_intervals(date(2020, 1, 1), date(2023, 12, 31), THREE_MONTHS)
        assert len(intervals) == 16
        assert intervals[-1].start == date(2023, 10, 1)
        assert intervals[-1].end == date(2023, 12, 31)

    def test_month_end_start_does_not_drift(self):
        intervals = generate_intervals(date(2021, 1, 31), date(2021, 12, 31), THREE_MONTHS)
        assert [i.end for i in intervals] == [
            date(2021, 4, 30),
            date(2021, 7, 31),
            date(2021, 10, 31),
            date(2021, 12, 31),
        ]

    @pytest.mark.parametrize(
        "start, end",
        [
            (date(2020, 1, 1), date(2023, 12, 31)),
            (date(2019, 2, 28), date(2019, 3, 1)),
            (date(2018, 11, 30), date(2021, 2, 28)),
        ],
    )
    def test_intervals_cover_range_without_gaps(self, start, end):
        intervals = generate_intervals(start, end, THREE_MONTHS)

        assert intervals[0].start == start
        assert intervals[-1].end == end
        for previous, current in zip(intervals, intervals[1:]):
            assert previous.end == current.start
            assert previous.start < current.start
        assert all(i.end <= end for i in intervals)
        assert all(i.start < i.end for i in intervals)


class TestFifteenDayCadence:
    def test_exact_boundaries(self):
        intervals = generate_intervals(date(2019, 2, 1), date(2019, 6, 30), FIFTEEN_DAYS)
        assert _pairs(intervals) == [
            ("2019-02-01", "2019-02-16"),
            ("2019-02-16", "2019-03-03"),
            ("2019-03-03", "2019-03-18"),
            ("2019-03-18", "2019-04-02"),
            ("2019-04-02", "2019-04-17"),
            ("2019-04-17", "2019-05-02"),
            ("2019-05-02", "2019-05-17"),
            ("2019-05-17", "2019-06-01"),
            ("2019-06-01", "2019-06-16"),
            ("2019-06-16", "2019-06-30"),
        ]

    def test_all_but_last_are_fifteen_days(self):
        intervals = generate_intervals(date(2019, 2, 1), date(2019, 6, 30), FIFTEEN_DAYS)
        assert all((i.end - i.start).days == 15 for i in intervals[:-1])
        assert (intervals[-1].end - intervals[-1].start).days <= 15


class TestEmptyRanges:
    @pytest.mark.parametrize("cadence", [THREE_MONTHS, FIFTEEN_DAYS])
    def test_same_start_and_end(self, cadence):
        assert generate_intervals(date(2020, 1, 1), date(2020, 1, 1), cadence) == []

    def test_start_after_end(self):
        assert generate_intervals(date(2021, 1, 1), date(2020, 1, 1), THREE_MONTHS) == []


class TestCadence:
    def test_parse(self):
        assert Cadence.parse("3m") == THREE_MONTHS
        assert Cadence.parse("15D") == FIFTEEN_DAYS

    @pytest.mark.parametrize("text", ["", "0m", "3w", "m3", "-1d"])
    def test_parse_rejects_invalid(self, text):
        with pytest.raises(ValidationError):
            Cadence.parse(text)

    def test_rejects_zero_step(self):
        with pytest.raises(ValueError):
            Cadence()

    def test_is_hashable(self):
        assert {Cadence.parse("3m"), THREE_MONTHS, FIFTEEN_DAYS} == {THREE_MONTHS, FIFTEEN_DAYS}


class TestCalendarLimit:
    @pytest.mark.parametrize("cadence", [THREE_MONTHS, FIFTEEN_DAYS])
    def test_step_past_last_date_is_clamped(self, cadence):
        start, end = date(9999, 12, 20), date(9999, 12, 31)
        assert generate_intervals(start, end, cadence) == [DateInterval(start=start, end=end)]

    def test_month_overflow_near_last_date(self):
        intervals = generate_intervals(date(9999, 11, 1), date(9999, 12, 31), THREE_MONTHS)
        assert [(i.start, i.end) for i in intervals] == [(date(9999, 11, 1), date(9999, 12, 31))]

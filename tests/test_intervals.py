"""Tests for minute-of-day interval utilities."""

import pytest

from gapfill.core.intervals import (
    InvalidTimeError,
    TimeRange,
    format_duration,
    format_hhmm,
    merge_ranges,
    parse_hhmm,
    snap_down,
    snap_up,
    subtract_ranges,
)


class TestParseHHMM:
    def test_parses_padded_time(self):
        assert parse_hhmm("09:30") == 570

    def test_parses_single_digit_hour(self):
        assert parse_hhmm("7:05") == 425

    def test_midnight_and_end_of_day(self):
        assert parse_hhmm("00:00") == 0
        assert parse_hhmm("24:00") == 1440

    @pytest.mark.parametrize("value", ["25:00", "12:60", "24:01", "abc", "", "9am", "12:5"])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidTimeError):
            parse_hhmm(value)

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_hhmm("nope")


class TestFormatting:
    def test_format_hhmm(self):
        assert format_hhmm(570) == "09:30"
        assert format_hhmm(0) == "00:00"
        assert format_hhmm(1440) == "24:00"

    def test_format_hhmm_out_of_range(self):
        with pytest.raises(InvalidTimeError):
            format_hhmm(1441)

    def test_format_duration(self):
        assert format_duration(45) == "45m"
        assert format_duration(120) == "2h"
        assert format_duration(90) == "1h 30m"


class TestSnapping:
    def test_snap_up(self):
        assert snap_up(61, 10) == 70
        assert snap_up(60, 10) == 60

    def test_snap_down(self):
        assert snap_down(69, 10) == 60

    def test_increment_of_one_is_identity(self):
        assert snap_up(61, 1) == 61
        assert snap_down(61, 1) == 61


class TestTimeRange:
    def test_touching_ranges_do_not_overlap(self):
        assert not TimeRange(60, 120).overlaps(TimeRange(120, 180))

    def test_overlap(self):
        assert TimeRange(60, 121).overlaps(TimeRange(120, 180))

    def test_contains(self):
        outer = TimeRange(60, 180)
        assert outer.contains(TimeRange(60, 180))
        assert outer.contains(TimeRange(90, 120))
        assert not outer.contains(TimeRange(30, 90))

    def test_format(self):
        assert TimeRange.parse("09:00", "10:30").format() == "09:00-10:30 (1h 30m)"


class TestMergeRanges:
    def test_merges_touching(self):
        assert merge_ranges([TimeRange(60, 120), TimeRange(120, 180)]) == [TimeRange(60, 180)]

    def test_merges_overlapping_unsorted(self):
        merged = merge_ranges([TimeRange(300, 400), TimeRange(60, 200), TimeRange(100, 150)])
        assert merged == [TimeRange(60, 200), TimeRange(300, 400)]

    def test_drops_empty_ranges(self):
        assert merge_ranges([TimeRange(60, 60)]) == []


class TestSubtractRanges:
    def test_splits_window(self):
        free = subtract_ranges(TimeRange(480, 1380), [TimeRange(540, 600)])
        assert free == [TimeRange(480, 540), TimeRange(600, 1380)]

    def test_ignores_busy_outside_window(self):
        free = subtract_ranges(TimeRange(480, 600), [TimeRange(0, 100), TimeRange(700, 800)])
        assert free == [TimeRange(480, 600)]

    def test_fully_covered(self):
        assert subtract_ranges(TimeRange(480, 600), [TimeRange(400, 700)]) == []

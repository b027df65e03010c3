#!/usr/bin/env python3
"""Tests for study day and week boundaries."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from cardwise.utils.study_time import StudyTime, from_ts, now, to_ts


def test_day_bounds_inclusive():
    days = StudyTime()
    start, end = days.day_bounds(datetime(2024, 1, 3, 15, 45, 12))

    assert start == datetime(2024, 1, 3, 0, 0, 0)
    assert end == datetime(2024, 1, 3, 23, 59, 59)


def test_rollover_hour():
    """With a 4 AM rollover, 2 AM belongs to the previous study day."""
    days = StudyTime(rollover_hour=4)
    late_night = datetime(2024, 1, 3, 2, 0, 0)

    assert days.day_bounds(late_night) == (datetime(2024, 1, 2, 4, 0, 0), datetime(2024, 1, 3, 3, 59, 59))
    assert days.start_of_day(datetime(2024, 1, 3, 5, 0, 0)) == datetime(2024, 1, 3, 4, 0, 0)


def test_rollover_hour_range():
    with pytest.raises(ValueError):
        StudyTime(rollover_hour=24)
    with pytest.raises(ValueError):
        StudyTime(rollover_hour=-1)


def test_week_bounds_monday_to_sunday():
    days = StudyTime()
    # Wednesday
    start, end = days.week_bounds(datetime(2024, 1, 3, 12, 0, 0))
    assert start == datetime(2024, 1, 1, 0, 0, 0)
    assert end == datetime(2024, 1, 7, 23, 59, 59)

    # Sunday stays in the same week
    start, _ = days.week_bounds(datetime(2024, 1, 7, 22, 0, 0))
    assert start == datetime(2024, 1, 1, 0, 0, 0)


def test_recent_days():
    days = StudyTime()
    bounds = days.recent_days(3, datetime(2024, 3, 1, 10, 0, 0))

    assert [start.strftime("%Y-%m-%d") for start, _ in bounds] == ["2024-02-28", "2024-02-29", "2024-03-01"]
    assert bounds[-1][1] == datetime(2024, 3, 1, 23, 59, 59)
    assert StudyTime().recent_days(0, datetime(2024, 3, 1)) == []


def test_timestamp_conversion():
    moment = datetime(2024, 6, 15, 8, 30, 5)
    assert from_ts(to_ts(moment)) == moment
    assert from_ts(None) is None
    assert now().microsecond == 0


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))

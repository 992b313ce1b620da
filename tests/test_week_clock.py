"""
Unit tests for week identity, week boundaries and time-until-next.
Reference week: Mon 2025-02-10 .. Sun 2025-02-16 (ISO 2025-W7).
"""

import sys
import os
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from week_clock import (
    get_current_week,
    get_week_dates,
    legacy_week_number,
    next_monday,
    time_until_next,
    to_iso,
)

WEDNESDAY = datetime(2025, 2, 12, 10, 0)


def test_iso_key_format():
    week = get_current_week(WEDNESDAY, "iso")
    assert week == {"week": 7, "year": 2025, "key": "2025-W7"}


def test_iso_key_stable_across_whole_week():
    monday, sunday = get_week_dates(WEDNESDAY)
    expected = get_current_week(WEDNESDAY, "iso")["key"]

    t = monday
    while t <= sunday:
        assert get_current_week(t, "iso")["key"] == expected
        t += timedelta(hours=7)
    assert get_current_week(sunday, "iso")["key"] == expected


def test_iso_key_differs_in_adjacent_weeks():
    monday, sunday = get_week_dates(WEDNESDAY)
    key = get_current_week(WEDNESDAY, "iso")["key"]
    assert get_current_week(monday - timedelta(milliseconds=1), "iso")["key"] != key
    assert get_current_week(sunday + timedelta(milliseconds=1), "iso")["key"] != key


def test_iso_year_boundary():
    """Mon 2024-12-30 already belongs to 2025-W1."""
    assert get_current_week(datetime(2024, 12, 30, 9), "iso")["key"] == "2025-W1"
    assert get_current_week(datetime(2025, 1, 5, 23), "iso")["key"] == "2025-W1"


def test_legacy_formula():
    """2025-01-01 is a Wednesday: week 1 runs Wed..Sat, week 2 starts Sunday."""
    assert legacy_week_number(datetime(2025, 1, 1)) == 1
    assert legacy_week_number(datetime(2025, 1, 4)) == 1
    assert legacy_week_number(datetime(2025, 1, 5)) == 2
    assert get_current_week(datetime(2025, 1, 5), "legacy")["key"] == "2025-W2"


def test_unknown_numbering_rule():
    with pytest.raises(ValueError):
        get_current_week(WEDNESDAY, "fiscal")


def test_week_dates_midweek():
    monday, sunday = get_week_dates(WEDNESDAY)
    assert monday == datetime(2025, 2, 10, 0, 0, 0, 0)
    assert sunday == datetime(2025, 2, 16, 23, 59, 59, 999000)


def test_week_dates_on_sunday():
    monday, sunday = get_week_dates(datetime(2025, 2, 16, 20, 0))
    assert monday == datetime(2025, 2, 10)
    assert sunday.date() == datetime(2025, 2, 16).date()


def test_next_monday():
    assert next_monday(WEDNESDAY) == datetime(2025, 2, 17)
    assert next_monday(datetime(2025, 2, 16, 23, 59)) == datetime(2025, 2, 17)


def test_time_until_next():
    remaining = time_until_next(WEDNESDAY)
    assert remaining["days"] == 4
    assert remaining["hours"] == 14
    assert remaining["minutes"] == 0
    assert remaining["nextMonday"] == datetime(2025, 2, 17)


def test_time_until_next_not_clamped():
    """A target in the past yields negative components."""
    remaining = time_until_next(WEDNESDAY, target=WEDNESDAY - timedelta(minutes=90))
    assert remaining["days"] == -1
    assert remaining["hours"] == -2
    assert remaining["minutes"] == -30


def test_to_iso():
    dt = datetime(2025, 2, 10, 8, 30, 0, 123456, tzinfo=timezone.utc)
    assert to_iso(dt) == "2025-02-10T08:30:00.123Z"
    assert to_iso(None) is None

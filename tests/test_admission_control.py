"""
Unit tests for the weekly admission gate.
"""

import sys
import os
from datetime import datetime, timedelta

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from pipeline.admission_control import check_admission
from week_clock import get_current_week

WEDNESDAY = datetime(2025, 2, 12, 10, 0)


def _record(week_key, timestamp="2025-02-11T09:00:00.000Z"):
    return {"issue": "x", "weekKey": week_key, "timestamp": timestamp}


def test_empty_history_is_first():
    assert check_admission([], WEDNESDAY, "iso") == {"allowed": True, "reason": "first"}


def test_same_week_denied():
    result = check_admission([_record("2025-W7")], WEDNESDAY, "iso")
    assert result["allowed"] is False
    assert result["reason"] == "already_created_this_week"
    assert result["lastPrescriptionDate"] == "2025-02-11T09:00:00.000Z"
    assert result["currentWeekStart"] == datetime(2025, 2, 10)
    assert result["currentWeekEnd"] == datetime(2025, 2, 16, 23, 59, 59, 999000)
    assert result["nextAvailableDate"] == datetime(2025, 2, 17)


def test_denied_for_every_instant_of_the_week():
    key = get_current_week(WEDNESDAY, "iso")["key"]
    t = datetime(2025, 2, 10)
    while t < datetime(2025, 2, 17):
        assert check_admission([_record(key)], t, "iso")["allowed"] is False
        t += timedelta(hours=5)


def test_new_week_allowed():
    result = check_admission([_record("2025-W6")], WEDNESDAY, "iso")
    assert result == {"allowed": True, "reason": "new_week"}


def test_rolls_over_on_monday():
    history = [_record("2025-W7")]
    assert check_admission(history, datetime(2025, 2, 16, 23, 59), "iso")["allowed"] is False
    assert check_admission(history, datetime(2025, 2, 17, 0, 0), "iso")["allowed"] is True


def test_only_last_record_consulted():
    history = [_record("2025-W7"), _record("2025-W6")]
    assert check_admission(history, WEDNESDAY, "iso")["reason"] == "new_week"

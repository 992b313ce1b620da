"""
Week Clock
===========
Week identity and Monday-Sunday boundaries for the weekly prescription gate.
All arithmetic is in server local time (naive datetimes).

Two numbering rules:
  iso    : ISO-8601 (iso_year, iso_week). Boundary always on Monday 00:00.
  legacy : ceil((day_of_year + jan1_weekday + 1) / 7), Sunday-based weekday.
           Matches old history files; the week number changes on Sunday and
           near Jan 1, so it can disagree with get_week_dates().
"""

import math
from datetime import datetime, timedelta, timezone

from config import WEEK_NUMBERING

DAY_MS = 24 * 60 * 60 * 1000
HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now()


def legacy_week_number(now: datetime) -> int:
    """Day-of-year week number, not ISO-8601."""
    start_of_year = datetime(now.year, 1, 1)
    days = (now.date() - start_of_year.date()).days
    jan1_weekday = (start_of_year.weekday() + 1) % 7  # Sunday = 0
    return math.ceil((days + jan1_weekday + 1) / 7)


def get_current_week(now: datetime | None = None, numbering: str | None = None) -> dict:
    """
    Week identity for `now`.

    Returns:
        {"week": int, "year": int, "key": "YYYY-W<n>"}
    """
    now = _now(now)
    rule = (numbering or WEEK_NUMBERING).lower()

    if rule == "legacy":
        year, week = now.year, legacy_week_number(now)
    elif rule == "iso":
        year, week, _ = now.isocalendar()
    else:
        raise ValueError(f"Unknown week numbering: {rule}")

    return {"week": week, "year": year, "key": f"{year}-W{week}"}


def get_week_dates(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Inclusive (monday 00:00:00.000, sunday 23:59:59.999) around `now`."""
    now = _now(now)
    monday = (now - timedelta(days=now.weekday())).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    sunday = (monday + timedelta(days=6)).replace(
        hour=23, minute=59, second=59, microsecond=999000
    )
    return monday, sunday


def next_monday(now: datetime | None = None) -> datetime:
    """Midnight of the Monday following the current week's Sunday."""
    monday, _ = get_week_dates(now)
    return monday + timedelta(days=7)


def time_until_next(now: datetime | None = None, target: datetime | None = None) -> dict:
    """
    Day/hour/minute breakdown of the delta from `now` to `target`
    (default: next Monday 00:00).

    The result is not clamped: a target already in the past yields negative
    components, which callers treat as "available now".
    """
    now = _now(now)
    target = target if target is not None else next_monday(now)
    diff_ms = (target - now) / timedelta(milliseconds=1)

    days = math.floor(diff_ms / DAY_MS)
    hours = math.floor(math.fmod(diff_ms, DAY_MS) / HOUR_MS)
    minutes = math.floor(math.fmod(diff_ms, HOUR_MS) / MINUTE_MS)

    return {"days": days, "hours": hours, "minutes": minutes, "nextMonday": target}


def to_iso(dt: datetime | None) -> str | None:
    """UTC ISO-8601 with millisecond precision ("2025-02-10T08:30:00.000Z").

    Naive datetimes are taken as server local time.
    """
    if dt is None:
        return None
    utc = dt.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"

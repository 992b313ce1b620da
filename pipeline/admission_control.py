"""
Admission Control
==================
Decides whether a weekly prescription may be created now.

Only the most recent record matters: if its weekKey equals the current
week's key the request is denied, otherwise it is allowed. There is no
sliding window and no quota beyond one per week.
"""

from datetime import datetime

from week_clock import get_current_week, get_week_dates, next_monday

REASON_FIRST = "first"
REASON_NEW_WEEK = "new_week"
REASON_ALREADY_CREATED = "already_created_this_week"


def check_admission(history: list, now: datetime | None = None,
                    numbering: str | None = None) -> dict:
    """
    Args:
        history: Prescription records in insertion order
        now: Current local time (default: datetime.now())
        numbering: Week numbering rule override ("iso" / "legacy")

    Returns:
        {"allowed": True, "reason": "first" | "new_week"} or, when denied,
        {"allowed": False, "reason": "already_created_this_week",
         "lastPrescriptionDate", "currentWeekStart", "currentWeekEnd",
         "nextAvailableDate"}
    """
    now = now if now is not None else datetime.now()
    if not history:
        return {"allowed": True, "reason": REASON_FIRST}

    last = history[-1]
    current = get_current_week(now, numbering)

    if last.get("weekKey") != current["key"]:
        return {"allowed": True, "reason": REASON_NEW_WEEK}

    monday, sunday = get_week_dates(now)
    return {
        "allowed": False,
        "reason": REASON_ALREADY_CREATED,
        "lastPrescriptionDate": last.get("timestamp"),
        "currentWeekStart": monday,
        "currentWeekEnd": sunday,
        "nextAvailableDate": next_monday(now),
    }

"""
Weekly Prescriber
==================
One AI intervention plan per calendar week.

Flow per request:
  1. Validate issue / context               (ValidationError → 400)
  2. Admission check on the last record     (AdmissionDenied → 200 blocked)
  3. Build prompt → LLM gateway              (GatewayError → 500)
  4. Sanitize + parse JSON                   (ParseError → 500, slot NOT consumed)
  5. Insert-if-absent into the history store (WeekAlreadyRecorded → AdmissionDenied)

The admission check in step 2 only saves an LLM call; the store's keyed
insert in step 5 is what actually enforces one record per weekKey.
"""

import logging
from datetime import datetime

from config import ANTHROPIC_MODEL
from history_store import HistoryStore, WeekAlreadyRecorded
from llm_client import LLMClient, model_label
from pipeline.admission_control import check_admission
from pipeline.prompt_builder import build_prompt
from pipeline.request_validation import validate_context, validate_issue
from pipeline.response_parser import parse_solution
from week_clock import get_current_week, get_week_dates, time_until_next, to_iso

logger = logging.getLogger("guidance_rx.weekly")

BLOCKED_MESSAGE = "A prescription has already been created this week."


class AdmissionDenied(Exception):
    """Weekly limit reached. `payload` is the blocked response body."""

    def __init__(self, payload: dict):
        super().__init__(payload.get("message", BLOCKED_MESSAGE))
        self.payload = payload


def _serialize_time_until(now: datetime) -> dict:
    remaining = time_until_next(now)
    remaining["nextMonday"] = to_iso(remaining["nextMonday"])
    return remaining


class WeeklyPrescriber:
    """Admission-gated weekly prescription service."""

    def __init__(self, store: HistoryStore, llm: LLMClient,
                 now_fn=datetime.now, numbering: str | None = None):
        self.store = store
        self.llm = llm
        self.now_fn = now_fn
        self.numbering = numbering

    # ------------------------------------------------------------------
    #  Reads
    # ------------------------------------------------------------------
    def check_availability(self) -> dict:
        now = self.now_fn()
        last = self.store.last()
        admission = check_admission([last] if last else [], now, self.numbering)

        if admission["allowed"]:
            return {"allowed": True, "reason": admission["reason"]}

        return {
            "allowed": False,
            "reason": admission["reason"],
            "lastPrescriptionDate": admission["lastPrescriptionDate"],
            "nextAvailableDate": to_iso(admission["nextAvailableDate"]),
            "currentWeek": {
                "start": to_iso(admission["currentWeekStart"]),
                "end": to_iso(admission["currentWeekEnd"]),
            },
            "timeUntilNext": _serialize_time_until(now),
        }

    def this_week(self) -> dict | None:
        """The record for the current weekKey, or None."""
        current = get_current_week(self.now_fn(), self.numbering)
        return self.store.find_week(current["key"])

    def history(self) -> list:
        return self.store.newest_first()

    # ------------------------------------------------------------------
    #  Write
    # ------------------------------------------------------------------
    def _blocked(self, now: datetime) -> AdmissionDenied:
        current = get_current_week(now, self.numbering)
        existing = self.store.find_week(current["key"]) or self.store.last()
        monday, sunday = get_week_dates(now)
        time_until = _serialize_time_until(now)
        payload = {
            "success": False,
            "blocked": True,
            "reason": "weekly_limit_reached",
            "message": BLOCKED_MESSAGE,
            "lastPrescriptionDate": existing.get("timestamp") if existing else None,
            "nextAvailableDate": time_until["nextMonday"],
            "timeUntilNext": time_until,
            "currentWeek": {"start": to_iso(monday), "end": to_iso(sunday)},
        }
        return AdmissionDenied(payload)

    def prescribe(self, issue, context=None, created_by=None) -> dict:
        """
        Create this week's prescription.

        Returns:
            Success body: {success, issue, solution, timestamp, weekInfo,
                           nextPrescriptionAvailable}

        Raises:
            ValidationError, AdmissionDenied, GatewayError, ParseError, OSError
        """
        issue = validate_issue(issue)
        context = validate_context(context)
        logger.info(f"Prescription request by {created_by or 'anonymous'}: {issue[:120]}")

        now = self.now_fn()
        last = self.store.last()
        admission = check_admission([last] if last else [], now, self.numbering)
        if not admission["allowed"]:
            logger.info("Weekly limit reached; request blocked before model call")
            raise self._blocked(now)

        prompt = build_prompt(issue, context)
        raw = self.llm.query(prompt)
        logger.debug(f"Raw model response: {raw}")
        solution = parse_solution(raw)

        week = get_current_week(now, self.numbering)
        monday, _ = get_week_dates(now)
        record = {
            "issue": issue,
            "context": context,
            "solution": solution,
            "timestamp": to_iso(now),
            "weekKey": week["key"],
            "week": week["week"],
            "year": week["year"],
            "aiModel": model_label(getattr(self.llm, "model", None) or ANTHROPIC_MODEL),
            "createdBy": created_by,
        }

        try:
            self.store.append(record, week_start=monday)
        except WeekAlreadyRecorded:
            logger.warning(f"Concurrent prescription for {week['key']} won the race; discarding")
            raise self._blocked(now)

        logger.info(f"Prescription created for {week['key']} (severity={solution.get('severity')})")
        return {
            "success": True,
            "issue": issue,
            "solution": solution,
            "timestamp": record["timestamp"],
            "weekInfo": dict(week),
            "nextPrescriptionAvailable": _serialize_time_until(now)["nextMonday"],
        }

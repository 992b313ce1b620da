"""
Prescription History Store
============================
Append-only log of weekly prescriptions, persisted as one JSON document:

    {"prescriptions": [...], "currentWeek": "2025-W7", "weekStartDate": "..."}

The whole document is read at startup and rewritten on every append.
append() refuses a second record for the same weekKey (insert-if-absent under
a process lock); the resulting WeekAlreadyRecorded is the authoritative
weekly-limit signal. Not safe across processes.
"""

import copy
import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone

from config import HISTORY_PATH

logger = logging.getLogger("guidance_rx.history")


class WeekAlreadyRecorded(Exception):
    """A prescription already exists for this weekKey."""

    def __init__(self, week_key: str, existing: dict):
        super().__init__(f"Prescription already recorded for {week_key}")
        self.week_key = week_key
        self.existing = existing


def _empty_history() -> dict:
    return {"prescriptions": [], "currentWeek": None, "weekStartDate": None}


class HistoryStore:
    """File-backed prescription history."""

    def __init__(self, path: str = None):
        self.path = path or HISTORY_PATH
        self._lock = threading.Lock()
        self._history = _empty_history()

    # ------------------------------------------------------------------
    #  Load / save
    # ------------------------------------------------------------------
    def load(self) -> dict:
        """Read the history file, creating it when absent.

        A corrupt or unreadable file is logged and replaced in memory by an
        empty history; the file itself is left untouched until the next append.
        """
        with self._lock:
            if not os.path.exists(self.path):
                self._history = _empty_history()
                self._save_locked()
                logger.info(f"Initialised empty prescription history at {self.path}")
                return self._history

            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Error loading prescription history from {self.path}: {e}")
                self._history = _empty_history()
                return self._history

            if not isinstance(data, dict) or not isinstance(data.get("prescriptions"), list):
                logger.error(f"Malformed prescription history in {self.path}; starting empty")
                self._history = _empty_history()
                return self._history

            data.setdefault("currentWeek", None)
            data.setdefault("weekStartDate", None)
            self._history = data
            logger.info(
                f"Loaded {len(data['prescriptions'])} prescriptions from {self.path}"
            )
            return self._history

    def _save_locked(self):
        """Write to a temp file beside the target, then swap it in.

        The previous file stays intact if the write fails part way.
        """
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".history-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._history, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # ------------------------------------------------------------------
    #  Reads
    # ------------------------------------------------------------------
    @property
    def prescriptions(self) -> list:
        """Snapshot of all records in insertion order."""
        with self._lock:
            return copy.deepcopy(self._history["prescriptions"])

    def last(self) -> dict | None:
        with self._lock:
            records = self._history["prescriptions"]
            return copy.deepcopy(records[-1]) if records else None

    def find_week(self, week_key: str) -> dict | None:
        with self._lock:
            for record in self._history["prescriptions"]:
                if record.get("weekKey") == week_key:
                    return copy.deepcopy(record)
        return None

    def newest_first(self) -> list:
        """Records sorted by timestamp, newest first. Stored order is untouched."""
        return sorted(
            self.prescriptions,
            key=lambda r: r.get("timestamp") or "",
            reverse=True,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._history["prescriptions"])

    # ------------------------------------------------------------------
    #  Write
    # ------------------------------------------------------------------
    def append(self, record: dict, week_start: datetime | None = None) -> dict:
        """
        Insert `record` unless its weekKey is already present, then rewrite the file.

        Raises:
            WeekAlreadyRecorded: a record for record["weekKey"] exists.
            OSError: the file could not be written (the in-memory append is undone).
        """
        week_key = record["weekKey"]
        with self._lock:
            for existing in self._history["prescriptions"]:
                if existing.get("weekKey") == week_key:
                    raise WeekAlreadyRecorded(week_key, copy.deepcopy(existing))

            previous = (self._history["currentWeek"], self._history["weekStartDate"])
            self._history["prescriptions"].append(record)
            self._history["currentWeek"] = week_key
            if week_start is not None:
                self._history["weekStartDate"] = (
                    week_start.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
                )
            try:
                self._save_locked()
            except OSError:
                self._history["prescriptions"].pop()
                self._history["currentWeek"], self._history["weekStartDate"] = previous
                raise

        logger.info(f"Recorded prescription for {week_key}")
        return record

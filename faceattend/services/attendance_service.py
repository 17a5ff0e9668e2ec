from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from faceattend.analytics.metrics import AttendanceMetrics
from faceattend.analytics.reports import ReportService
from faceattend.config.settings import NOTIFICATION_COOLDOWN
from faceattend.database.db_manager import PersistenceError
from faceattend.database.models import AttendanceRecord, AttendanceStatus, AttendanceStore
from faceattend.utils.logging import setup_logger


class SightingOutcome(Enum):
    RECORDED = "recorded"
    DUPLICATE_TODAY = "duplicate"
    SUPPRESSED = "suppressed"


MESSAGES = {
    SightingOutcome.RECORDED: "Attendance marked successfully!",
    SightingOutcome.DUPLICATE_TODAY: "Your attendance is already marked for today!",
}


@dataclass(frozen=True)
class SightingResult:
    outcome: SightingOutcome
    identity_id: int
    name: str
    record: Optional[AttendanceRecord] = None
    persisted: bool = True
    error: Optional[str] = None

    @property
    def message(self):
        return MESSAGES.get(self.outcome)

    @property
    def should_notify(self):
        return self.outcome is not SightingOutcome.SUPPRESSED


class RecognitionThrottle:
    """
    Last notification time per identity. Entries are never removed.
    """

    def __init__(self, cooldown=NOTIFICATION_COOLDOWN):
        self.cooldown = cooldown
        self.last_notified = {}

    def is_throttled(self, identity_id, now):
        last = self.last_notified.get(identity_id)
        return last is not None and (now - last).total_seconds() < self.cooldown

    def touch(self, identity_id, now):
        self.last_notified[identity_id] = now


class AttendanceLedger:
    """
    Append-only attendance records with one record per person per day.
    """

    def __init__(self, store: AttendanceStore, throttle=None, reports=None):
        self.store = store
        self.throttle = throttle or RecognitionThrottle()
        self.reports = reports or ReportService()
        self.logger = setup_logger()
        self.last_error = None
        try:
            self.records = self.store.load_all()
        except PersistenceError as e:
            self.logger.error(f"Error loading attendance: {e}")
            self.last_error = f"Error loading attendance data: {e}"
            self.records = []

    def record_sighting(self, identity_id, name, now=None):
        """
        Register that a known person was seen.

        Returns a SightingResult. A person seen again within the cooldown is
        SUPPRESSED without touching the ledger; otherwise a second sighting on
        the same calendar day is DUPLICATE_TODAY and the first is RECORDED.
        """
        now = now or datetime.now()

        if self.throttle.is_throttled(identity_id, now):
            return SightingResult(SightingOutcome.SUPPRESSED, identity_id, name)
        self.throttle.touch(identity_id, now)

        today = now.date()
        already_marked = any(
            record.identity_id == identity_id and record.timestamp.date() == today
            for record in self.records
        )
        if already_marked:
            self.logger.info(f"Attendance already marked today for {name} ({identity_id})")
            return SightingResult(SightingOutcome.DUPLICATE_TODAY, identity_id, name)

        record = AttendanceRecord(
            id=self._generate_id(now),
            identity_id=identity_id,
            name=name,
            timestamp=now,
            status=AttendanceStatus.PRESENT,
        )
        self.records.insert(0, record)
        self.logger.info(f"Attendance marked for {name} ({identity_id})")

        error = self._persist()
        return SightingResult(
            SightingOutcome.RECORDED, identity_id, name,
            record=record, persisted=error is None, error=error,
        )

    def _generate_id(self, now):
        """
        Time-based id in milliseconds, kept strictly above existing ids.
        """
        candidate = int(now.timestamp() * 1000)
        max_id = max((record.id for record in self.records), default=0)
        return max(candidate, max_id + 1)

    def _persist(self):
        """
        Rewrite the stored collection. On failure the in-memory records are
        kept and the error message is returned.
        """
        try:
            self.store.save_all(self.records)
            self.last_error = None
            return None
        except PersistenceError as e:
            self.logger.error(f"Error saving attendance: {e}")
            self.last_error = f"Error saving attendance data: {e}"
            return self.last_error

    def clear_day(self, day):
        """
        Delete every record on the given calendar date. Returns the number removed.
        """
        before = len(self.records)
        self.records = [record for record in self.records if record.timestamp.date() != day]
        removed = before - len(self.records)
        self._persist()
        self.logger.info(f"Cleared {removed} attendance records for {day.isoformat()}")
        return removed

    def clear_today(self, now=None):
        return self.clear_day((now or datetime.now()).date())

    def clear_all(self):
        removed = len(self.records)
        self.records = []
        self._persist()
        self.logger.info(f"Cleared all {removed} attendance records")
        return removed

    def metrics(self):
        return AttendanceMetrics(self.records)

    def today_count(self, today=None):
        return self.metrics().today_count(today)

    def total_count(self):
        return self.metrics().total_count()

    def csv_text(self):
        return self.reports.to_csv_text(self.records)

    def export_csv(self, day=None):
        return self.reports.export_csv(self.records, day=day)

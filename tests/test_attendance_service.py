"""Tests for the attendance ledger and notification throttle."""

from datetime import date, datetime, timedelta

import pytest

from faceattend.database.db_manager import PersistenceError
from faceattend.database.models import ATTENDANCE_RECORDS_KEY, AttendanceStore
from faceattend.services.attendance_service import (
    AttendanceLedger,
    RecognitionThrottle,
    SightingOutcome,
)

T0 = datetime(2026, 10, 19, 9, 0, 0)


class _FailingStore:
    def load_all(self):
        return []

    def save_all(self, records):
        raise PersistenceError("disk full")


class TestRecordSighting:
    def test_first_sighting_is_recorded(self, ledger):
        result = ledger.record_sighting(1, "Alice", T0)

        assert result.outcome is SightingOutcome.RECORDED
        assert result.persisted
        assert result.message == "Attendance marked successfully!"
        assert ledger.records == [result.record]
        assert result.record.timestamp == T0

    def test_within_cooldown_is_suppressed(self, ledger):
        ledger.record_sighting(1, "Alice", T0)
        result = ledger.record_sighting(1, "Alice", T0 + timedelta(seconds=5))

        assert result.outcome is SightingOutcome.SUPPRESSED
        assert not result.should_notify
        assert len(ledger.records) == 1

    def test_after_cooldown_same_day_is_duplicate(self, ledger):
        ledger.record_sighting(1, "Alice", T0)
        result = ledger.record_sighting(1, "Alice", T0 + timedelta(seconds=15))

        assert result.outcome is SightingOutcome.DUPLICATE_TODAY
        assert result.message == "Your attendance is already marked for today!"
        assert len(ledger.records) == 1

    def test_new_calendar_day_is_recorded(self, ledger):
        ledger.record_sighting(1, "Alice", datetime(2026, 10, 19, 23, 59, 0))
        result = ledger.record_sighting(1, "Alice", datetime(2026, 10, 20, 0, 0, 30))

        assert result.outcome is SightingOutcome.RECORDED
        assert len(ledger.records) == 2

    def test_suppressed_sighting_does_not_refresh_cooldown(self, ledger):
        ledger.record_sighting(1, "Alice", T0)
        ledger.record_sighting(1, "Alice", T0 + timedelta(seconds=5))
        result = ledger.record_sighting(1, "Alice", T0 + timedelta(seconds=11))

        assert result.outcome is SightingOutcome.DUPLICATE_TODAY

    def test_cooldown_is_per_identity(self, ledger):
        ledger.record_sighting(1, "Alice", T0)
        result = ledger.record_sighting(2, "Bob", T0 + timedelta(seconds=1))

        assert result.outcome is SightingOutcome.RECORDED

    def test_most_recent_first(self, ledger):
        ledger.record_sighting(1, "Alice", T0)
        ledger.record_sighting(2, "Bob", T0 + timedelta(seconds=1))

        assert [r.name for r in ledger.records] == ["Bob", "Alice"]
        assert ledger.records[0].id > ledger.records[1].id

    def test_records_persist(self, db, ledger):
        ledger.record_sighting(1, "Alice", T0)
        assert AttendanceStore(db).load_all() == ledger.records

    def test_persistence_failure_keeps_record(self, reports):
        ledger = AttendanceLedger(_FailingStore(), reports=reports)
        result = ledger.record_sighting(1, "Alice", T0)

        assert result.outcome is SightingOutcome.RECORDED
        assert not result.persisted
        assert "disk full" in result.error
        assert len(ledger.records) == 1


class TestThrottle:
    def test_boundary(self):
        throttle = RecognitionThrottle(cooldown=10)
        throttle.touch(7, T0)
        assert throttle.is_throttled(7, T0 + timedelta(seconds=9.999))
        assert not throttle.is_throttled(7, T0 + timedelta(seconds=10))
        assert not throttle.is_throttled(8, T0)


class TestClearing:
    def _fill(self, ledger):
        ledger.record_sighting(1, "Alice", datetime(2026, 10, 18, 9, 0))
        ledger.record_sighting(1, "Alice", datetime(2026, 10, 19, 9, 0))
        ledger.record_sighting(2, "Bob", datetime(2026, 10, 19, 9, 1))

    def test_clear_day(self, db, ledger):
        self._fill(ledger)
        removed = ledger.clear_day(date(2026, 10, 19))

        assert removed == 2
        assert [r.timestamp.date() for r in ledger.records] == [date(2026, 10, 18)]
        assert AttendanceStore(db).load_all() == ledger.records

    def test_clear_today(self, ledger):
        self._fill(ledger)
        assert ledger.clear_today(now=datetime(2026, 10, 18, 17, 0)) == 1
        assert ledger.total_count() == 2

    def test_clear_all(self, db, ledger):
        self._fill(ledger)
        assert ledger.clear_all() == 3
        assert ledger.records == []
        assert AttendanceStore(db).load_all() == []

    def test_counts(self, ledger):
        self._fill(ledger)
        assert ledger.total_count() == 3
        assert ledger.today_count(date(2026, 10, 19)) == 2

    def test_reloaded_ledger_still_dedups(self, db, reports):
        first = AttendanceLedger(AttendanceStore(db), reports=reports)
        first.record_sighting(1, "Alice", T0)

        second = AttendanceLedger(AttendanceStore(db), reports=reports)
        result = second.record_sighting(1, "Alice", T0 + timedelta(seconds=1))
        assert result.outcome is SightingOutcome.DUPLICATE_TODAY

    def test_corrupt_store_starts_empty(self, db, reports):
        db.write_blob(ATTENDANCE_RECORDS_KEY, "{not json")
        ledger = AttendanceLedger(AttendanceStore(db), reports=reports)

        assert ledger.records == []
        assert "Error loading attendance data" in ledger.last_error

        result = ledger.record_sighting(1, "Alice", T0)
        assert result.outcome is SightingOutcome.RECORDED
        assert ledger.last_error is None


class TestExport:
    def test_csv_has_header_and_numbered_rows(self, ledger):
        ledger.record_sighting(1, "Alice", T0)
        ledger.record_sighting(2, "Bob", T0 + timedelta(minutes=1))

        lines = ledger.csv_text().splitlines()

        assert len(lines) == 3
        assert lines[0] == "No,Name,Date,Time,Status"
        assert lines[1].startswith("1,Bob,")
        assert lines[2].startswith("2,Alice,")
        assert lines[1].endswith(",Present")

    def test_export_file_name(self, ledger, reports):
        ledger.record_sighting(1, "Alice", T0)
        path = ledger.export_csv(day=date(2026, 10, 19))

        assert path.name == "attendance_2026-10-19.csv"
        assert path.parent == reports.exports_dir
        assert path.read_text(encoding="utf-8").splitlines()[0] == "No,Name,Date,Time,Status"

    def test_nothing_to_export(self, ledger):
        assert ledger.export_csv() is None

    @pytest.mark.parametrize("name", ["Smith, John", 'Quote "Q"'])
    def test_names_are_quoted(self, ledger, name):
        ledger.record_sighting(1, name, T0)
        lines = ledger.csv_text().splitlines()
        assert len(lines) == 2
        assert lines[1].startswith('1,"')

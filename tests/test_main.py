"""Tests for the admin console."""

from datetime import datetime

import pytest

from faceattend import main as console
from faceattend.database.db_manager import DatabaseManager
from faceattend.database.models import REGISTERED_FACES_KEY, AttendanceStore, IdentityStore
from faceattend.services.attendance_service import AttendanceLedger
from faceattend.services.enrollment_service import EnrollmentService

from conftest import descriptor


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "console.db"
    manager = DatabaseManager(path)
    manager.initialize_db()
    enrollment = EnrollmentService(IdentityStore(manager))
    enrollment.capture(descriptor(0.1))
    enrollment.enroll("Alice", now=datetime(2026, 10, 18, 8, 0))
    ledger = AttendanceLedger(AttendanceStore(manager))
    ledger.record_sighting(enrollment.identities[0].id, "Alice", datetime.now())
    return path


def _run(monkeypatch, db_path, tmp_path, answers):
    answers = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    console.main(db_path=db_path, exports_dir=tmp_path / "exports")


class TestConsole:
    def test_build_services_shares_database(self, db_path, capsys):
        recognition = console.build_services(db_path)
        assert [i.name for i in recognition.enrollment.identities] == ["Alice"]
        assert recognition.ledger.total_count() == 1
        assert "Database connection verified." in capsys.readouterr().out

    def test_list_and_exit(self, monkeypatch, db_path, tmp_path, capsys):
        _run(monkeypatch, db_path, tmp_path, ["1", "", "8"])
        out = capsys.readouterr().out
        assert "Alice" in out
        assert "Exiting application..." in out

    def test_summary(self, monkeypatch, db_path, tmp_path, capsys):
        _run(monkeypatch, db_path, tmp_path, ["4", "", "8"])
        assert "Today: 1    Total: 1" in capsys.readouterr().out

    def test_remove_enrollment(self, monkeypatch, db_path, tmp_path):
        identity_id = IdentityStore(DatabaseManager(db_path)).load_all()[0].id
        _run(monkeypatch, db_path, tmp_path, ["2", str(identity_id), "yes", "", "8"])
        assert IdentityStore(DatabaseManager(db_path)).load_all() == []

    def test_remove_confirms_by_name(self, monkeypatch, db_path, tmp_path):
        identity_id = IdentityStore(DatabaseManager(db_path)).load_all()[0].id
        answers = iter(["2", str(identity_id), "no", "", "8"])
        prompts = []

        def fake_input(prompt=""):
            prompts.append(prompt)
            return next(answers)

        monkeypatch.setattr("builtins.input", fake_input)
        console.main(db_path=db_path, exports_dir=tmp_path / "exports")

        assert any("'Alice'" in p for p in prompts)
        assert len(IdentityStore(DatabaseManager(db_path)).load_all()) == 1

    def test_remove_unknown_skips_confirmation(self, monkeypatch, db_path, tmp_path, capsys):
        _run(monkeypatch, db_path, tmp_path, ["2", "42", "", "8"])
        assert "Error: User '42' not found." in capsys.readouterr().out
        assert len(IdentityStore(DatabaseManager(db_path)).load_all()) == 1

    def test_declined_confirmation_keeps_data(self, monkeypatch, db_path, tmp_path):
        _run(monkeypatch, db_path, tmp_path, ["6", "no", "", "8"])
        assert len(AttendanceStore(DatabaseManager(db_path)).load_all()) == 1

    def test_clear_today(self, monkeypatch, db_path, tmp_path):
        _run(monkeypatch, db_path, tmp_path, ["5", "y", "", "8"])
        assert AttendanceStore(DatabaseManager(db_path)).load_all() == []

    def test_export(self, monkeypatch, db_path, tmp_path, capsys):
        _run(monkeypatch, db_path, tmp_path, ["7", "", "8"])
        exported = list((tmp_path / "exports").glob("attendance_*.csv"))
        assert len(exported) == 1
        assert "Attendance exported to" in capsys.readouterr().out

    def test_invalid_option(self, monkeypatch, db_path, tmp_path, capsys):
        _run(monkeypatch, db_path, tmp_path, ["x", "", "8"])
        assert "Invalid option" in capsys.readouterr().out

    def test_corrupt_faces_reported_at_startup(self, monkeypatch, db_path, tmp_path, capsys):
        DatabaseManager(db_path).write_blob(REGISTERED_FACES_KEY, "{not json")
        _run(monkeypatch, db_path, tmp_path, ["1", "", "8"])

        out = capsys.readouterr().out
        assert "Warning: Error loading face data" in out
        assert "No enrolled users found." in out

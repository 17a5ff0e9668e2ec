import os
import tempfile

# Keep logs and default data out of the source tree
os.environ.setdefault("FACEATTEND_HOME", tempfile.mkdtemp(prefix="faceattend-"))

import pytest

from faceattend.core.detection import make_detection
from faceattend.database.db_manager import DatabaseManager
from faceattend.database.models import AttendanceStore, IdentityStore
from faceattend.analytics.reports import ReportService
from faceattend.services.attendance_service import AttendanceLedger
from faceattend.services.enrollment_service import EnrollmentService
from faceattend.services.recognition_service import RecognitionService


def eye(ear=0.3, x0=0.0, y0=0.0):
    """Six-point eye contour whose aspect ratio is exactly ``ear``."""
    h = 1.5 * ear
    return [
        (x0, y0),
        (x0 + 1, y0 - h),
        (x0 + 2, y0 - h),
        (x0 + 3, y0),
        (x0 + 2, y0 + h),
        (x0 + 1, y0 + h),
    ]


def nose(tip_x=100.0):
    return [(tip_x, 80), (tip_x, 90), (tip_x, 100), (tip_x, 110),
            (tip_x - 5, 112), (tip_x + 5, 112)]


def descriptor(*values, length=128):
    """Descriptor with the given leading values, zero elsewhere."""
    vec = [0.0] * length
    for i, v in enumerate(values):
        vec[i] = v
    return vec


def face(ear=0.3, happy=0.0, nose_x=100.0, box=(50, 50, 100, 100), desc=None,
         expressions=None, landmarks=None):
    if expressions is None:
        expressions = {"happy": happy, "neutral": 1.0 - happy}
    if landmarks is None:
        landmarks = {
            "left_eye": eye(ear, 60, 70),
            "right_eye": eye(ear, 110, 70),
            "nose": nose(nose_x),
        }
    return make_detection(box, landmarks, expressions, desc if desc is not None else descriptor())


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(tmp_path / "attendance.db")
    manager.initialize_db()
    return manager


@pytest.fixture
def reports(tmp_path):
    return ReportService(tmp_path / "exports")


@pytest.fixture
def ledger(db, reports):
    return AttendanceLedger(AttendanceStore(db), reports=reports)


@pytest.fixture
def enrollment(db):
    return EnrollmentService(IdentityStore(db))


@pytest.fixture
def service(enrollment, ledger):
    return RecognitionService(enrollment, ledger)

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from faceattend.config.settings import DESCRIPTOR_LENGTH
from faceattend.database.db_manager import DatabaseManager, PersistenceError

REGISTERED_FACES_KEY = "registered_faces"
ATTENDANCE_RECORDS_KEY = "attendance_records"


class AttendanceStatus(Enum):
    PRESENT = "Present"


@dataclass(frozen=True)
class EnrolledIdentity:
    id: int
    name: str
    descriptor: Tuple[float, ...]
    enrolled_at: datetime
    thumbnail: Optional[str] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Name is required for enrollment")
        descriptor = tuple(float(v) for v in self.descriptor)
        if len(descriptor) != DESCRIPTOR_LENGTH:
            raise ValueError(
                f"Descriptor must have {DESCRIPTOR_LENGTH} values, got {len(descriptor)}"
            )
        object.__setattr__(self, "descriptor", descriptor)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "descriptor": list(self.descriptor),
            "thumbnail": self.thumbnail,
            "date": self.enrolled_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=int(data["id"]),
            name=data["name"],
            descriptor=tuple(data["descriptor"]),
            enrolled_at=datetime.fromisoformat(data["date"]),
            thumbnail=data.get("thumbnail"),
        )


@dataclass(frozen=True)
class AttendanceRecord:
    id: int
    identity_id: int
    name: str
    timestamp: datetime
    status: AttendanceStatus = AttendanceStatus.PRESENT

    def to_dict(self):
        return {
            "id": self.id,
            "faceId": self.identity_id,
            "name": self.name,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=int(data["id"]),
            identity_id=int(data["faceId"]),
            name=data["name"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            status=AttendanceStatus(data.get("status", AttendanceStatus.PRESENT.value)),
        )


class _BlobCollection:
    """
    A list of records stored as one JSON document under a single key.
    """
    key = None
    record_type = None

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def load_all(self):
        """
        Read every record. A missing key reads as an empty collection.

        Raises:
            PersistenceError: if the stored document cannot be decoded
        """
        self.db.ensure_initialized()
        raw = self.db.read_blob(self.key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
            if not isinstance(items, list):
                raise TypeError(f"expected a list, got {type(items).__name__}")
            records = [self.record_type.from_dict(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self.db.logger.error(f"Corrupt data under '{self.key}': {e}")
            raise PersistenceError(f"Corrupt data under '{self.key}': {e}") from e
        self.db.logger.info(f"Loaded {len(records)} records from '{self.key}'")
        return records

    def save_all(self, records):
        """
        Rewrite the whole collection.
        """
        self.db.ensure_initialized()
        payload = json.dumps([record.to_dict() for record in records])
        self.db.write_blob(self.key, payload)


class IdentityStore(_BlobCollection):
    """
    Enrolled identities in enrollment order.
    """
    key = REGISTERED_FACES_KEY
    record_type = EnrolledIdentity


class AttendanceStore(_BlobCollection):
    """
    Attendance records, most recent first.
    """
    key = ATTENDANCE_RECORDS_KEY
    record_type = AttendanceRecord

from datetime import datetime

from faceattend.core.face_recognizer import FaceRecognizer
from faceattend.database.db_manager import PersistenceError
from faceattend.database.models import EnrolledIdentity, IdentityStore
from faceattend.utils.logging import setup_logger


class EnrollmentService:
    """
    Handles biometric enrollment and removal of enrolled identities.

    A descriptor is captured first, either from a passed liveness check or
    directly, and is turned into an identity once a name is supplied.
    """

    def __init__(self, store: IdentityStore):
        self.store = store
        self.logger = setup_logger()
        self.pending_descriptor = None
        self.last_error = None
        try:
            self.identities = self.store.load_all()
        except PersistenceError as e:
            self.logger.error(f"Error loading faces: {e}")
            self.last_error = f"Error loading face data: {e}"
            self.identities = []

    @property
    def has_capture(self):
        return self.pending_descriptor is not None

    def capture(self, descriptor):
        """
        Hold a descriptor until enroll() is called.
        """
        self.pending_descriptor = tuple(FaceRecognizer.to_vector(descriptor).tolist())
        self.logger.info("Face captured, waiting for a name")

    def discard_capture(self):
        self.pending_descriptor = None

    def generate_id(self, now):
        """
        Time-based id in milliseconds, bumped past the largest existing id.
        """
        candidate = int(now.timestamp() * 1000)
        max_id = max((identity.id for identity in self.identities), default=0)
        return max(candidate, max_id + 1)

    def enroll(self, name, thumbnail=None, now=None):
        """
        Create an identity from the captured descriptor.

        Raises ValueError if the name is empty or nothing was captured.
        """
        if not name or name.strip() == "":
            raise ValueError("Name is required for enrollment.")
        if self.pending_descriptor is None:
            raise ValueError("Please capture a face first.")

        now = now or datetime.now()
        identity = EnrolledIdentity(
            id=self.generate_id(now),
            name=name.strip(),
            descriptor=self.pending_descriptor,
            enrolled_at=now,
            thumbnail=thumbnail,
        )
        self.identities.append(identity)
        self.pending_descriptor = None
        self.logger.info(f"Face registered for {identity.name} ({identity.id})")
        self._persist()
        return identity

    def get(self, identity_id):
        for identity in self.identities:
            if identity.id == identity_id:
                return identity
        return None

    def delete_identity(self, identity_id):
        """
        Remove one identity. Attendance records that point to it are kept.
        """
        before = len(self.identities)
        self.identities = [identity for identity in self.identities if identity.id != identity_id]
        if len(self.identities) == before:
            self.logger.warning(f"Delete requested for unknown identity {identity_id}")
            return False
        self.logger.info(f"Identity {identity_id} deleted")
        self._persist()
        return True

    def clear_all_identities(self):
        removed = len(self.identities)
        self.identities = []
        self._persist()
        self.logger.info(f"All {removed} identities cleared")
        return removed

    def _persist(self):
        try:
            self.store.save_all(self.identities)
            self.last_error = None
        except PersistenceError as e:
            self.logger.error(f"Error saving faces: {e}")
            self.last_error = f"Error saving face data: {e}"
        return self.last_error

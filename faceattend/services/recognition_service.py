import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from faceattend.config.settings import TICK_INTERVAL
from faceattend.core.detection import Detection
from faceattend.core.face_recognizer import FaceRecognizer, MatchResult
from faceattend.core.liveness import LivenessDetector, LivenessResult, LivenessState
from faceattend.services.attendance_service import AttendanceLedger, SightingResult
from faceattend.services.enrollment_service import EnrollmentService
from faceattend.utils.logging import setup_logger


@dataclass(frozen=True)
class FaceSummary:
    position: Tuple[float, float]
    top_expression: Optional[Tuple[str, float]] = None
    match: Optional[MatchResult] = None

    @property
    def label(self):
        if self.match is None:
            return "Unknown person"
        return f"{self.match.name} ({self.match.similarity * 100:.1f}% similar)"


@dataclass(frozen=True)
class TickResult:
    """
    Everything a renderer needs to show for one detection cycle.
    """
    face_count: int
    faces: Tuple[FaceSummary, ...] = ()
    liveness: Optional[LivenessResult] = None
    attendance: Optional[SightingResult] = None
    status: Optional[str] = None
    sightings: List[SightingResult] = field(default_factory=list)


def _as_detections(observed):
    if observed is None:
        return []
    if isinstance(observed, Detection):
        return [observed]
    return list(observed)


class RecognitionService:
    """
    Drives liveness, matching and attendance once per detection cycle.

    While a liveness check is active only the first detection is evaluated
    and no attendance is taken; otherwise every detection is matched against
    the enrolled identities and matches are sent to the ledger.
    """

    def __init__(self, enrollment: EnrollmentService, ledger: AttendanceLedger,
                 liveness: LivenessDetector = None):
        self.enrollment = enrollment
        self.ledger = ledger
        self.liveness = liveness or LivenessDetector()
        self.logger = setup_logger()
        self._in_tick = False
        self._running = False

    @property
    def liveness_active(self):
        return self.liveness.is_active

    def start_liveness(self, now=None):
        """
        Begin a liveness check for enrollment. Recognition pauses until it ends.
        """
        self.enrollment.discard_capture()
        self.liveness.start(now)

    def cancel_liveness(self):
        self.liveness.cancel()

    def tick(self, detections, now=None, wall_time=None):
        """
        Run one detection cycle.

        Args:
            detections: Detection, sequence of detections, or None for no face
            now: Monotonic seconds for the liveness timeout
            wall_time: Local datetime for attendance records
        """
        if self._in_tick:
            raise RuntimeError("tick() is not re-entrant")
        self._in_tick = True
        try:
            return self._tick(_as_detections(detections), now, wall_time)
        finally:
            self._in_tick = False

    def _tick(self, detections, now, wall_time):
        if not detections:
            return TickResult(face_count=0, status="No faces detected")

        if self.liveness.is_active:
            return self._liveness_tick(detections, now)

        faces = []
        sightings = []
        for detection in detections:
            match = self._match(detection)
            faces.append(FaceSummary(
                position=(detection.box.x, detection.box.y),
                top_expression=detection.top_expression(),
                match=match,
            ))
            if match is not None:
                sightings.append(
                    self.ledger.record_sighting(match.identity_id, match.name, wall_time)
                )

        notified = [s for s in sightings if s.should_notify]
        attendance = notified[-1] if notified else None
        status = None
        if attendance is not None and not attendance.persisted:
            status = attendance.error
        return TickResult(
            face_count=len(detections),
            faces=tuple(faces),
            attendance=attendance,
            status=status,
            sightings=sightings,
        )

    def _match(self, detection):
        if not self.enrollment.identities:
            return None
        try:
            return FaceRecognizer.match(detection.descriptor, self.enrollment.identities)
        except ValueError as e:
            self.logger.warning(f"Skipping match for malformed descriptor: {e}")
            return None

    def _liveness_tick(self, detections, now):
        detection = detections[0]
        result = self.liveness.update(detection, now)
        status = None

        if result.verdict is LivenessState.PASSED:
            try:
                self.enrollment.capture(result.descriptor)
                status = "Real person verified! Enter a name and click Save."
            except ValueError as e:
                self.logger.warning(f"Liveness passed but descriptor unusable: {e}")
                status = "Liveness verified but the face could not be captured. Please try again."
        elif result.verdict is LivenessState.FAILED:
            status = "PHOTO DETECTED! Please use a real person, not a picture."
        elif result.hint:
            status = result.hint_text

        return TickResult(
            face_count=len(detections),
            faces=tuple(
                FaceSummary(position=(d.box.x, d.box.y), top_expression=d.top_expression())
                for d in detections
            ),
            liveness=result,
            status=status,
        )

    def stop(self):
        """
        Stop the polling loop. An active liveness check ends without a verdict.
        """
        self._running = False
        self.liveness.cancel()

    def run(self, observe, frames, on_result=None, interval=TICK_INTERVAL, sleep=time.sleep):
        """
        Cooperative polling loop: one tick per frame, never overlapping.

        Args:
            observe: Detector, or callable turning a frame into detections (or None)
            frames: Iterable of frames from the camera
            on_result: Optional callback receiving each TickResult
            interval: Seconds to wait between ticks

        Returns:
            Number of ticks run
        """
        if hasattr(observe, "observe_all"):
            observe = observe.observe_all
        self._running = True
        ticks = 0
        self.logger.info("Real-time recognition started.")
        try:
            for frame in frames:
                if not self._running:
                    break
                try:
                    observed = observe(frame)
                except Exception as e:
                    self.logger.error(f"Detection error: {e}")
                    continue

                try:
                    result = self.tick(observed, wall_time=datetime.now())
                except Exception as e:
                    self.logger.error(f"Tick error: {e}")
                    continue
                ticks += 1
                if on_result is not None:
                    on_result(result)
                if interval:
                    sleep(interval)
        finally:
            self.stop()
            self.logger.info(f"Real-time recognition stopped after {ticks} ticks.")
        return ticks

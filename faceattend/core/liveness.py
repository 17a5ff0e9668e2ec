import math
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from faceattend.config.settings import (
    EAR_THRESHOLD,
    EAR_WINDOW,
    SMILE_THRESHOLD,
    SMILE_FRAMES_REQUIRED,
    HEAD_TURN_PIXELS,
    HEAD_TURN_FRAMES_REQUIRED,
    MOVEMENT_PIXELS,
    MOVEMENT_FRAMES_REQUIRED,
    SIGNALS_REQUIRED,
    LIVENESS_TIMEOUT,
    LIVENESS_HINT_AFTER,
)
from faceattend.core.signals import (
    MissingSignalError,
    average_ear,
    centroid,
    nose_tip_x,
    smile_score,
)
from faceattend.utils.logging import setup_logger


class LivenessState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    PASSED = "passed"
    FAILED = "failed"


class Signal(Enum):
    # Declaration order is the hint priority order
    BLINK = "blink"
    SMILE = "smile"
    HEAD_TURN = "head_turn"
    MOVEMENT = "movement"


HINT_LABELS = {
    Signal.BLINK: "BLINK",
    Signal.SMILE: "SMILE",
    Signal.HEAD_TURN: "TURN HEAD",
    Signal.MOVEMENT: "MOVE",
}


@dataclass
class LivenessSession:
    """
    Rolling state for one liveness check. Discarded when the check ends.
    """
    started_at: float
    blink_detected: bool = False
    smile_detected: bool = False
    head_turn_detected: bool = False
    movement_detected: bool = False
    ear_history: deque = field(default_factory=lambda: deque(maxlen=EAR_WINDOW))
    eyes_closed: bool = False
    blink_count: int = 0
    smile_frames: int = 0
    head_turn_frames: int = 0
    movement_frames: int = 0
    previous_position: Optional[Tuple[float, float]] = None
    initial_nose_x: Optional[float] = None

    def detected(self, signal: Signal) -> bool:
        return getattr(self, f"{signal.value}_detected")

    def passed_count(self) -> int:
        return sum(1 for signal in Signal if self.detected(signal))


@dataclass(frozen=True)
class SignalStatus:
    signal: Signal
    detected: bool
    progress: int
    required: int
    state: str  # pending | in_progress | passed | failed

    @property
    def label(self):
        if self.state == "passed":
            return f"{self.signal.value} detected"
        if self.state == "failed":
            return f"no {self.signal.value} detected"
        if self.state == "in_progress" and self.signal is Signal.BLINK:
            return "eyes closing"
        if self.state == "in_progress":
            return f"{self.signal.value} {self.progress}/{self.required}"
        return f"waiting for {self.signal.value}"


@dataclass(frozen=True)
class LivenessResult:
    """
    What one liveness tick reports back to the caller.
    """
    state: LivenessState
    signals: Tuple[SignalStatus, ...]
    passed_count: int
    elapsed: float
    verdict: Optional[LivenessState] = None
    hint: Optional[List[str]] = None
    remaining_seconds: Optional[int] = None
    smoothed_ear: Optional[float] = None
    smile_score: Optional[float] = None
    skipped: bool = False
    descriptor: Optional[Tuple[float, ...]] = None

    @property
    def is_terminal(self):
        return self.verdict is not None

    @property
    def hint_text(self):
        if not self.hint:
            return None
        return f"{self.remaining_seconds}s left - Try: {' or '.join(self.hint)}"

    def status(self, signal: Signal) -> SignalStatus:
        for status in self.signals:
            if status.signal is signal:
                return status
        raise KeyError(signal)


class LivenessDetector:
    """
    Passive liveness check fusing four independent signals:
    - Eye blink (EAR close/open cycle)
    - Sustained smile (expression score)
    - Head turn (nose tip displacement)
    - Face movement (bounding box displacement)

    Any two signals pass the check. Running out of time fails it.
    """

    def __init__(self, clock=time.monotonic):
        self.logger = setup_logger()
        self.clock = clock
        self.session: Optional[LivenessSession] = None

    @property
    def state(self):
        return LivenessState.ACTIVE if self.session is not None else LivenessState.IDLE

    @property
    def is_active(self):
        return self.session is not None

    def start(self, now=None):
        """
        Begin a new liveness check, discarding any previous session.
        """
        started_at = self.clock() if now is None else now
        self.session = LivenessSession(started_at=started_at)
        self.logger.info("Liveness check started")
        return self.session

    def cancel(self):
        """
        Drop the active session without producing a verdict.
        """
        if self.session is not None:
            self.logger.info("Liveness check cancelled")
        self.session = None

    def update(self, detection, now=None):
        """
        Evaluate one detection against the active session.

        Returns a LivenessResult. When the result carries a verdict the
        session has already been discarded and the detector is idle again.
        """
        if self.session is None:
            raise RuntimeError("No active liveness check")

        now = self.clock() if now is None else now
        session = self.session
        elapsed = now - session.started_at

        try:
            happy = smile_score(detection.expressions)
        except MissingSignalError as e:
            self.logger.warning(f"Skipping liveness tick: {e}")
            return self._result(session, elapsed, skipped=True)

        smoothed_ear = self._update_blink(session, detection)
        self._update_smile(session, happy)
        self._update_head_turn(session, detection)
        self._update_movement(session, detection)

        passed = session.passed_count()
        if passed >= SIGNALS_REQUIRED:
            self.logger.info(f"Liveness check passed with {passed} signals")
            return self._finish(LivenessState.PASSED, elapsed, detection,
                                smoothed_ear, happy)

        if elapsed > LIVENESS_TIMEOUT:
            self.logger.info(f"Liveness check failed after {elapsed:.1f}s with {passed} signals")
            return self._finish(LivenessState.FAILED, elapsed, detection,
                                smoothed_ear, happy)

        hint = None
        remaining = None
        if elapsed > LIVENESS_HINT_AFTER:
            remaining = math.ceil(LIVENESS_TIMEOUT - elapsed)
            hint = [HINT_LABELS[s] for s in Signal if not session.detected(s)][:2]

        return self._result(session, elapsed, hint=hint, remaining_seconds=remaining,
                            smoothed_ear=smoothed_ear, smile=happy)

    def _update_blink(self, session, detection):
        session.ear_history.append(average_ear(detection))
        smoothed = sum(session.ear_history) / len(session.ear_history)

        if smoothed < EAR_THRESHOLD:
            session.eyes_closed = True
        elif session.eyes_closed:
            session.blink_count += 1
            session.eyes_closed = False
            if not session.blink_detected:
                self.logger.info("Blink detected")
            session.blink_detected = True
        return smoothed

    def _update_smile(self, session, happy):
        if happy > SMILE_THRESHOLD:
            session.smile_frames += 1
            if not session.smile_detected and session.smile_frames >= SMILE_FRAMES_REQUIRED:
                session.smile_detected = True
                self.logger.info("Smile detected")
        else:
            # Gradual decay so a single neutral frame does not erase progress
            session.smile_frames = max(0, session.smile_frames - 1)

    def _update_head_turn(self, session, detection):
        try:
            nose_x = nose_tip_x(detection.nose)
        except MissingSignalError:
            return

        if session.initial_nose_x is None:
            session.initial_nose_x = nose_x
            return

        if abs(nose_x - session.initial_nose_x) > HEAD_TURN_PIXELS:
            session.head_turn_frames += 1
            if not session.head_turn_detected and session.head_turn_frames >= HEAD_TURN_FRAMES_REQUIRED:
                session.head_turn_detected = True
                self.logger.info("Head turn detected")

    def _update_movement(self, session, detection):
        position = centroid(detection.box)
        if session.previous_position is not None:
            dx = abs(position[0] - session.previous_position[0])
            dy = abs(position[1] - session.previous_position[1])
            if dx > MOVEMENT_PIXELS or dy > MOVEMENT_PIXELS:
                session.movement_frames += 1
                if not session.movement_detected and session.movement_frames >= MOVEMENT_FRAMES_REQUIRED:
                    session.movement_detected = True
                    self.logger.info("Movement detected")
        session.previous_position = position

    def _finish(self, verdict, elapsed, detection, smoothed_ear, happy):
        session = self.session
        self.session = None
        descriptor = tuple(detection.descriptor) if verdict is LivenessState.PASSED else None
        return self._result(session, elapsed, verdict=verdict, smoothed_ear=smoothed_ear,
                            smile=happy, descriptor=descriptor)

    def _result(self, session, elapsed, verdict=None, hint=None, remaining_seconds=None,
                smoothed_ear=None, smile=None, skipped=False, descriptor=None):
        return LivenessResult(
            state=verdict if verdict is not None else LivenessState.ACTIVE,
            signals=signal_statuses(session, failed=verdict is LivenessState.FAILED),
            passed_count=session.passed_count(),
            elapsed=elapsed,
            verdict=verdict,
            hint=hint,
            remaining_seconds=remaining_seconds,
            smoothed_ear=smoothed_ear,
            smile_score=smile,
            skipped=skipped,
            descriptor=descriptor,
        )


def signal_statuses(session, failed=False):
    """
    Per-signal status for display. ``failed`` marks unmet signals as failed.
    """
    counters = {
        Signal.BLINK: (1 if session.eyes_closed else 0, 1),
        Signal.SMILE: (session.smile_frames, SMILE_FRAMES_REQUIRED),
        Signal.HEAD_TURN: (session.head_turn_frames, HEAD_TURN_FRAMES_REQUIRED),
        Signal.MOVEMENT: (session.movement_frames, MOVEMENT_FRAMES_REQUIRED),
    }
    statuses = []
    for signal in Signal:
        count, required = counters[signal]
        detected = session.detected(signal)
        if detected:
            state = "passed"
        elif failed:
            state = "failed"
        elif count > 0:
            state = "in_progress"
        else:
            state = "pending"
        statuses.append(SignalStatus(
            signal=signal,
            detected=detected,
            progress=required if detected else min(count, required),
            required=required,
            state=state,
        ))
    return tuple(statuses)

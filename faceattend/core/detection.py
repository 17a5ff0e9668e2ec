import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Tuple


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class BoundingBox:
    """Face box in source-frame pixel coordinates."""
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Detection:
    """
    One face observation for one tick.

    Produced by an external detector adapter. Landmark groups are keyed by
    name and must include ``left_eye``, ``right_eye`` (six points each, in
    eye-contour order) and ``nose`` (tip at index 3) for the liveness
    signals to work; missing groups only degrade the affected signal.
    """
    box: BoundingBox
    landmarks: Mapping[str, Tuple[Point, ...]] = field(default_factory=dict)
    expressions: Optional[Mapping[str, float]] = None
    descriptor: Tuple[float, ...] = ()

    @property
    def left_eye(self) -> Tuple[Point, ...]:
        return tuple(self.landmarks.get("left_eye", ()))

    @property
    def right_eye(self) -> Tuple[Point, ...]:
        return tuple(self.landmarks.get("right_eye", ()))

    @property
    def nose(self) -> Tuple[Point, ...]:
        return tuple(self.landmarks.get("nose", ()))

    def top_expression(self) -> Optional[Tuple[str, float]]:
        """Return the most confident expression as (name, score), if any.

        Entries whose score is not a finite number are ignored.
        """
        scores = {}
        for name, value in (self.expressions or {}).items():
            try:
                score = float(value)
            except (TypeError, ValueError):
                continue
            if math.isfinite(score):
                scores[name] = score
        if not scores:
            return None
        name = max(scores, key=scores.get)
        return name, scores[name]


class Detector(Protocol):
    """Contract for the external face detector / landmark / descriptor models."""

    def observe(self, frame) -> Optional[Detection]:
        ...

    def observe_all(self, frame) -> List[Detection]:
        ...


def points(coords) -> Tuple[Point, ...]:
    """Build a landmark group from (x, y) pairs."""
    return tuple(Point(float(x), float(y)) for x, y in coords)


def make_detection(box, landmarks: Dict[str, object] = None, expressions=None, descriptor=()):
    """
    Convenience constructor for detector adapters.

    Accepts a plain ``(x, y, width, height)`` box and landmark groups given as
    sequences of ``(x, y)`` pairs.
    """
    if not isinstance(box, BoundingBox):
        box = BoundingBox(*[float(v) for v in box])
    groups = {name: points(coords) for name, coords in (landmarks or {}).items()}
    return Detection(
        box=box,
        landmarks=groups,
        expressions=dict(expressions) if expressions is not None else None,
        descriptor=tuple(float(v) for v in descriptor),
    )

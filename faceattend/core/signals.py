import numpy as np
from faceattend.config.settings import EAR_DEFAULT


class MissingSignalError(Exception):
    """
    Raised when a detection lacks the data a signal needs.
    """


def _as_array(eye_points):
    return np.array([(p.x, p.y) for p in eye_points], dtype="float64")


def eye_aspect_ratio(eye_points):
    """
    Compute Eye Aspect Ratio (EAR) from six eye-contour points.

    Returns EAR_DEFAULT when fewer than six points are supplied, when the
    horizontal span collapses to zero, or when the result is not finite.
    """
    if eye_points is None or len(eye_points) < 6:
        return EAR_DEFAULT

    eye = _as_array(eye_points[:6])
    A = np.linalg.norm(eye[1] - eye[5])
    B = np.linalg.norm(eye[2] - eye[4])
    C = np.linalg.norm(eye[0] - eye[3])
    if not C >= 1e-9:
        return EAR_DEFAULT
    ear = float((A + B) / (2.0 * C))
    if not np.isfinite(ear):
        return EAR_DEFAULT
    return ear


def average_ear(detection):
    return (eye_aspect_ratio(detection.left_eye) +
            eye_aspect_ratio(detection.right_eye)) / 2.0


def smile_score(expressions):
    """
    Return the "happy" expression confidence.
    """
    if not expressions or "happy" not in expressions:
        raise MissingSignalError("No expressions data available")
    try:
        score = float(expressions["happy"])
    except (TypeError, ValueError) as e:
        raise MissingSignalError(f"Invalid happy score: {expressions['happy']!r}") from e
    if not np.isfinite(score):
        raise MissingSignalError(f"Invalid happy score: {score}")
    return score


def nose_tip_x(nose_points):
    # Index 3 is the tip in the 68-point nose group
    if nose_points is None or len(nose_points) < 4:
        raise MissingSignalError("Nose landmarks incomplete")
    return float(nose_points[3].x)


def centroid(box):
    """
    Position used for movement tracking: the box's top-left corner.
    """
    return float(box.x), float(box.y)

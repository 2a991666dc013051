"""
Landmark Adapter Module.

Normalizes whatever the pose-estimation collaborator emits into the
canonical LandmarkFrame:

    - MediaPipe results (solutions API `.pose_landmarks.landmark`, tasks API
      `.pose_landmarks[0]`) or any iterable of objects with x, y, z, visibility
    - Named keypoints (dicts or objects), optionally in pixel coordinates
    - numpy arrays of shape (N, 2), (N, 3) = xyz or (N, 4) = xyz + confidence

Malformed points become missing landmarks; adapters never raise.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional

import numpy as np

from .data_types import NUM_LANDMARKS, Landmark, LandmarkFrame, PoseLandmarkIndex

logger = logging.getLogger(__name__)

_NAME_TO_INDEX = {name: index for index, name in enumerate(PoseLandmarkIndex.NAMES)}


def _field(obj: Any, name: str, default=None):
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _optional_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def landmark_from_object(obj: Any, default_confidence: float = 1.0) -> Optional[Landmark]:
    """
    Convert one MediaPipe-like point (attributes or mapping keys).

    Confidence is taken from visibility, then presence, then score.
    """
    if obj is None:
        return None
    x = _optional_float(_field(obj, "x"))
    y = _optional_float(_field(obj, "y"))
    if x is None or y is None:
        return None
    confidence = None
    for key in ("visibility", "presence", "score", "confidence"):
        confidence = _optional_float(_field(obj, key))
        if confidence is not None:
            break
    return Landmark(
        x=x,
        y=y,
        z=_optional_float(_field(obj, "z")),
        confidence=default_confidence if confidence is None else confidence,
    )


def from_mediapipe(result: Any, timestamp_ms: int = 0, default_confidence: float = 1.0) -> LandmarkFrame:
    """
    Build a frame from a MediaPipe pose result or a landmark list.

    Returns an empty frame when no pose was detected.
    """
    landmarks = result
    pose = _field(result, "pose_landmarks")
    if pose is not None:
        landmarks = pose
    inner = getattr(landmarks, "landmark", None)
    if inner is not None:
        landmarks = inner
    elif isinstance(landmarks, (list, tuple)) and landmarks and isinstance(landmarks[0], (list, tuple)):
        # Tasks API: one landmark list per detected person, keep the first
        landmarks = landmarks[0]

    if landmarks is None or not hasattr(landmarks, "__iter__"):
        return LandmarkFrame.empty(timestamp_ms)
    points = [landmark_from_object(p, default_confidence) for p in landmarks]
    return LandmarkFrame.from_points(points, timestamp_ms)


def from_keypoints(
    keypoints: Iterable[Any],
    timestamp_ms: int = 0,
    width: Optional[float] = None,
    height: Optional[float] = None
) -> LandmarkFrame:
    """
    Build a frame from named keypoints ({"name", "x", "y", "score"}).

    Pixel coordinates are normalized when width and height are given.
    Names outside the 33-point topology are ignored.
    """
    points: List[Optional[Landmark]] = [None] * NUM_LANDMARKS
    for keypoint in keypoints or ():
        name = _field(keypoint, "name")
        index = _NAME_TO_INDEX.get(name)
        if index is None:
            continue
        x = _optional_float(_field(keypoint, "x", _field(keypoint, "x_px")))
        y = _optional_float(_field(keypoint, "y", _field(keypoint, "y_px")))
        if x is None or y is None:
            continue
        if width and height:
            x, y = x / width, y / height
        score = _optional_float(_field(keypoint, "score", _field(keypoint, "confidence")))
        points[index] = Landmark(
            x=x,
            y=y,
            z=_optional_float(_field(keypoint, "z")),
            confidence=1.0 if score is None else score,
        )
    return LandmarkFrame.from_points(points, timestamp_ms)


def from_array(array: Any, timestamp_ms: int = 0) -> LandmarkFrame:
    """Build a frame from an (N, 2|3|4) array; rows with NaN become missing."""
    try:
        data = np.asarray(array, dtype=np.float64)
    except (TypeError, ValueError):
        return LandmarkFrame.empty(timestamp_ms)
    if data.ndim != 2 or data.shape[1] not in (2, 3, 4):
        logger.debug("[ADAPTER] unsupported array shape %s", data.shape)
        return LandmarkFrame.empty(timestamp_ms)

    points: List[Optional[Landmark]] = []
    for row in data:
        if not np.all(np.isfinite(row)):
            points.append(None)
            continue
        z = float(row[2]) if data.shape[1] >= 3 else None
        confidence = float(row[3]) if data.shape[1] == 4 else 1.0
        points.append(Landmark(float(row[0]), float(row[1]), z, confidence))
    return LandmarkFrame.from_points(points, timestamp_ms)


def to_frame(data: Any, timestamp_ms: int = 0) -> LandmarkFrame:
    """
    Dispatch any supported input shape to a LandmarkFrame.
    """
    if isinstance(data, LandmarkFrame):
        return data
    if data is None:
        return LandmarkFrame.empty(timestamp_ms)
    if isinstance(data, np.ndarray):
        return from_array(data, timestamp_ms)
    if _field(data, "pose_landmarks") is not None or hasattr(data, "landmark"):
        return from_mediapipe(data, timestamp_ms)
    if not hasattr(data, "__iter__") or isinstance(data, (str, bytes)):
        return LandmarkFrame.empty(timestamp_ms)

    items = list(data)
    if not items:
        return LandmarkFrame.empty(timestamp_ms)
    if all(item is None or isinstance(item, Landmark) for item in items):
        return LandmarkFrame.from_points(items, timestamp_ms)
    if any(_field(item, "name") is not None for item in items if item is not None):
        return from_keypoints(items, timestamp_ms)
    if all(isinstance(item, (list, tuple)) for item in items):
        return from_array(items, timestamp_ms)
    return from_mediapipe(items, timestamp_ms)

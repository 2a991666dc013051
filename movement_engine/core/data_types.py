"""
Data Types Module for the movement engine.

Canonical landmark frame, the 33-point pose topology, body segments and
joint definitions shared by every stage of the pipeline.

Version: 1.0.0
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np


NUM_LANDMARKS = 33


@dataclass(frozen=True)
class Landmark:
    """
    A single tracked anatomical point.

    Attributes:
        x: Normalized horizontal position (0-1).
        y: Normalized vertical position (0-1, grows downwards).
        z: Relative depth, None when the estimator provides none.
        confidence: Estimator certainty (0-1).
    """
    x: float
    y: float
    z: Optional[float] = None
    confidence: float = 1.0

    @property
    def has_depth(self) -> bool:
        return self.z is not None

    def to_array(self, use_3d: bool = True) -> np.ndarray:
        """Convert to numpy array [x, y, z] or [x, y]."""
        if use_3d and self.z is not None:
            return np.array([self.x, self.y, self.z], dtype=np.float64)
        return np.array([self.x, self.y], dtype=np.float64)

    def to_2d(self) -> Tuple[float, float]:
        return (self.x, self.y)


class PoseLandmarkIndex:
    """
    Landmark indices of the 33-point pose topology.
    """
    # Face
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10

    # Upper body
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22

    # Lower body
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32

    # Names in index order, used by adapters that key points by name
    NAMES = (
        "nose",
        "left_eye_inner", "left_eye", "left_eye_outer",
        "right_eye_inner", "right_eye", "right_eye_outer",
        "left_ear", "right_ear",
        "mouth_left", "mouth_right",
        "left_shoulder", "right_shoulder",
        "left_elbow", "right_elbow",
        "left_wrist", "right_wrist",
        "left_pinky", "right_pinky",
        "left_index", "right_index",
        "left_thumb", "right_thumb",
        "left_hip", "right_hip",
        "left_knee", "right_knee",
        "left_ankle", "right_ankle",
        "left_heel", "right_heel",
        "left_foot_index", "right_foot_index",
    )

    HEAD_POINTS = [NOSE, LEFT_EYE, RIGHT_EYE, LEFT_EAR, RIGHT_EAR]
    FOOT_POINTS = [LEFT_ANKLE, RIGHT_ANKLE, LEFT_HEEL, RIGHT_HEEL,
                   LEFT_FOOT_INDEX, RIGHT_FOOT_INDEX]


class BodySegment(str, Enum):
    """Body regions gated independently by the validity gate."""
    HEAD = "head"
    UPPER = "upper"
    CORE = "core"
    LOWER = "lower"


SEGMENT_LANDMARKS: Dict[BodySegment, Tuple[int, ...]] = {
    BodySegment.HEAD: (
        PoseLandmarkIndex.NOSE,
        PoseLandmarkIndex.LEFT_EYE_INNER, PoseLandmarkIndex.LEFT_EYE, PoseLandmarkIndex.LEFT_EYE_OUTER,
        PoseLandmarkIndex.RIGHT_EYE_INNER, PoseLandmarkIndex.RIGHT_EYE, PoseLandmarkIndex.RIGHT_EYE_OUTER,
        PoseLandmarkIndex.LEFT_EAR, PoseLandmarkIndex.RIGHT_EAR,
    ),
    BodySegment.UPPER: (
        PoseLandmarkIndex.LEFT_SHOULDER, PoseLandmarkIndex.RIGHT_SHOULDER,
        PoseLandmarkIndex.LEFT_ELBOW, PoseLandmarkIndex.RIGHT_ELBOW,
        PoseLandmarkIndex.LEFT_WRIST, PoseLandmarkIndex.RIGHT_WRIST,
    ),
    BodySegment.CORE: (
        PoseLandmarkIndex.LEFT_SHOULDER, PoseLandmarkIndex.RIGHT_SHOULDER,
        PoseLandmarkIndex.LEFT_HIP, PoseLandmarkIndex.RIGHT_HIP,
    ),
    BodySegment.LOWER: (
        PoseLandmarkIndex.LEFT_HIP, PoseLandmarkIndex.RIGHT_HIP,
        PoseLandmarkIndex.LEFT_KNEE, PoseLandmarkIndex.RIGHT_KNEE,
        PoseLandmarkIndex.LEFT_ANKLE, PoseLandmarkIndex.RIGHT_ANKLE,
    ),
}


class JointType(Enum):
    """
    Joints measured by the engine.

    Each joint is defined by three landmarks: proximal, vertex and distal.
    """
    # Upper limbs
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"

    # Lower limbs
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


@dataclass(frozen=True)
class JointDefinition:
    """
    A joint as three landmark indices.

    Attributes:
        proximal: Index of the point closer to the torso.
        vertex: Index of the joint itself.
        distal: Index of the point further from the torso.
        name: Display name.
        segment: Body segment whose validity gates this joint.
    """
    proximal: int
    vertex: int
    distal: int
    name: str
    segment: BodySegment

    @property
    def indices(self) -> Tuple[int, int, int]:
        return (self.proximal, self.vertex, self.distal)


JOINT_DEFINITIONS: Dict[JointType, JointDefinition] = {
    # ===== UPPER LIMBS =====
    # Elbow: shoulder -> elbow -> wrist
    JointType.LEFT_ELBOW: JointDefinition(
        PoseLandmarkIndex.LEFT_SHOULDER, PoseLandmarkIndex.LEFT_ELBOW, PoseLandmarkIndex.LEFT_WRIST,
        "Left elbow", BodySegment.UPPER,
    ),
    JointType.RIGHT_ELBOW: JointDefinition(
        PoseLandmarkIndex.RIGHT_SHOULDER, PoseLandmarkIndex.RIGHT_ELBOW, PoseLandmarkIndex.RIGHT_WRIST,
        "Right elbow", BodySegment.UPPER,
    ),
    # Shoulder: hip -> shoulder -> elbow (arm abduction)
    JointType.LEFT_SHOULDER: JointDefinition(
        PoseLandmarkIndex.LEFT_HIP, PoseLandmarkIndex.LEFT_SHOULDER, PoseLandmarkIndex.LEFT_ELBOW,
        "Left shoulder", BodySegment.UPPER,
    ),
    JointType.RIGHT_SHOULDER: JointDefinition(
        PoseLandmarkIndex.RIGHT_HIP, PoseLandmarkIndex.RIGHT_SHOULDER, PoseLandmarkIndex.RIGHT_ELBOW,
        "Right shoulder", BodySegment.UPPER,
    ),
    # Wrist: elbow -> wrist -> index finger
    JointType.LEFT_WRIST: JointDefinition(
        PoseLandmarkIndex.LEFT_ELBOW, PoseLandmarkIndex.LEFT_WRIST, PoseLandmarkIndex.LEFT_INDEX,
        "Left wrist", BodySegment.UPPER,
    ),
    JointType.RIGHT_WRIST: JointDefinition(
        PoseLandmarkIndex.RIGHT_ELBOW, PoseLandmarkIndex.RIGHT_WRIST, PoseLandmarkIndex.RIGHT_INDEX,
        "Right wrist", BodySegment.UPPER,
    ),

    # ===== LOWER LIMBS =====
    # Hip: shoulder -> hip -> knee (hip flexion)
    JointType.LEFT_HIP: JointDefinition(
        PoseLandmarkIndex.LEFT_SHOULDER, PoseLandmarkIndex.LEFT_HIP, PoseLandmarkIndex.LEFT_KNEE,
        "Left hip", BodySegment.LOWER,
    ),
    JointType.RIGHT_HIP: JointDefinition(
        PoseLandmarkIndex.RIGHT_SHOULDER, PoseLandmarkIndex.RIGHT_HIP, PoseLandmarkIndex.RIGHT_KNEE,
        "Right hip", BodySegment.LOWER,
    ),
    # Knee: hip -> knee -> ankle
    JointType.LEFT_KNEE: JointDefinition(
        PoseLandmarkIndex.LEFT_HIP, PoseLandmarkIndex.LEFT_KNEE, PoseLandmarkIndex.LEFT_ANKLE,
        "Left knee", BodySegment.LOWER,
    ),
    JointType.RIGHT_KNEE: JointDefinition(
        PoseLandmarkIndex.RIGHT_HIP, PoseLandmarkIndex.RIGHT_KNEE, PoseLandmarkIndex.RIGHT_ANKLE,
        "Right knee", BodySegment.LOWER,
    ),
    # Ankle: knee -> ankle -> foot index
    JointType.LEFT_ANKLE: JointDefinition(
        PoseLandmarkIndex.LEFT_KNEE, PoseLandmarkIndex.LEFT_ANKLE, PoseLandmarkIndex.LEFT_FOOT_INDEX,
        "Left ankle", BodySegment.LOWER,
    ),
    JointType.RIGHT_ANKLE: JointDefinition(
        PoseLandmarkIndex.RIGHT_KNEE, PoseLandmarkIndex.RIGHT_ANKLE, PoseLandmarkIndex.RIGHT_FOOT_INDEX,
        "Right ankle", BodySegment.LOWER,
    ),
}


# (pair name, left joint, right joint) for bilateral symmetry
BILATERAL_PAIRS: List[Tuple[str, JointType, JointType]] = [
    ("elbow", JointType.LEFT_ELBOW, JointType.RIGHT_ELBOW),
    ("shoulder", JointType.LEFT_SHOULDER, JointType.RIGHT_SHOULDER),
    ("hip", JointType.LEFT_HIP, JointType.RIGHT_HIP),
    ("knee", JointType.LEFT_KNEE, JointType.RIGHT_KNEE),
]


def _is_finite(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def _sanitize(point) -> Optional[Landmark]:
    if not isinstance(point, Landmark):
        return None
    if not (_is_finite(point.x) and _is_finite(point.y) and _is_finite(point.confidence)):
        return None
    z = float(point.z) if point.z is not None and _is_finite(point.z) else None
    confidence = min(1.0, max(0.0, float(point.confidence)))
    if (
        type(point.x) is float and type(point.y) is float
        and (point.z is None or type(point.z) is float) and z == point.z
        and confidence == point.confidence
    ):
        return point
    return Landmark(float(point.x), float(point.y), z, confidence)


@dataclass(frozen=True)
class LandmarkFrame:
    """
    One frame of the fixed 33-point topology.

    Attributes:
        landmarks: Exactly NUM_LANDMARKS entries, None where a point is missing.
        timestamp_ms: Capture time of the frame (milliseconds).
    """
    landmarks: Tuple[Optional[Landmark], ...]
    timestamp_ms: int = 0

    @classmethod
    def from_points(
        cls,
        points: Optional[Iterable[Optional[Landmark]]],
        timestamp_ms: int = 0
    ) -> "LandmarkFrame":
        """
        Build a frame from any sequence of points.

        Short sequences are padded with missing points, long ones truncated,
        and entries that are not usable landmarks become missing.
        """
        normalized: List[Optional[Landmark]] = []
        if points is not None and hasattr(points, "__iter__"):
            for point in points:
                if len(normalized) == NUM_LANDMARKS:
                    break
                normalized.append(_sanitize(point))
        normalized.extend([None] * (NUM_LANDMARKS - len(normalized)))
        return cls(tuple(normalized), int(timestamp_ms or 0))

    @classmethod
    def empty(cls, timestamp_ms: int = 0) -> "LandmarkFrame":
        return cls((None,) * NUM_LANDMARKS, timestamp_ms)

    def __len__(self) -> int:
        return len(self.landmarks)

    def get(self, index: int, min_confidence: float = 0.0) -> Optional[Landmark]:
        """Return the landmark at index, or None if missing or below min_confidence."""
        if index < 0 or index >= len(self.landmarks):
            return None
        point = self.landmarks[index]
        if point is None or point.confidence < min_confidence:
            return None
        return point

    def confidence(self, index: int) -> float:
        point = self.get(index)
        return point.confidence if point is not None else 0.0

    def confidences(self) -> Tuple[float, ...]:
        return tuple(self.confidence(i) for i in range(len(self.landmarks)))

    def usable_count(self, min_confidence: float = 0.0) -> int:
        return sum(1 for i in range(len(self.landmarks)) if self.get(i, min_confidence) is not None)

"""
Kinematics Module for the movement engine.

Pure geometry over landmark points:
- Angle at a vertex from three points (2D bearings or 3D vectors)
- Levelness / alignment scores for posture
- Rotation between two lines, symmetry of paired values
- Head orientation from the face plane

Angle between A, B, C (B is the vertex):

    2D: |atan2(C - B) - atan2(A - B)|, folded into [0, 180]
    3D: arccos((BA · BC) / (|BA| × |BC|))

Every function returns None instead of raising when an input point is
missing or the configuration is degenerate.

Version: 1.0.0
"""

import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .data_types import JOINT_DEFINITIONS, JointType, Landmark, LandmarkFrame


PointLike = Union[Landmark, Sequence[float], np.ndarray]

# Score scales (score = 100 - scale * deviation)
DEFAULT_LEVELNESS_SCALE = 500.0
DEFAULT_ALIGNMENT_SCALE = 400.0
DEFAULT_SYMMETRY_SCALE = 2.0

_EPSILON = 1e-10


def _has_depth(point: PointLike) -> bool:
    if isinstance(point, Landmark):
        return point.z is not None
    if isinstance(point, np.ndarray):
        return point.size >= 3
    return len(point) >= 3 and point[2] is not None


def _xy(point: PointLike) -> Tuple[float, float]:
    if isinstance(point, Landmark):
        return (point.x, point.y)
    return (float(point[0]), float(point[1]))


def _to_numpy(point: PointLike, use_3d: bool) -> np.ndarray:
    if isinstance(point, Landmark):
        return point.to_array(use_3d)
    if use_3d:
        return np.array([point[0], point[1], point[2]], dtype=np.float64)
    return np.array([point[0], point[1]], dtype=np.float64)


# ==================== ANGLES ====================

def calculate_angle(
    point_a: Optional[PointLike],
    point_b: Optional[PointLike],
    point_c: Optional[PointLike],
    use_3d: Optional[bool] = None
) -> Optional[float]:
    """
    Angle at vertex B subtended by A and C, in degrees within [0, 180].

    Args:
        point_a: Proximal point.
        point_b: Vertex (the joint being measured).
        point_c: Distal point.
        use_3d: None picks 3D when all three points carry depth, False forces
                the planar formula, True prefers 3D when depth is available.

    Returns:
        Optional[float]: The angle, or None if any point is None. A zero-length
        arm still yields a planar angle, since atan2(0, 0) is 0.

    Example:
        >>> calculate_angle((1, 0), (0, 0), (0, 1))
        90.0
    """
    if point_a is None or point_b is None or point_c is None:
        return None

    all_depth = _has_depth(point_a) and _has_depth(point_b) and _has_depth(point_c)
    depth = all_depth if use_3d is None else (use_3d and all_depth)

    if depth:
        a = _to_numpy(point_a, True)
        b = _to_numpy(point_b, True)
        c = _to_numpy(point_c, True)
        vector_ba = a - b
        vector_bc = c - b
        norm_ba = np.linalg.norm(vector_ba)
        norm_bc = np.linalg.norm(vector_bc)
        if norm_ba >= _EPSILON and norm_bc >= _EPSILON:
            cos_angle = np.clip(np.dot(vector_ba, vector_bc) / (norm_ba * norm_bc), -1.0, 1.0)
            return float(np.degrees(np.arccos(cos_angle)))

    ax, ay = _xy(point_a)
    bx, by = _xy(point_b)
    cx, cy = _xy(point_c)
    radians = math.atan2(cy - by, cx - bx) - math.atan2(ay - by, ax - bx)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def calculate_joint_angle(
    frame: LandmarkFrame,
    joint_type: JointType,
    use_3d: Optional[bool] = None,
    min_confidence: float = 0.0
) -> Optional[float]:
    """
    Angle of a named joint in a frame.

    Landmarks below min_confidence count as missing, so only the joints that
    depend on them come back as None.
    """
    definition = JOINT_DEFINITIONS[joint_type]
    points = [frame.get(index, min_confidence) for index in definition.indices]
    return calculate_angle(points[0], points[1], points[2], use_3d)


# ==================== LINES & DISTANCES ====================

def distance(p1: Optional[PointLike], p2: Optional[PointLike]) -> Optional[float]:
    """Planar Euclidean distance."""
    if p1 is None or p2 is None:
        return None
    x1, y1 = _xy(p1)
    x2, y2 = _xy(p2)
    return math.hypot(x2 - x1, y2 - y1)


def midpoint(p1: Optional[Landmark], p2: Optional[Landmark]) -> Optional[Landmark]:
    if p1 is None or p2 is None:
        return None
    z = (p1.z + p2.z) / 2.0 if p1.z is not None and p2.z is not None else None
    return Landmark(
        x=(p1.x + p2.x) / 2.0,
        y=(p1.y + p2.y) / 2.0,
        z=z,
        confidence=min(p1.confidence, p2.confidence),
    )


def bearing(p_from: Optional[PointLike], p_to: Optional[PointLike]) -> Optional[float]:
    """Direction of the vector p_from -> p_to in degrees, (-180, 180]."""
    if p_from is None or p_to is None:
        return None
    x1, y1 = _xy(p_from)
    x2, y2 = _xy(p_to)
    if math.hypot(x2 - x1, y2 - y1) < _EPSILON:
        return None
    return math.degrees(math.atan2(y2 - y1, x2 - x1))


def line_tilt(p1: Optional[PointLike], p2: Optional[PointLike]) -> Optional[float]:
    """
    Signed tilt of a line from horizontal, in (-90, 90].

    Positive when the point with the larger x sits lower in the image.
    The result does not depend on point order.
    """
    if p1 is None or p2 is None:
        return None
    (x1, y1), (x2, y2) = _xy(p1), _xy(p2)
    if x2 < x1:
        x1, y1, x2, y2 = x2, y2, x1, y1
    if math.hypot(x2 - x1, y2 - y1) < _EPSILON:
        return None
    tilt = math.degrees(math.atan2(y2 - y1, x2 - x1))
    return 90.0 if tilt == -90.0 else tilt


def lean_from_vertical(top: Optional[PointLike], bottom: Optional[PointLike]) -> Optional[float]:
    """Angle between bottom->top and straight up, in [0, 180]. 0 means upright."""
    if top is None or bottom is None:
        return None
    tx, ty = _xy(top)
    bx, by = _xy(bottom)
    if math.hypot(tx - bx, ty - by) < _EPSILON:
        return None
    return math.degrees(math.atan2(abs(tx - bx), by - ty))


def rotation(
    line_a: Tuple[Optional[PointLike], Optional[PointLike]],
    line_b: Tuple[Optional[PointLike], Optional[PointLike]]
) -> Optional[float]:
    """
    Angle between two directed 2-point lines in [0, 180].

    Used for torso rotation (shoulder line vs hip line).
    """
    bearing_a = bearing(line_a[0], line_a[1])
    bearing_b = bearing(line_b[0], line_b[1])
    if bearing_a is None or bearing_b is None:
        return None
    diff = abs(bearing_a - bearing_b) % 360.0
    if diff > 180.0:
        diff = 360.0 - diff
    return diff


# ==================== POSTURE SCORES ====================

def horizontal_deviation(
    p1: Optional[PointLike],
    p2: Optional[PointLike],
    scale: float = DEFAULT_LEVELNESS_SCALE
) -> Optional[float]:
    """
    Levelness score (0-100) of two points that should share a height.

    100 means perfectly level; the score drops linearly with the vertical
    offset and floors at 0.
    """
    if p1 is None or p2 is None:
        return None
    dy = abs(_xy(p1)[1] - _xy(p2)[1])
    return max(0.0, 100.0 - scale * dy)


def vertical_deviation(
    points: Sequence[Optional[PointLike]],
    scale: float = DEFAULT_ALIGNMENT_SCALE
) -> Optional[float]:
    """
    Alignment score (0-100) of points that should be stacked vertically.

    Uses the largest horizontal distance from the mean x. Needs at least two
    available points.
    """
    xs = [_xy(p)[0] for p in points if p is not None]
    if len(xs) < 2:
        return None
    mean_x = sum(xs) / len(xs)
    deviation = max(abs(x - mean_x) for x in xs)
    return max(0.0, 100.0 - scale * deviation)


def symmetry(
    left: Optional[float],
    right: Optional[float],
    scale: float = DEFAULT_SYMMETRY_SCALE
) -> Optional[float]:
    """Bilateral symmetry score: max(0, 100 - k * |left - right|)."""
    if left is None or right is None:
        return None
    return max(0.0, 100.0 - scale * abs(left - right))


# ==================== HEAD / FACE ====================

def head_orientation(
    nose: Optional[Landmark],
    left_eye: Optional[Landmark],
    right_eye: Optional[Landmark]
) -> Tuple[Optional[float], Optional[float], Optional[float]]:
    """
    Heuristic head pose (yaw, pitch, roll) in degrees.

    Yaw and pitch come from the normal of the plane through both eyes and
    the nose and need depth on all three points. Roll is the tilt of the
    eye line.
    """
    roll = line_tilt(left_eye, right_eye)
    if nose is None or left_eye is None or right_eye is None:
        return None, None, roll
    if not (nose.has_depth and left_eye.has_depth and right_eye.has_depth):
        return None, None, roll

    origin = left_eye.to_array()
    normal = np.cross(nose.to_array() - origin, right_eye.to_array() - origin)
    if np.linalg.norm(normal) < _EPSILON:
        return None, None, roll
    # Orient the normal away from the camera so a frontal face reads near 0
    if normal[2] < 0:
        normal = -normal
    yaw = math.degrees(math.atan2(normal[0], normal[2]))
    pitch = math.degrees(math.atan2(normal[1], normal[2]))
    return yaw, pitch, roll


def eye_symmetry(
    left_inner: Optional[Landmark],
    left_outer: Optional[Landmark],
    right_inner: Optional[Landmark],
    right_outer: Optional[Landmark]
) -> Optional[float]:
    """Absolute difference between the two eye widths (normalized units)."""
    left_width = distance(left_inner, left_outer)
    right_width = distance(right_inner, right_outer)
    if left_width is None or right_width is None:
        return None
    return abs(left_width - right_width)

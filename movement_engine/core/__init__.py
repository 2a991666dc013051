"""
Core Module of the movement engine.

Topology, geometry, validity gating, temporal history and the metrics engine.
"""

from .config import (
    EngineSettings, FeedbackConfig, HistoryConfig, MetricsConfig, TrackingConfig, ValidityConfig,
    load_settings,
)
from .data_types import (
    BILATERAL_PAIRS, JOINT_DEFINITIONS, NUM_LANDMARKS, SEGMENT_LANDMARKS,
    BodySegment, JointDefinition, JointType, Landmark, LandmarkFrame, PoseLandmarkIndex,
)
from .kinematics import (
    bearing, calculate_angle, calculate_joint_angle, distance, eye_symmetry, head_orientation,
    horizontal_deviation, lean_from_vertical, line_tilt, midpoint, rotation, symmetry,
    vertical_deviation,
)
from .validity import (
    DistanceEstimate, DistanceStatus, OrientationResult, SegmentValidity, ValidityGate,
    ValidityResult, segment_confidence,
)
from .history import AngleHistory, AngleSample, TemporalHistory
from .metrics import HeadMetrics, MetricsEngine, MetricsSnapshot, PostureMetrics
from .landmark_adapter import from_array, from_keypoints, from_mediapipe, to_frame

__all__ = [
    # Config
    'EngineSettings', 'FeedbackConfig', 'HistoryConfig', 'MetricsConfig', 'TrackingConfig',
    'ValidityConfig', 'load_settings',

    # Data types
    'BILATERAL_PAIRS', 'JOINT_DEFINITIONS', 'NUM_LANDMARKS', 'SEGMENT_LANDMARKS',
    'BodySegment', 'JointDefinition', 'JointType', 'Landmark', 'LandmarkFrame', 'PoseLandmarkIndex',

    # Kinematics
    'bearing', 'calculate_angle', 'calculate_joint_angle', 'distance', 'eye_symmetry',
    'head_orientation', 'horizontal_deviation', 'lean_from_vertical', 'line_tilt', 'midpoint',
    'rotation', 'symmetry', 'vertical_deviation',

    # Validity
    'DistanceEstimate', 'DistanceStatus', 'OrientationResult', 'SegmentValidity', 'ValidityGate',
    'ValidityResult', 'segment_confidence',

    # History / metrics
    'AngleHistory', 'AngleSample', 'TemporalHistory',
    'HeadMetrics', 'MetricsEngine', 'MetricsSnapshot', 'PostureMetrics',

    # Adapter
    'from_array', 'from_keypoints', 'from_mediapipe', 'to_frame',
]

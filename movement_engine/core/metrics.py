"""
Metrics Engine Module.

Per frame:
    1. ValidityGate verdict per body segment
    2. Joint angles for valid segments, pushed into TemporalHistory
    3. Posture indicators from whichever segments are valid
    4. Immutable MetricsSnapshot

Segments that fail the gate contribute no fields. A value missing from the
snapshot means "not measured", never "measured as zero".

Version: 1.0.0
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

from ..helpers.exceptions import UnknownJointError
from .config import HistoryConfig, MetricsConfig, ValidityConfig
from .data_types import (
    BILATERAL_PAIRS, JOINT_DEFINITIONS, BodySegment, JointType, LandmarkFrame, PoseLandmarkIndex
)
from .history import TemporalHistory
from .landmark_adapter import to_frame
from .kinematics import (
    bearing, calculate_joint_angle, distance, eye_symmetry, head_orientation,
    horizontal_deviation, lean_from_vertical, line_tilt, midpoint, rotation,
    symmetry, vertical_deviation,
)
from .validity import ValidityGate, ValidityResult

logger = logging.getLogger(__name__)


def _frozen(mapping: Optional[Dict] = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


def _round(value: Optional[float], ndigits: int = 1) -> Optional[float]:
    return round(value, ndigits) if value is not None else None


def _round_map(mapping: Mapping[str, float], ndigits: int = 1) -> Dict[str, float]:
    return {k: round(v, ndigits) for k, v in mapping.items()}


# ==================== SNAPSHOT TYPES ====================

@dataclass(frozen=True)
class PostureMetrics:
    """
    Posture indicators. Every field is None when its segments were withheld.

    Attributes:
        spine_angle: Lean of the shoulder-hip line from vertical (degrees).
        shoulder_level: Signed tilt of the shoulder line (degrees).
        hip_level: Signed tilt of the hip line (degrees).
        shoulder_levelness: Levelness score of the shoulders (0-100).
        hip_levelness: Levelness score of the hips (0-100).
        vertical_alignment: Shoulder/hip/ankle stacking score (0-100).
        torso_rotation: Angle between shoulder and hip lines (degrees).
        left_wrist_bearing: Direction elbow -> wrist (degrees).
        right_wrist_bearing: Direction elbow -> wrist (degrees).
        symmetry: Bilateral symmetry score per joint pair (0-100).
    """
    spine_angle: Optional[float] = None
    shoulder_level: Optional[float] = None
    hip_level: Optional[float] = None
    shoulder_levelness: Optional[float] = None
    hip_levelness: Optional[float] = None
    vertical_alignment: Optional[float] = None
    torso_rotation: Optional[float] = None
    left_wrist_bearing: Optional[float] = None
    right_wrist_bearing: Optional[float] = None
    symmetry: Mapping[str, float] = field(default_factory=_frozen)

    def to_dict(self) -> Dict:
        return {
            "spine_angle": _round(self.spine_angle),
            "shoulder_level": _round(self.shoulder_level),
            "hip_level": _round(self.hip_level),
            "shoulder_levelness": _round(self.shoulder_levelness),
            "hip_levelness": _round(self.hip_levelness),
            "vertical_alignment": _round(self.vertical_alignment),
            "torso_rotation": _round(self.torso_rotation),
            "left_wrist_bearing": _round(self.left_wrist_bearing),
            "right_wrist_bearing": _round(self.right_wrist_bearing),
            "symmetry": _round_map(self.symmetry),
        }


@dataclass(frozen=True)
class HeadMetrics:
    yaw: Optional[float] = None
    pitch: Optional[float] = None
    roll: Optional[float] = None
    eye_symmetry: Optional[float] = None
    eye_distance: Optional[float] = None

    def to_dict(self) -> Dict:
        return {
            "yaw": _round(self.yaw),
            "pitch": _round(self.pitch),
            "roll": _round(self.roll),
            "eye_symmetry": _round(self.eye_symmetry, 4),
            "eye_distance": _round(self.eye_distance, 4),
        }


@dataclass(frozen=True)
class MetricsSnapshot:
    """
    Immutable metrics of one frame.

    Attributes:
        timestamp_ms: Timestamp of the frame that produced the snapshot.
        joint_angles: Degrees per measured joint (JointType value as key).
        posture: Posture indicators.
        head: Head/face metrics, None when disabled or not measurable.
        range_of_motion: max - min over the history window per measured joint.
        rate_of_change: Degrees per second per measured joint.
        smoothness: Mean smoothness (0-100) over measured joints.
        stability: Hip-midpoint stability (0-100), None if the core is withheld.
        center_speed: Hip-midpoint speed (normalized units per second).
        baseline_deviation: Current angle minus baseline angle per joint.
        validity: Gate verdict of this frame.
        landmark_confidence: Confidence of each of the 33 landmarks (0 if missing).
    """
    timestamp_ms: int = 0
    joint_angles: Mapping[str, float] = field(default_factory=_frozen)
    posture: PostureMetrics = field(default_factory=PostureMetrics)
    head: Optional[HeadMetrics] = None
    range_of_motion: Mapping[str, float] = field(default_factory=_frozen)
    rate_of_change: Mapping[str, float] = field(default_factory=_frozen)
    smoothness: Optional[float] = None
    stability: Optional[float] = None
    center_speed: Optional[float] = None
    baseline_deviation: Mapping[str, float] = field(default_factory=_frozen)
    validity: Optional[ValidityResult] = None
    landmark_confidence: Tuple[float, ...] = ()

    def angle(self, joint: Union[JointType, str]) -> Optional[float]:
        key = joint.value if isinstance(joint, JointType) else joint
        return self.joint_angles.get(key)

    def is_segment_valid(self, segment: BodySegment) -> bool:
        return self.validity is not None and self.validity.is_segment_valid(segment)

    @property
    def has_metrics(self) -> bool:
        return bool(self.joint_angles) or any(
            value is not None for value in (
                self.posture.spine_angle, self.posture.shoulder_level, self.posture.hip_level,
            )
        )

    def to_dict(self) -> Dict:
        return {
            "timestamp_ms": self.timestamp_ms,
            "joint_angles": _round_map(self.joint_angles),
            "posture": self.posture.to_dict(),
            "head": self.head.to_dict() if self.head else None,
            "range_of_motion": _round_map(self.range_of_motion),
            "rate_of_change": _round_map(self.rate_of_change),
            "smoothness": _round(self.smoothness),
            "stability": _round(self.stability),
            "center_speed": _round(self.center_speed, 4),
            "baseline_deviation": _round_map(self.baseline_deviation),
            "validity": self.validity.to_dict() if self.validity else None,
        }


# ==================== ENGINE ====================

class MetricsEngine:
    """
    Orchestrates ValidityGate, kinematics and TemporalHistory per frame.

    One instance per tracked subject; it owns the subject's histories.
    Behaviour variants are capability flags in MetricsConfig.

    Example:
        >>> engine = MetricsEngine()
        >>> snapshot = engine.process(frame)
        >>> snapshot.angle(JointType.LEFT_KNEE)
    """

    def __init__(
        self,
        metrics_config: Optional[MetricsConfig] = None,
        validity_config: Optional[ValidityConfig] = None,
        history_config: Optional[HistoryConfig] = None
    ):
        self._config = metrics_config or MetricsConfig()
        self._gate = ValidityGate(validity_config)
        self._history = TemporalHistory(history_config)
        self._baseline: Dict[str, float] = {}

    @property
    def config(self) -> MetricsConfig:
        return self._config

    @property
    def gate(self) -> ValidityGate:
        return self._gate

    @property
    def history(self) -> TemporalHistory:
        return self._history

    @property
    def baseline(self) -> Mapping[str, float]:
        return _frozen(self._baseline)

    # ==================== BASELINE ====================

    def set_baseline(self, angles: Mapping[Union[JointType, str], float]) -> None:
        """
        Record reference angles; later snapshots report deviation from them.

        Raises:
            UnknownJointError: If a key is not a known joint.
        """
        baseline: Dict[str, float] = {}
        for joint, angle in angles.items():
            key = joint.value if isinstance(joint, JointType) else joint
            try:
                JointType(key)
            except ValueError:
                raise UnknownJointError(f"Unknown joint '{key}'") from None
            baseline[key] = float(angle)
        self._baseline = baseline
        logger.info("[METRICS] Baseline set for %d joints", len(baseline))

    def clear_baseline(self) -> None:
        self._baseline = {}

    def reset(self) -> None:
        """Clear all temporal state and the baseline."""
        self._history.clear()
        self._baseline = {}

    # ==================== PROCESSING ====================

    def process(self, frame: Optional[LandmarkFrame]) -> MetricsSnapshot:
        """
        Build the snapshot of one frame. Never raises for malformed input.
        """
        if frame is None:
            frame = LandmarkFrame.empty()
        elif not isinstance(frame, LandmarkFrame):
            frame = to_frame(frame)
        ts = frame.timestamp_ms
        validity = self._gate.evaluate(frame)
        min_conf = self._gate.config.min_landmark_confidence

        angles: Dict[str, float] = {}
        for joint, definition in JOINT_DEFINITIONS.items():
            if not validity.is_segment_valid(definition.segment):
                continue
            angle = calculate_joint_angle(frame, joint, self._config.use_3d, min_conf)
            if angle is None:
                continue
            angles[joint.value] = angle
            self._history.push(joint, angle, ts)

        range_of_motion: Dict[str, float] = {}
        rate_of_change: Dict[str, float] = {}
        if self._config.enable_rom_tracking:
            for key in angles:
                range_of_motion[key] = self._history.range_of_motion(key)
                rate = self._history.rate_of_change(key)
                if rate is not None:
                    rate_of_change[key] = rate

        posture = (
            self._compute_posture(frame, validity, angles)
            if self._config.enable_posture else PostureMetrics()
        )
        head = (
            self._compute_head(frame, validity)
            if self._config.enable_face_metrics else None
        )

        stability = None
        center_speed = None
        if validity.is_segment_valid(BodySegment.CORE):
            hip_mid = midpoint(
                frame.get(PoseLandmarkIndex.LEFT_HIP, min_conf),
                frame.get(PoseLandmarkIndex.RIGHT_HIP, min_conf),
            )
            if hip_mid is not None:
                self._history.push_position(hip_mid, ts)
                stability = self._history.stability()
                if self._config.enable_motion_metrics:
                    center_speed = self._history.center_speed()

        smoothness = None
        if self._config.enable_motion_metrics and angles:
            values = [self._history.smoothness(key) for key in angles]
            smoothness = sum(values) / len(values)

        deviation = {
            key: angles[key] - ref for key, ref in self._baseline.items() if key in angles
        }

        if not angles:
            logger.debug("[METRICS] frame %d: no joint measured", ts)

        return MetricsSnapshot(
            timestamp_ms=ts,
            joint_angles=_frozen(angles),
            posture=posture,
            head=head,
            range_of_motion=_frozen(range_of_motion),
            rate_of_change=_frozen(rate_of_change),
            smoothness=smoothness,
            stability=stability,
            center_speed=center_speed,
            baseline_deviation=_frozen(deviation),
            validity=validity,
            landmark_confidence=frame.confidences(),
        )

    def _compute_posture(
        self,
        frame: LandmarkFrame,
        validity: ValidityResult,
        angles: Mapping[str, float]
    ) -> PostureMetrics:
        cfg = self._config
        min_conf = self._gate.config.min_landmark_confidence
        get = lambda index: frame.get(index, min_conf)

        upper = validity.is_segment_valid(BodySegment.UPPER)
        core = validity.is_segment_valid(BodySegment.CORE)
        lower = validity.is_segment_valid(BodySegment.LOWER)

        l_sh, r_sh = get(PoseLandmarkIndex.LEFT_SHOULDER), get(PoseLandmarkIndex.RIGHT_SHOULDER)
        l_hip, r_hip = get(PoseLandmarkIndex.LEFT_HIP), get(PoseLandmarkIndex.RIGHT_HIP)
        shoulder_mid = midpoint(l_sh, r_sh)
        hip_mid = midpoint(l_hip, r_hip)

        values: Dict[str, object] = {}
        if core:
            values["spine_angle"] = lean_from_vertical(shoulder_mid, hip_mid)
            values["torso_rotation"] = rotation((l_sh, r_sh), (l_hip, r_hip))
        if core or upper:
            values["shoulder_level"] = line_tilt(l_sh, r_sh)
            values["shoulder_levelness"] = horizontal_deviation(l_sh, r_sh, cfg.levelness_scale)
        if core or lower:
            values["hip_level"] = line_tilt(l_hip, r_hip)
            values["hip_levelness"] = horizontal_deviation(l_hip, r_hip, cfg.levelness_scale)
        if core and lower:
            ankle_mid = midpoint(get(PoseLandmarkIndex.LEFT_ANKLE), get(PoseLandmarkIndex.RIGHT_ANKLE))
            values["vertical_alignment"] = vertical_deviation(
                [shoulder_mid, hip_mid, ankle_mid], cfg.alignment_scale
            )
        if upper:
            values["left_wrist_bearing"] = bearing(
                get(PoseLandmarkIndex.LEFT_ELBOW), get(PoseLandmarkIndex.LEFT_WRIST)
            )
            values["right_wrist_bearing"] = bearing(
                get(PoseLandmarkIndex.RIGHT_ELBOW), get(PoseLandmarkIndex.RIGHT_WRIST)
            )

        scores: Dict[str, float] = {}
        if cfg.enable_symmetry:
            for name, left, right in BILATERAL_PAIRS:
                score = symmetry(angles.get(left.value), angles.get(right.value), cfg.symmetry_scale)
                if score is not None:
                    scores[name] = score

        return PostureMetrics(symmetry=_frozen(scores), **values)

    def _compute_head(self, frame: LandmarkFrame, validity: ValidityResult) -> Optional[HeadMetrics]:
        if not validity.is_segment_valid(BodySegment.HEAD):
            return None
        min_conf = self._gate.config.min_landmark_confidence
        get = lambda index: frame.get(index, min_conf)

        left_eye, right_eye = get(PoseLandmarkIndex.LEFT_EYE), get(PoseLandmarkIndex.RIGHT_EYE)
        yaw, pitch, roll = head_orientation(get(PoseLandmarkIndex.NOSE), left_eye, right_eye)
        return HeadMetrics(
            yaw=yaw,
            pitch=pitch,
            roll=roll,
            eye_symmetry=eye_symmetry(
                get(PoseLandmarkIndex.LEFT_EYE_INNER), get(PoseLandmarkIndex.LEFT_EYE_OUTER),
                get(PoseLandmarkIndex.RIGHT_EYE_INNER), get(PoseLandmarkIndex.RIGHT_EYE_OUTER),
            ),
            eye_distance=distance(left_eye, right_eye),
        )

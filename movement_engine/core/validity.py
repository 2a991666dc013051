"""
Validity Gate Module.

Decides per frame and per body segment whether landmark quality supports
trustworthy metrics:

    1. Segment confidence: mean landmark confidence per body region
    2. Distance: subject framed too close / too far for meaningful angles
    3. Orientation: shoulder and hip lines level and facing the camera

Messages are diagnostics for the UI; the engine only reads the booleans.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .config import ValidityConfig
from .data_types import BodySegment, LandmarkFrame, PoseLandmarkIndex, SEGMENT_LANDMARKS
from .kinematics import distance, line_tilt, midpoint, rotation

logger = logging.getLogger(__name__)


class DistanceStatus(str, Enum):
    OPTIMAL = "optimal"
    TOO_CLOSE = "too_close"
    TOO_FAR = "too_far"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DistanceEstimate:
    """
    Attributes:
        status: Tri-state framing verdict (or UNKNOWN).
        measure: Raw measurement (body span or shoulder width, normalized).
        relative_distance: target / measure; 1.0 is optimal, >1 is further away.
        method: "body_span", "shoulder_width" or "none".
    """
    status: DistanceStatus
    measure: Optional[float] = None
    relative_distance: Optional[float] = None
    method: str = "none"

    @property
    def is_acceptable(self) -> bool:
        return self.status not in (DistanceStatus.TOO_CLOSE, DistanceStatus.TOO_FAR)


@dataclass(frozen=True)
class OrientationResult:
    shoulder_tilt: Optional[float] = None
    hip_tilt: Optional[float] = None
    torso_rotation: Optional[float] = None
    frontal_ratio: Optional[float] = None
    is_level: bool = True
    is_frontal: bool = True
    messages: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SegmentValidity:
    segment: BodySegment
    confidence: float
    threshold: float
    is_valid: bool
    message: str = ""


@dataclass(frozen=True)
class ValidityResult:
    """
    Per-frame validity verdict. Computed fresh every frame.

    Attributes:
        is_valid: True when at least one segment may be measured.
        distance: Framing estimate.
        confidence: Mean confidence over all 33 landmarks.
        segments: Verdict per body segment.
        orientation: Level / frontal checks.
        messages: Every human-readable diagnostic of this frame.
    """
    is_valid: bool
    distance: DistanceEstimate
    confidence: float
    segments: Dict[BodySegment, SegmentValidity] = field(default_factory=dict)
    orientation: OrientationResult = field(default_factory=OrientationResult)
    messages: Tuple[str, ...] = ()

    def is_segment_valid(self, segment: BodySegment) -> bool:
        verdict = self.segments.get(segment)
        return verdict is not None and verdict.is_valid

    def to_dict(self) -> Dict:
        return {
            "is_valid": self.is_valid,
            "distance_status": self.distance.status.value,
            "distance_estimate": (
                round(self.distance.relative_distance, 3)
                if self.distance.relative_distance is not None else None
            ),
            "confidence": round(self.confidence, 3),
            "segments": {
                seg.value: {
                    "is_valid": verdict.is_valid,
                    "confidence": round(verdict.confidence, 3),
                }
                for seg, verdict in self.segments.items()
            },
            "is_frontal": self.orientation.is_frontal,
            "is_level": self.orientation.is_level,
            "messages": list(self.messages),
        }


def segment_confidence(frame: LandmarkFrame, indices: Sequence[int]) -> float:
    """Mean confidence over indices; missing landmarks count as 0."""
    if not indices:
        return 0.0
    return sum(frame.confidence(i) for i in indices) / len(indices)


class ValidityGate:
    """
    Frame quality gate.

    Example:
        >>> gate = ValidityGate(ValidityConfig())
        >>> result = gate.evaluate(frame)
        >>> result.is_segment_valid(BodySegment.LOWER)
    """

    def __init__(self, config: Optional[ValidityConfig] = None):
        self._config = config or ValidityConfig()

    @property
    def config(self) -> ValidityConfig:
        return self._config

    def _point(self, frame: LandmarkFrame, index: int):
        return frame.get(index, self._config.min_landmark_confidence)

    # ==================== SEGMENTS ====================

    def check_segment(self, frame: LandmarkFrame, segment: BodySegment) -> SegmentValidity:
        threshold = self._config.threshold_for(segment)
        confidence = segment_confidence(frame, SEGMENT_LANDMARKS[segment])
        is_valid = confidence > threshold
        message = "" if is_valid else (
            f"Low confidence in {segment.value} body ({confidence:.2f} <= {threshold:.2f})"
        )
        return SegmentValidity(segment, confidence, threshold, is_valid, message)

    # ==================== DISTANCE ====================

    def estimate_distance(self, frame: LandmarkFrame) -> DistanceEstimate:
        """
        Framing heuristic.

        Prefers the head-to-feet span as a fraction of frame height and falls
        back to shoulder width when head or feet are not visible.
        """
        cfg = self._config
        head = [p for p in (self._point(frame, i) for i in PoseLandmarkIndex.HEAD_POINTS) if p]
        feet = [p for p in (self._point(frame, i) for i in PoseLandmarkIndex.FOOT_POINTS) if p]

        if head and feet:
            span = max(p.y for p in feet) - min(p.y for p in head)
            if span > 0:
                if span > cfg.too_close_span:
                    status = DistanceStatus.TOO_CLOSE
                elif span < cfg.too_far_span:
                    status = DistanceStatus.TOO_FAR
                else:
                    status = DistanceStatus.OPTIMAL
                return DistanceEstimate(status, span, cfg.target_span / span, "body_span")

        width = distance(
            self._point(frame, PoseLandmarkIndex.LEFT_SHOULDER),
            self._point(frame, PoseLandmarkIndex.RIGHT_SHOULDER),
        )
        if width is not None and width > 0:
            if width > cfg.too_close_shoulder_width:
                status = DistanceStatus.TOO_CLOSE
            elif width < cfg.too_far_shoulder_width:
                status = DistanceStatus.TOO_FAR
            else:
                status = DistanceStatus.OPTIMAL
            return DistanceEstimate(status, width, cfg.target_shoulder_width / width, "shoulder_width")

        return DistanceEstimate(DistanceStatus.UNKNOWN)

    # ==================== ORIENTATION ====================

    def orientation(self, frame: LandmarkFrame) -> OrientationResult:
        cfg = self._config
        l_sh = self._point(frame, PoseLandmarkIndex.LEFT_SHOULDER)
        r_sh = self._point(frame, PoseLandmarkIndex.RIGHT_SHOULDER)
        l_hip = self._point(frame, PoseLandmarkIndex.LEFT_HIP)
        r_hip = self._point(frame, PoseLandmarkIndex.RIGHT_HIP)

        shoulder_tilt = line_tilt(l_sh, r_sh)
        hip_tilt = line_tilt(l_hip, r_hip)
        torso_rotation = rotation((l_sh, r_sh), (l_hip, r_hip))

        frontal_ratio = None
        shoulder_width = distance(l_sh, r_sh)
        torso_length = distance(midpoint(l_sh, r_sh), midpoint(l_hip, r_hip))
        if shoulder_width is not None and torso_length:
            frontal_ratio = shoulder_width / torso_length

        messages: List[str] = []
        is_level = True
        if shoulder_tilt is not None and abs(shoulder_tilt) > cfg.max_tilt:
            is_level = False
            messages.append(f"Shoulders tilted {abs(shoulder_tilt):.0f} degrees")
        if hip_tilt is not None and abs(hip_tilt) > cfg.max_tilt:
            is_level = False
            messages.append(f"Hips tilted {abs(hip_tilt):.0f} degrees")

        is_frontal = True
        if torso_rotation is not None and torso_rotation > cfg.max_rotation:
            is_frontal = False
            messages.append(f"Torso rotated {torso_rotation:.0f} degrees")
        if frontal_ratio is not None and frontal_ratio < cfg.min_frontal_ratio:
            is_frontal = False
            messages.append("Turn to face the camera")

        return OrientationResult(
            shoulder_tilt=shoulder_tilt,
            hip_tilt=hip_tilt,
            torso_rotation=torso_rotation,
            frontal_ratio=frontal_ratio,
            is_level=is_level,
            is_frontal=is_frontal,
            messages=tuple(messages),
        )

    # ==================== FULL VERDICT ====================

    def evaluate(self, frame: LandmarkFrame) -> ValidityResult:
        messages: List[str] = []
        distance_estimate = self.estimate_distance(frame)
        suppress = self._config.suppress_on_bad_distance and not distance_estimate.is_acceptable
        if distance_estimate.status == DistanceStatus.TOO_CLOSE:
            messages.append("Step back from the camera")
        elif distance_estimate.status == DistanceStatus.TOO_FAR:
            messages.append("Move closer to the camera")

        segments: Dict[BodySegment, SegmentValidity] = {}
        for segment in BodySegment:
            verdict = self.check_segment(frame, segment)
            if suppress and verdict.is_valid:
                verdict = SegmentValidity(
                    segment, verdict.confidence, verdict.threshold, False,
                    f"{segment.value} body withheld: subject {distance_estimate.status.value}",
                )
            if verdict.message:
                messages.append(verdict.message)
            segments[segment] = verdict

        orientation = self.orientation(frame)
        messages.extend(orientation.messages)

        confidences = frame.confidences()
        overall = sum(confidences) / len(confidences) if confidences else 0.0
        is_valid = any(v.is_valid for v in segments.values())
        if not is_valid:
            logger.debug("[VALIDITY] frame %d unusable: %s", frame.timestamp_ms, "; ".join(messages))

        return ValidityResult(
            is_valid=is_valid,
            distance=distance_estimate,
            confidence=overall,
            segments=segments,
            orientation=orientation,
            messages=tuple(messages),
        )

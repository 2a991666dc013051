"""
Exercise Profile Module.

Static description of an exercise for the phase state machine:

    ┌──────────────────────────────────────────────────────────┐
    │   phases[0] ──► phases[1] ──► ... ──► phases[-1] ──┐     │
    │       ▲                                           │     │
    │       └──────────── rep completed ────────────────┘     │
    └──────────────────────────────────────────────────────────┘

Each phase owns one exit boundary on the primary joint angle: the phase is
left when the angle drops below (or rises above) its threshold. The cycle
only moves forward and each phase listens to its own boundary only, so
noise around a boundary cannot count a repetition twice.

Profiles come from the factory functions below or from plain dicts / JSON
validated by ExerciseProfileConfig.

Version: 1.0.0
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..core.data_types import JointType, PoseLandmarkIndex
from ..core.metrics import MetricsSnapshot
from ..helpers.exceptions import ProfileConfigurationError, UnknownJointError
from .form_checks import (
    AlignmentCheck, AngleRangeCheck, FormCheck, FormCheckConfig, HingeCheck,
    LevelnessCheck, SpineLeanCheck, SymmetryCheck,
)


class ExitDirection(str, Enum):
    BELOW = "below"
    ABOVE = "above"


@dataclass(frozen=True)
class PhaseDefinition:
    """
    One phase of the cycle.

    Attributes:
        name: Phase name (e.g. "descent").
        exit_when: Leave the phase when the primary angle goes below/above threshold.
        threshold: Boundary angle (degrees).
        min_duration_ms: Minimum dwell time before the phase may be left.
    """
    name: str
    exit_when: ExitDirection
    threshold: float
    min_duration_ms: int = 0

    def is_exited(self, angle: float) -> bool:
        if self.exit_when == ExitDirection.BELOW:
            return angle < self.threshold
        return angle > self.threshold


@dataclass(frozen=True)
class AngleRange:
    min_angle: float = 0.0
    max_angle: float = 180.0

    def contains(self, angle: Optional[float]) -> bool:
        return angle is not None and self.min_angle <= angle <= self.max_angle


_AGGREGATES = ("min", "max", "mean")


@dataclass(frozen=True)
class ExerciseProfile:
    """
    Static configuration of one exercise.

    Attributes:
        name: Unique exercise name.
        phases: Ordered phase cycle; phases[0] is the rest position.
        primary_joints: Joints whose aggregated angle drives the cycle.
        tracked_keypoints: Landmark indices whose mean confidence gates matching.
        start_ranges: Angle range per joint required to start tracking.
        form_checks: Predicates run on every tracked frame.
        aggregate: How to combine primary joints ("min", "max" or "mean").
        min_confidence: Minimum mean confidence over tracked_keypoints to start.
        start_spine_lean: Optional torso lean range required to start.
        min_rep_duration_ms: Cycles faster than this are not counted.
        description: Free text.
    """
    name: str
    phases: Tuple[PhaseDefinition, ...]
    primary_joints: Tuple[JointType, ...]
    tracked_keypoints: Tuple[int, ...]
    start_ranges: Mapping[JointType, AngleRange] = field(default_factory=dict)
    form_checks: Tuple[FormCheck, ...] = ()
    aggregate: str = "min"
    min_confidence: float = 0.5
    start_spine_lean: Optional[AngleRange] = None
    min_rep_duration_ms: int = 0
    description: str = ""

    def __post_init__(self):
        if not self.name:
            raise ProfileConfigurationError("Exercise profile needs a name")
        if len(self.phases) < 2:
            raise ProfileConfigurationError(f"'{self.name}': a cycle needs at least two phases")
        names = [p.name for p in self.phases]
        if len(set(names)) != len(names):
            raise ProfileConfigurationError(f"'{self.name}': duplicate phase names {names}")
        if "idle" in names:
            raise ProfileConfigurationError(f"'{self.name}': 'idle' is reserved")
        if not self.primary_joints:
            raise ProfileConfigurationError(f"'{self.name}': no primary joint")
        if self.aggregate not in _AGGREGATES:
            raise ProfileConfigurationError(f"'{self.name}': aggregate must be one of {_AGGREGATES}")
        if any(not 0 <= i < 33 for i in self.tracked_keypoints):
            raise ProfileConfigurationError(f"'{self.name}': keypoint index out of range")
        object.__setattr__(self, "phases", tuple(self.phases))
        object.__setattr__(self, "primary_joints", tuple(self.primary_joints))
        object.__setattr__(self, "tracked_keypoints", tuple(self.tracked_keypoints))
        object.__setattr__(self, "form_checks", tuple(self.form_checks))
        object.__setattr__(self, "start_ranges", MappingProxyType(dict(self.start_ranges)))

    @property
    def phase_names(self) -> List[str]:
        return [p.name for p in self.phases]

    def primary_angle(self, snapshot: MetricsSnapshot) -> Optional[float]:
        """Aggregate of the available primary joint angles, None if none measured."""
        angles = [snapshot.angle(j) for j in self.primary_joints]
        angles = [a for a in angles if a is not None]
        if not angles:
            return None
        if self.aggregate == "max":
            return max(angles)
        if self.aggregate == "mean":
            return sum(angles) / len(angles)
        return min(angles)

    def tracked_confidence(self, snapshot: MetricsSnapshot) -> float:
        confidences = snapshot.landmark_confidence
        if not self.tracked_keypoints or not confidences:
            return 0.0
        values = [confidences[i] if i < len(confidences) else 0.0 for i in self.tracked_keypoints]
        return sum(values) / len(values)

    def matches_start(self, snapshot: MetricsSnapshot) -> bool:
        """Confidence and every start constraint satisfied on this snapshot."""
        if self.tracked_confidence(snapshot) < self.min_confidence:
            return False
        if self.primary_angle(snapshot) is None:
            return False
        for joint, allowed in self.start_ranges.items():
            if not allowed.contains(snapshot.angle(joint)):
                return False
        if self.start_spine_lean is not None and not self.start_spine_lean.contains(
            snapshot.posture.spine_angle
        ):
            return False
        return True


# ==================== CONFIG SCHEMAS ====================

class PhaseConfig(BaseModel):
    name: str = Field(..., min_length=1)
    exit_when: Literal["below", "above"]
    threshold: float = Field(..., ge=0.0, le=180.0, description="Boundary on the primary angle")
    min_duration_ms: int = Field(0, ge=0)


class AngleRangeConfig(BaseModel):
    min: float = Field(0.0, ge=0.0, le=180.0)
    max: float = Field(180.0, ge=0.0, le=180.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "AngleRangeConfig":
        if self.min > self.max:
            raise ValueError("min must not exceed max")
        return self

    def to_range(self) -> AngleRange:
        return AngleRange(self.min, self.max)


class ExerciseProfileConfig(BaseModel):
    """Serializable form of ExerciseProfile."""
    name: str = Field(..., min_length=1)
    description: str = ""
    phases: List[PhaseConfig] = Field(..., min_length=2)
    primary_joints: List[str] = Field(..., min_length=1)
    aggregate: Literal["min", "max", "mean"] = "min"
    tracked_keypoints: List[int] = Field(default_factory=list)
    start_ranges: Dict[str, AngleRangeConfig] = Field(default_factory=dict)
    start_spine_lean: Optional[AngleRangeConfig] = None
    min_confidence: float = Field(0.5, ge=0.0, le=1.0)
    min_rep_duration_ms: int = Field(0, ge=0)
    form_checks: List[FormCheckConfig] = Field(default_factory=list)

    def to_profile(self) -> ExerciseProfile:
        return ExerciseProfile(
            name=self.name,
            description=self.description,
            phases=tuple(
                PhaseDefinition(p.name, ExitDirection(p.exit_when), p.threshold, p.min_duration_ms)
                for p in self.phases
            ),
            primary_joints=_joints(self.primary_joints),
            aggregate=self.aggregate,
            tracked_keypoints=tuple(self.tracked_keypoints),
            start_ranges={
                joint: cfg.to_range()
                for joint, cfg in zip(_joints(self.start_ranges.keys()), self.start_ranges.values())
            },
            start_spine_lean=self.start_spine_lean.to_range() if self.start_spine_lean else None,
            min_confidence=self.min_confidence,
            min_rep_duration_ms=self.min_rep_duration_ms,
            form_checks=tuple(check.build() for check in self.form_checks),
        )


def _joints(names: Iterable[str]) -> Tuple[JointType, ...]:
    joints = []
    for name in names:
        try:
            joints.append(JointType(name))
        except ValueError:
            raise UnknownJointError(f"Unknown joint '{name}'") from None
    return tuple(joints)


def load_profiles(data: Iterable[Mapping]) -> List[ExerciseProfile]:
    """
    Validate profile dicts and build profiles, keeping their order.

    Raises:
        ProfileConfigurationError: Invalid data or duplicate names.
        UnknownJointError: A joint name outside the topology.
    """
    profiles: List[ExerciseProfile] = []
    for raw in data:
        try:
            config = ExerciseProfileConfig.model_validate(raw)
        except ValidationError as exc:
            raise ProfileConfigurationError(f"Invalid exercise profile: {exc}") from exc
        profiles.append(config.to_profile())
    ensure_unique_names(profiles)
    return profiles


def load_profiles_file(path: Union[str, Path]) -> List[ExerciseProfile]:
    """Load profiles from a JSON file holding a list or {"profiles": [...]}."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("profiles", [])
    return load_profiles(data)


def ensure_unique_names(profiles: Sequence[ExerciseProfile]) -> None:
    seen = set()
    for profile in profiles:
        if profile.name in seen:
            raise ProfileConfigurationError(f"Duplicate exercise profile '{profile.name}'")
        seen.add(profile.name)


# ==================== BUILT-IN PROFILES ====================

_LEGS = (
    PoseLandmarkIndex.LEFT_HIP, PoseLandmarkIndex.RIGHT_HIP,
    PoseLandmarkIndex.LEFT_KNEE, PoseLandmarkIndex.RIGHT_KNEE,
    PoseLandmarkIndex.LEFT_ANKLE, PoseLandmarkIndex.RIGHT_ANKLE,
)
_ARMS = (
    PoseLandmarkIndex.LEFT_SHOULDER, PoseLandmarkIndex.RIGHT_SHOULDER,
    PoseLandmarkIndex.LEFT_ELBOW, PoseLandmarkIndex.RIGHT_ELBOW,
    PoseLandmarkIndex.LEFT_WRIST, PoseLandmarkIndex.RIGHT_WRIST,
)
_KNEES = (JointType.LEFT_KNEE, JointType.RIGHT_KNEE)
_HIPS = (JointType.LEFT_HIP, JointType.RIGHT_HIP)
_ELBOWS = (JointType.LEFT_ELBOW, JointType.RIGHT_ELBOW)
_MOVING = ("descent", "hold", "ascent")


def create_squat_profile() -> ExerciseProfile:
    """
    Squat driven by the more bent knee.

    preparation (standing) → descent (< 150°) → hold (< 100°)
    → ascent (> 110°) → preparation (> 160°)
    """
    return ExerciseProfile(
        name="squat",
        description="Bodyweight squat",
        phases=(
            PhaseDefinition("preparation", ExitDirection.BELOW, 150.0),
            PhaseDefinition("descent", ExitDirection.BELOW, 100.0),
            PhaseDefinition("hold", ExitDirection.ABOVE, 110.0),
            PhaseDefinition("ascent", ExitDirection.ABOVE, 160.0),
        ),
        primary_joints=_KNEES,
        tracked_keypoints=_LEGS,
        start_ranges={
            JointType.LEFT_KNEE: AngleRange(150.0, 180.0),
            JointType.RIGHT_KNEE: AngleRange(150.0, 180.0),
        },
        start_spine_lean=AngleRange(0.0, 30.0),
        form_checks=(
            SymmetryCheck("knee_symmetry", "Keep your knees even", pair="knee", min_score=70.0),
            SpineLeanCheck("chest_up", "Keep your chest up", max_lean=45.0, phases=_MOVING),
            LevelnessCheck("hips_level", "Keep your hips level", part="hips", min_score=60.0),
            AlignmentCheck("centered", "Keep your weight centered", min_score=60.0),
        ),
        min_confidence=0.6,
    )


def create_pushup_profile() -> ExerciseProfile:
    """Push-up driven by the more bent elbow; the body must start roughly horizontal."""
    return ExerciseProfile(
        name="pushup",
        description="Push-up",
        phases=(
            PhaseDefinition("up", ExitDirection.BELOW, 140.0),
            PhaseDefinition("descent", ExitDirection.BELOW, 100.0),
            PhaseDefinition("hold", ExitDirection.ABOVE, 110.0),
            PhaseDefinition("ascent", ExitDirection.ABOVE, 150.0),
        ),
        primary_joints=_ELBOWS,
        tracked_keypoints=_ARMS + (PoseLandmarkIndex.LEFT_HIP, PoseLandmarkIndex.RIGHT_HIP),
        start_ranges={
            JointType.LEFT_ELBOW: AngleRange(150.0, 180.0),
            JointType.RIGHT_ELBOW: AngleRange(150.0, 180.0),
        },
        start_spine_lean=AngleRange(60.0, 120.0),
        form_checks=(
            AngleRangeCheck("body_line", "Keep your hips in line", joints=_HIPS,
                            min_angle=150.0, max_angle=180.0),
            SymmetryCheck("arm_symmetry", "Push evenly with both arms", pair="elbow", min_score=70.0),
        ),
        min_confidence=0.6,
    )


def create_bicep_curl_profile() -> ExerciseProfile:
    return ExerciseProfile(
        name="bicep_curl",
        description="Standing bicep curl",
        phases=(
            PhaseDefinition("preparation", ExitDirection.BELOW, 140.0),
            PhaseDefinition("lift", ExitDirection.BELOW, 60.0),
            PhaseDefinition("hold", ExitDirection.ABOVE, 70.0),
            PhaseDefinition("lower", ExitDirection.ABOVE, 150.0),
        ),
        primary_joints=_ELBOWS,
        tracked_keypoints=_ARMS,
        start_ranges={
            JointType.LEFT_ELBOW: AngleRange(150.0, 180.0),
            JointType.RIGHT_ELBOW: AngleRange(150.0, 180.0),
        },
        start_spine_lean=AngleRange(0.0, 20.0),
        form_checks=(
            AngleRangeCheck("elbows_tucked", "Keep your elbows at your sides",
                            joints=(JointType.LEFT_SHOULDER, JointType.RIGHT_SHOULDER),
                            min_angle=0.0, max_angle=40.0),
            SpineLeanCheck("no_swing", "Don't swing your torso", max_lean=15.0),
        ),
        min_confidence=0.6,
    )


def create_hip_hinge_profile() -> ExerciseProfile:
    return ExerciseProfile(
        name="hip_hinge",
        description="Hip hinge / Romanian deadlift pattern",
        phases=(
            PhaseDefinition("preparation", ExitDirection.BELOW, 150.0),
            PhaseDefinition("descent", ExitDirection.BELOW, 110.0),
            PhaseDefinition("hold", ExitDirection.ABOVE, 120.0),
            PhaseDefinition("ascent", ExitDirection.ABOVE, 160.0),
        ),
        primary_joints=_HIPS,
        tracked_keypoints=_LEGS + (PoseLandmarkIndex.LEFT_SHOULDER, PoseLandmarkIndex.RIGHT_SHOULDER),
        start_ranges={
            JointType.LEFT_HIP: AngleRange(150.0, 180.0),
            JointType.RIGHT_HIP: AngleRange(150.0, 180.0),
            JointType.LEFT_KNEE: AngleRange(150.0, 180.0),
            JointType.RIGHT_KNEE: AngleRange(150.0, 180.0),
        },
        start_spine_lean=AngleRange(0.0, 30.0),
        form_checks=(
            HingeCheck("hinge", "Hinge at the hips, not the knees", min_ratio=1.5,
                       phases=("descent", "hold")),
            AngleRangeCheck("soft_knees", "Keep a soft bend in the knees", joints=_KNEES,
                            min_angle=130.0, max_angle=180.0),
        ),
        min_confidence=0.6,
    )


def default_profiles() -> List[ExerciseProfile]:
    """Built-in profiles in matching order."""
    return [
        create_squat_profile(),
        create_pushup_profile(),
        create_bicep_curl_profile(),
        create_hip_hinge_profile(),
    ]

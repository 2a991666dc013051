"""
Form Check Module.

Predicates evaluated on every tracked frame. A failing check yields a
warning message; it never stops the phase state machine.

Each check answers one of:
    True  - criterion met
    False - criterion violated (message is reported)
    None  - not evaluable this frame (metrics absent or phase not covered)

Available checks:
    - angle_range: joint angles stay inside [min_angle, max_angle]
    - symmetry: bilateral symmetry score of a joint pair
    - spine_lean: torso lean from vertical
    - levelness: shoulder or hip line levelness
    - alignment: shoulder/hip/ankle stacking
    - hinge: hips flex more than knees (hip hinge quality)
"""

from dataclasses import dataclass
from typing import Annotated, Dict, List, Literal, Optional, Sequence, Tuple, Type, Union

from pydantic import BaseModel, Field, model_validator

from ..core.data_types import JointType
from ..core.metrics import MetricsSnapshot
from ..helpers.exceptions import UnknownJointError


@dataclass(frozen=True)
class FormCheckResult:
    name: str
    passed: Optional[bool]
    message: str = ""
    weight: float = 1.0


class FormCheck:
    """
    Base predicate.

    Args:
        name: Identifier of the check.
        message: Warning shown when the check fails.
        weight: Share of the frame form score.
        phases: Phase names where the check runs (None = every phase).
    """

    check_type = "base"

    def __init__(
        self,
        name: str,
        message: str,
        weight: float = 1.0,
        phases: Optional[Sequence[str]] = None
    ):
        self.name = name
        self.message = message
        self.weight = weight
        self.phases = tuple(phases) if phases else None

    def applies_to(self, phase: Optional[str]) -> bool:
        return self.phases is None or phase in self.phases

    def evaluate(self, snapshot: MetricsSnapshot, phase: Optional[str] = None) -> FormCheckResult:
        passed = self._check(snapshot) if self.applies_to(phase) else None
        return FormCheckResult(
            name=self.name,
            passed=passed,
            message=self.message if passed is False else "",
            weight=self.weight,
        )

    def _check(self, snapshot: MetricsSnapshot) -> Optional[bool]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


def _resolve_joints(names: Sequence[Union[JointType, str]]) -> Tuple[JointType, ...]:
    joints = []
    for name in names:
        if isinstance(name, JointType):
            joints.append(name)
            continue
        try:
            joints.append(JointType(name))
        except ValueError:
            raise UnknownJointError(f"Unknown joint '{name}'") from None
    return tuple(joints)


class AngleRangeCheck(FormCheck):
    """Every available joint angle must lie within [min_angle, max_angle]."""

    check_type = "angle_range"

    def __init__(
        self,
        name: str,
        message: str,
        joints: Sequence[Union[JointType, str]],
        min_angle: float = 0.0,
        max_angle: float = 180.0,
        **kwargs
    ):
        super().__init__(name, message, **kwargs)
        self.joints = _resolve_joints(joints)
        self.min_angle = min_angle
        self.max_angle = max_angle

    def _check(self, snapshot: MetricsSnapshot) -> Optional[bool]:
        angles = [snapshot.angle(j) for j in self.joints]
        angles = [a for a in angles if a is not None]
        if not angles:
            return None
        return all(self.min_angle <= a <= self.max_angle for a in angles)


class SymmetryCheck(FormCheck):
    check_type = "symmetry"

    def __init__(self, name: str, message: str, pair: str, min_score: float = 70.0, **kwargs):
        super().__init__(name, message, **kwargs)
        self.pair = pair
        self.min_score = min_score

    def _check(self, snapshot: MetricsSnapshot) -> Optional[bool]:
        score = snapshot.posture.symmetry.get(self.pair)
        if score is None:
            return None
        return score >= self.min_score


class SpineLeanCheck(FormCheck):
    check_type = "spine_lean"

    def __init__(self, name: str, message: str, max_lean: float = 30.0, **kwargs):
        super().__init__(name, message, **kwargs)
        self.max_lean = max_lean

    def _check(self, snapshot: MetricsSnapshot) -> Optional[bool]:
        lean = snapshot.posture.spine_angle
        if lean is None:
            return None
        return lean <= self.max_lean


class LevelnessCheck(FormCheck):
    check_type = "levelness"

    def __init__(
        self,
        name: str,
        message: str,
        part: str = "shoulders",
        min_score: float = 60.0,
        **kwargs
    ):
        super().__init__(name, message, **kwargs)
        self.part = part
        self.min_score = min_score

    def _check(self, snapshot: MetricsSnapshot) -> Optional[bool]:
        if self.part == "hips":
            score = snapshot.posture.hip_levelness
        else:
            score = snapshot.posture.shoulder_levelness
        if score is None:
            return None
        return score >= self.min_score


class AlignmentCheck(FormCheck):
    check_type = "alignment"

    def __init__(self, name: str, message: str, min_score: float = 60.0, **kwargs):
        super().__init__(name, message, **kwargs)
        self.min_score = min_score

    def _check(self, snapshot: MetricsSnapshot) -> Optional[bool]:
        score = snapshot.posture.vertical_alignment
        if score is None:
            return None
        return score >= self.min_score


class HingeCheck(FormCheck):
    """
    Hip hinge quality: hip flexion must be at least min_ratio times knee
    flexion (flexion = 180 - joint angle, averaged over available sides).

    Not evaluated until the combined flexion reaches min_total_flexion, so a
    standing subject is never judged.
    """

    check_type = "hinge"

    def __init__(
        self,
        name: str,
        message: str,
        min_ratio: float = 1.5,
        min_total_flexion: float = 20.0,
        **kwargs
    ):
        super().__init__(name, message, **kwargs)
        self.min_ratio = min_ratio
        self.min_total_flexion = min_total_flexion

    @staticmethod
    def _flexion(snapshot: MetricsSnapshot, left: JointType, right: JointType) -> Optional[float]:
        angles = [a for a in (snapshot.angle(left), snapshot.angle(right)) if a is not None]
        if not angles:
            return None
        return 180.0 - sum(angles) / len(angles)

    def _check(self, snapshot: MetricsSnapshot) -> Optional[bool]:
        hip = self._flexion(snapshot, JointType.LEFT_HIP, JointType.RIGHT_HIP)
        knee = self._flexion(snapshot, JointType.LEFT_KNEE, JointType.RIGHT_KNEE)
        if hip is None or knee is None or hip + knee < self.min_total_flexion:
            return None
        return hip >= self.min_ratio * knee


FORM_CHECK_TYPES: Dict[str, Type[FormCheck]] = {
    cls.check_type: cls
    for cls in (AngleRangeCheck, SymmetryCheck, SpineLeanCheck, LevelnessCheck, AlignmentCheck, HingeCheck)
}


def score_results(results: Sequence[FormCheckResult]) -> Optional[float]:
    """
    Weighted share of passed checks (0-100) among the evaluable ones.

    None when no check could be evaluated.
    """
    evaluated = [r for r in results if r.passed is not None]
    total_weight = sum(r.weight for r in evaluated)
    if total_weight <= 0:
        return None
    passed_weight = sum(r.weight for r in evaluated if r.passed)
    return 100.0 * passed_weight / total_weight


def failed_messages(results: Sequence[FormCheckResult]) -> Tuple[str, ...]:
    return tuple(r.message for r in results if r.passed is False and r.message)


# ==================== CONFIG SCHEMAS ====================

class _FormCheckConfigBase(BaseModel):
    name: str = Field(..., description="Identifier of the check")
    message: str = Field(..., description="Warning shown when the check fails")
    weight: float = Field(1.0, gt=0.0)
    phases: Optional[List[str]] = Field(None, description="Phases where the check runs; all if omitted")

    def build(self) -> FormCheck:
        params = self.model_dump(exclude={"type"})
        return FORM_CHECK_TYPES[self.type](**params)


class AngleRangeCheckConfig(_FormCheckConfigBase):
    type: Literal["angle_range"] = "angle_range"
    joints: List[str] = Field(..., min_length=1)
    min_angle: float = Field(0.0, ge=0.0, le=180.0)
    max_angle: float = Field(180.0, ge=0.0, le=180.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "AngleRangeCheckConfig":
        if self.min_angle > self.max_angle:
            raise ValueError("min_angle must not exceed max_angle")
        return self


class SymmetryCheckConfig(_FormCheckConfigBase):
    type: Literal["symmetry"] = "symmetry"
    pair: Literal["elbow", "shoulder", "hip", "knee"]
    min_score: float = Field(70.0, ge=0.0, le=100.0)


class SpineLeanCheckConfig(_FormCheckConfigBase):
    type: Literal["spine_lean"] = "spine_lean"
    max_lean: float = Field(30.0, ge=0.0, le=180.0)


class LevelnessCheckConfig(_FormCheckConfigBase):
    type: Literal["levelness"] = "levelness"
    part: Literal["shoulders", "hips"] = "shoulders"
    min_score: float = Field(60.0, ge=0.0, le=100.0)


class AlignmentCheckConfig(_FormCheckConfigBase):
    type: Literal["alignment"] = "alignment"
    min_score: float = Field(60.0, ge=0.0, le=100.0)


class HingeCheckConfig(_FormCheckConfigBase):
    type: Literal["hinge"] = "hinge"
    min_ratio: float = Field(1.5, gt=0.0)
    min_total_flexion: float = Field(20.0, ge=0.0)


FormCheckConfig = Annotated[
    Union[
        AngleRangeCheckConfig,
        SymmetryCheckConfig,
        SpineLeanCheckConfig,
        LevelnessCheckConfig,
        AlignmentCheckConfig,
        HingeCheckConfig,
    ],
    Field(discriminator="type"),
]

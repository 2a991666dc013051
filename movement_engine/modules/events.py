"""
Engine events.

Typed, immutable notifications produced by the phase state machine and
delivered to subscribers of the engine instance that produced them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple, Union


class EventType(str, Enum):
    PHASE_CHANGED = "phase_changed"
    REP_COMPLETED = "rep_completed"
    FORM_WARNING = "form_warning"


@dataclass(frozen=True)
class PhaseChangedEvent:
    """
    Attributes:
        exercise: Exercise being tracked.
        from_phase: Phase left ("idle" when tracking starts).
        to_phase: Phase entered ("idle" when the subject is lost).
        timestamp_ms: Timestamp of the frame that caused the transition.
    """
    event_type: ClassVar[EventType] = EventType.PHASE_CHANGED

    exercise: str
    from_phase: str
    to_phase: str
    timestamp_ms: int

    def to_dict(self) -> Dict:
        return {
            "type": self.event_type.value,
            "exercise": self.exercise,
            "from_phase": self.from_phase,
            "to_phase": self.to_phase,
            "timestamp_ms": self.timestamp_ms,
        }


@dataclass(frozen=True)
class RepCompletedEvent:
    """
    Attributes:
        exercise: Exercise being tracked.
        rep_count: Repetitions counted so far, this one included.
        form_score: Mean frame form score over the rep (0-100), None if no check applied.
        range_of_motion: Spread of the primary angle during the rep (degrees).
        duration_ms: Time from the start of the rep to its completion.
        timestamp_ms: Timestamp of the completing frame.
        warnings: Distinct form warnings raised during the rep.
    """
    event_type: ClassVar[EventType] = EventType.REP_COMPLETED

    exercise: str
    rep_count: int
    form_score: Optional[float]
    range_of_motion: float
    duration_ms: int
    timestamp_ms: int
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "type": self.event_type.value,
            "exercise": self.exercise,
            "rep_count": self.rep_count,
            "form_score": round(self.form_score, 1) if self.form_score is not None else None,
            "range_of_motion": round(self.range_of_motion, 1),
            "duration_ms": self.duration_ms,
            "timestamp_ms": self.timestamp_ms,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class FormWarningEvent:
    event_type: ClassVar[EventType] = EventType.FORM_WARNING

    exercise: str
    messages: Tuple[str, ...]
    timestamp_ms: int

    def to_dict(self) -> Dict:
        return {
            "type": self.event_type.value,
            "exercise": self.exercise,
            "messages": list(self.messages),
            "timestamp_ms": self.timestamp_ms,
        }


EngineEvent = Union[PhaseChangedEvent, RepCompletedEvent, FormWarningEvent]

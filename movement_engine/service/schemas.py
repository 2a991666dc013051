"""
Engine Service Schemas - output of one processed frame.

Everything here converts to plain JSON-compatible dicts through to_dict().

Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import Dict, List

from ..core.metrics import MetricsSnapshot
from ..modules.events import (
    EngineEvent, EventType, FormWarningEvent, PhaseChangedEvent, RepCompletedEvent
)
from ..modules.feedback import PostureFeedback
from ..modules.phase_tracker import ExerciseStatus


@dataclass(frozen=True)
class EngineOutput:
    """
    Result of MovementEngine.process_frame.

    Attributes:
        snapshot: Metrics of the frame.
        exercise: Exercise tracking status after the frame.
        events: Events caused by the frame, in order.
        feedback: General posture cues for the frame.
        instance_id: Engine instance that produced the output.
    """
    snapshot: MetricsSnapshot
    exercise: ExerciseStatus
    events: List[EngineEvent] = field(default_factory=list)
    feedback: List[PostureFeedback] = field(default_factory=list)
    instance_id: str = ""

    @property
    def timestamp_ms(self) -> int:
        return self.snapshot.timestamp_ms

    def events_of(self, event_type: EventType) -> List[EngineEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def to_dict(self) -> Dict:
        return {
            "instance_id": self.instance_id,
            "timestamp_ms": self.timestamp_ms,
            "metrics": self.snapshot.to_dict(),
            "exercise": self.exercise.to_dict(),
            "events": [e.to_dict() for e in self.events],
            "feedback": [f.to_dict() for f in self.feedback],
        }


__all__ = [
    'EngineOutput', 'EngineEvent', 'EventType',
    'PhaseChangedEvent', 'RepCompletedEvent', 'FormWarningEvent',
    'ExerciseStatus', 'PostureFeedback',
]

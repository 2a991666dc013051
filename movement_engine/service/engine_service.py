"""
Movement Engine Service - per-subject entry point.

MovementEngine owns everything that belongs to one tracked subject: metric
histories, exercise state, session journal and event subscribers. Each
instance is independent; serve several subjects with several instances.

Usage:
    engines: Dict[str, MovementEngine] = {}

    def handle_frame(subject_id: str, landmarks, timestamp_ms: int):
        if subject_id not in engines:
            engines[subject_id] = MovementEngine.create_instance()
        return engines[subject_id].process_frame(landmarks, timestamp_ms).to_dict()

Processing is single-threaded and frame-synchronous: one call per frame,
no I/O, no background work.

Version: 1.0.0
"""

import dataclasses
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..core.config import EngineSettings
from ..core.data_types import JointType, LandmarkFrame
from ..core.landmark_adapter import to_frame
from ..core.metrics import MetricsEngine, MetricsSnapshot
from ..modules.events import EngineEvent, EventType, FormWarningEvent, PhaseChangedEvent, RepCompletedEvent
from ..modules.feedback import PostureAdvisor
from ..modules.phase_tracker import ExercisePhaseStateMachine, ExerciseStatus
from ..modules.profiles import ExerciseProfile, default_profiles
from ..modules.scoring import SessionReport, SessionScorer
from ..utils.logger import LogCategory, SessionLogger
from .schemas import EngineOutput

logger = logging.getLogger(__name__)

EventListener = Callable[[EngineEvent], None]


# ==================== ENGINE STATE (Per-Instance) ====================

@dataclass
class EngineState:
    """
    Bookkeeping of one engine instance. Never shared between instances.
    """
    instance_id: str = ""
    frames_processed: int = 0
    frames_without_subject: int = 0
    subject_present: bool = False
    last_snapshot: Optional[MetricsSnapshot] = None


# ==================== MOVEMENT ENGINE (MAIN CLASS) ====================

class MovementEngine:
    """
    Streaming movement analysis for one subject.

    Per frame:
        LandmarkFrame → MetricsEngine (validity, angles, history, posture)
        → ExercisePhaseStateMachine (phase, reps, form) → events

    Events are returned in EngineOutput.events and pushed to subscribers
    in the same order. A subscriber that raises propagates to the caller
    of process_frame.

    Example:
        >>> engine = MovementEngine.create_instance()
        >>> unsubscribe = engine.subscribe(print, {EventType.REP_COMPLETED})
        >>> output = engine.process_frame(frame)
        >>> output.snapshot.angle("left_knee")
    """

    # ==================== CLASS METHODS ====================

    @classmethod
    def create_instance(
        cls,
        settings: Optional[EngineSettings] = None,
        profiles: Optional[Sequence[ExerciseProfile]] = None,
        instance_id: Optional[str] = None
    ) -> "MovementEngine":
        """
        Factory method: new engine with its own id.

        Args:
            settings: Engine settings (None = defaults plus environment).
            profiles: Exercise profiles in matching order (None = built-ins).
            instance_id: Custom id (None = random UUID).
        """
        return cls(settings, profiles, instance_id)

    # ==================== INITIALIZATION ====================

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        profiles: Optional[Sequence[ExerciseProfile]] = None,
        instance_id: Optional[str] = None
    ):
        self._settings = settings or EngineSettings()
        self._state = EngineState(instance_id=instance_id or str(uuid.uuid4()))

        self._metrics = MetricsEngine(
            self._settings.metrics, self._settings.validity, self._settings.history
        )
        self._tracker = ExercisePhaseStateMachine(
            default_profiles() if profiles is None else profiles, self._settings.tracking
        )
        self._advisor = PostureAdvisor(self._settings.feedback)
        self._scorer = SessionScorer()
        self._journal = SessionLogger(
            session_id=self._state.instance_id, max_entries=self._settings.JOURNAL_SIZE
        )
        self._listeners: List[Tuple[Optional[FrozenSet[EventType]], EventListener]] = []

        self._journal.info(LogCategory.SYSTEM, "Engine created", {
            "profiles": [p.name for p in self._tracker.profiles],
        })

    # ==================== PROPERTIES ====================

    @property
    def instance_id(self) -> str:
        return self._state.instance_id

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def metrics_engine(self) -> MetricsEngine:
        return self._metrics

    @property
    def tracker(self) -> ExercisePhaseStateMachine:
        return self._tracker

    @property
    def journal(self) -> SessionLogger:
        return self._journal

    @property
    def status(self) -> ExerciseStatus:
        return self._tracker.status

    @property
    def last_snapshot(self) -> Optional[MetricsSnapshot]:
        return self._state.last_snapshot

    @property
    def frames_processed(self) -> int:
        return self._state.frames_processed

    # ==================== SUBSCRIBERS ====================

    def subscribe(
        self,
        listener: EventListener,
        event_types: Optional[Iterable[EventType]] = None
    ) -> Callable[[], None]:
        """
        Register a listener for this instance's events.

        Args:
            listener: Called with each event.
            event_types: Only deliver these event types (None = all).

        Returns:
            Callable that removes the listener.
        """
        entry = (frozenset(event_types) if event_types is not None else None, listener)
        self._listeners.append(entry)

        def _unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return _unsubscribe

    def unsubscribe(self, listener: EventListener) -> None:
        self._listeners = [(types, fn) for types, fn in self._listeners if fn != listener]

    def _publish(self, event: EngineEvent) -> None:
        for types, listener in list(self._listeners):
            if types is None or event.event_type in types:
                listener(event)

    # ==================== CONTROL ====================

    def select_exercise(self, name: Optional[str]) -> None:
        """Pin start matching to one exercise (None = any profile)."""
        self._tracker.select_exercise(name)
        self._journal.info(LogCategory.PHASE, f"Exercise selection: {name or 'any'}")

    def set_baseline(self, angles: Optional[Mapping[Union[JointType, str], float]] = None) -> None:
        """
        Record reference angles. Without arguments the angles of the last
        processed frame are used.
        """
        if angles is None:
            snapshot = self._state.last_snapshot
            angles = dict(snapshot.joint_angles) if snapshot else {}
        self._metrics.set_baseline(angles)
        self._journal.info(LogCategory.SYSTEM, "Baseline recorded", {"joints": sorted(
            a.value if isinstance(a, JointType) else a for a in angles
        )})

    def reset(self) -> None:
        """
        Session boundary: clear histories, baseline, exercise state, scores
        and the journal. Subscribers stay registered.
        """
        self._metrics.reset()
        self._tracker.reset()
        self._scorer.reset()
        self._journal.clear()
        self._state = EngineState(instance_id=self._state.instance_id)
        self._journal.info(LogCategory.SYSTEM, "Engine reset")
        logger.info("[ENGINE] %s reset", self.instance_id[:8])

    def session_report(self) -> SessionReport:
        return self._scorer.build_report(self.instance_id)

    # ==================== FRAME PROCESSING ====================

    def process_frame(self, frame: Any, timestamp_ms: Optional[int] = None) -> EngineOutput:
        """
        Process one frame.

        Args:
            frame: LandmarkFrame or any shape the landmark adapter accepts.
            timestamp_ms: Overrides the frame's own timestamp when given.

        Returns:
            EngineOutput: Snapshot, exercise status, events and posture cues.
        """
        landmark_frame = to_frame(frame, timestamp_ms or 0)
        if timestamp_ms is not None and landmark_frame.timestamp_ms != timestamp_ms:
            landmark_frame = dataclasses.replace(landmark_frame, timestamp_ms=int(timestamp_ms))

        self._track_presence(landmark_frame)
        snapshot = self._metrics.process(landmark_frame)
        events = self._tracker.update(snapshot)

        self._state.frames_processed += 1
        self._state.last_snapshot = snapshot
        self._scorer.observe_frame(snapshot.timestamp_ms)

        for event in events:
            self._record(event, snapshot)
        for event in events:
            self._publish(event)

        return EngineOutput(
            snapshot=snapshot,
            exercise=self._tracker.status,
            events=events,
            feedback=self._advisor.evaluate(snapshot, check_spine=self._upright_expected()),
            instance_id=self.instance_id,
        )

    def _upright_expected(self) -> bool:
        profile = self._tracker.active_profile
        if profile is None or profile.start_spine_lean is None:
            return True
        return profile.start_spine_lean.min_angle <= self._settings.feedback.max_spine_lean

    def _track_presence(self, frame: LandmarkFrame) -> None:
        """Drop temporal history after a long stretch without anybody in view."""
        usable = frame.usable_count(self._settings.validity.min_landmark_confidence)
        if usable > 0:
            if not self._state.subject_present:
                self._journal.info(LogCategory.VALIDITY, "Subject in view")
            self._state.subject_present = True
            self._state.frames_without_subject = 0
            return

        self._state.frames_without_subject += 1
        if (self._state.subject_present
                and self._state.frames_without_subject >= self._settings.tracking.subject_loss_frames):
            self._state.subject_present = False
            self._metrics.history.clear()
            self._journal.warning(LogCategory.VALIDITY, "Subject lost, temporal history cleared", {
                "frames_without_subject": self._state.frames_without_subject,
            })

    def _record(self, event: EngineEvent, snapshot: MetricsSnapshot) -> None:
        if isinstance(event, RepCompletedEvent):
            rep = self._scorer.record_rep(event, snapshot.stability)
            self._journal.info(LogCategory.REP, f"{event.exercise} rep {event.rep_count}", rep.to_dict())
        elif isinstance(event, PhaseChangedEvent):
            self._journal.debug(
                LogCategory.PHASE, f"{event.exercise}: {event.from_phase} -> {event.to_phase}"
            )
        elif isinstance(event, FormWarningEvent):
            self._journal.info(LogCategory.FORM, "; ".join(event.messages))

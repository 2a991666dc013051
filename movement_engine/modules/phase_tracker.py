"""
Exercise Phase State Machine.

Matches the snapshot stream against exercise profiles, follows the matched
profile's phase cycle, counts repetitions and runs form checks.

FSM for one subject:
    ┌────────────────────────────────────────────────────────────┐
    │                                                            │
    │   IDLE ──(start match)──► phases[0] ──► ... ──► phases[-1] │
    │    ▲                          ▲                     │      │
    │    │                          └──── rep counted ────┘      │
    │    └──────── subject lost / reset ─────────────────────────┤
    │                                                            │
    └────────────────────────────────────────────────────────────┘

Start matching walks the profiles in their configured order and picks the
first one whose confidence and start constraints hold. When several
profiles qualify in the same frame the earlier one always wins.

Version: 1.0.0
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.config import TrackingConfig
from ..core.metrics import MetricsSnapshot
from ..helpers.exceptions import UnknownExerciseError
from .events import EngineEvent, FormWarningEvent, PhaseChangedEvent, RepCompletedEvent
from .form_checks import failed_messages, score_results
from .profiles import ExerciseProfile, ensure_unique_names

logger = logging.getLogger(__name__)

IDLE_PHASE = "idle"


@dataclass(frozen=True)
class ExerciseStatus:
    """Read-only view of ExerciseState handed to consumers."""
    exercise: Optional[str] = None
    phase: str = IDLE_PHASE
    rep_count: int = 0
    form_score: Optional[float] = None
    primary_angle: Optional[float] = None
    warnings: Tuple[str, ...] = ()

    @property
    def is_tracking(self) -> bool:
        return self.exercise is not None

    def to_dict(self) -> Dict:
        return {
            "exercise": self.exercise,
            "phase": self.phase,
            "rep_count": self.rep_count,
            "form_score": round(self.form_score, 1) if self.form_score is not None else None,
            "primary_angle": round(self.primary_angle, 1) if self.primary_angle is not None else None,
            "warnings": list(self.warnings),
        }


@dataclass
class ExerciseState:
    """
    Mutable tracking state of one subject. Owned by one state machine.
    """
    exercise: Optional[str] = None
    phase: str = IDLE_PHASE
    phase_index: int = -1
    rep_count: int = 0

    # Timing
    phase_start_ms: int = 0
    rep_start_ms: int = 0

    # Current rep
    primary_angle: Optional[float] = None
    rep_min_angle: Optional[float] = None
    rep_max_angle: Optional[float] = None
    form_total: float = 0.0
    form_frames: int = 0
    rep_warnings: List[str] = field(default_factory=list)

    # Frames in a row without the primary angle
    missing_frames: int = 0
    active_warnings: Tuple[str, ...] = ()

    @property
    def form_score(self) -> Optional[float]:
        """Mean frame form score of the rep in progress."""
        if self.form_frames == 0:
            return None
        return self.form_total / self.form_frames

    def begin_rep(self, timestamp_ms: int, angle: Optional[float]) -> None:
        self.rep_start_ms = timestamp_ms
        self.rep_min_angle = angle
        self.rep_max_angle = angle
        self.form_total = 0.0
        self.form_frames = 0
        self.rep_warnings = []

    def observe_angle(self, angle: float) -> None:
        self.primary_angle = angle
        self.rep_min_angle = angle if self.rep_min_angle is None else min(self.rep_min_angle, angle)
        self.rep_max_angle = angle if self.rep_max_angle is None else max(self.rep_max_angle, angle)

    def to_status(self) -> ExerciseStatus:
        return ExerciseStatus(
            exercise=self.exercise,
            phase=self.phase,
            rep_count=self.rep_count,
            form_score=self.form_score,
            primary_angle=self.primary_angle,
            warnings=self.active_warnings,
        )


class ExercisePhaseStateMachine:
    """
    Phase tracking for one subject.

    Example:
        >>> fsm = ExercisePhaseStateMachine([create_squat_profile()])
        >>> for snapshot in snapshots:
        ...     for event in fsm.update(snapshot):
        ...         print(event.to_dict())
        >>> fsm.status.rep_count
    """

    def __init__(
        self,
        profiles: Sequence[ExerciseProfile],
        config: Optional[TrackingConfig] = None
    ):
        ensure_unique_names(profiles)
        self._profiles: List[ExerciseProfile] = list(profiles)
        self._config = config or TrackingConfig()
        self._state = ExerciseState()
        self._profile: Optional[ExerciseProfile] = None
        self._pinned: Optional[ExerciseProfile] = None

    # ==================== PROPERTIES ====================

    @property
    def profiles(self) -> List[ExerciseProfile]:
        return list(self._profiles)

    @property
    def active_profile(self) -> Optional[ExerciseProfile]:
        return self._profile

    @property
    def pinned_exercise(self) -> Optional[str]:
        return self._pinned.name if self._pinned else None

    @property
    def status(self) -> ExerciseStatus:
        return self._state.to_status()

    def get_profile(self, name: str) -> ExerciseProfile:
        for profile in self._profiles:
            if profile.name == name:
                return profile
        raise UnknownExerciseError(f"Unknown exercise '{name}'")

    # ==================== CONTROL ====================

    def select_exercise(self, name: Optional[str]) -> None:
        """
        Restrict start matching to one profile (None lifts the restriction).

        Tracking of a different exercise in progress is dropped.

        Raises:
            UnknownExerciseError: If no profile has that name.
        """
        if name is None:
            self._pinned = None
            return
        profile = self.get_profile(name)
        self._pinned = profile
        if self._profile is not None and self._profile is not profile:
            self._state = ExerciseState()
            self._profile = None
        logger.info("[PHASE] Exercise pinned: %s", name)

    def reset(self) -> None:
        """Clear exercise, phase, rep count, form accumulation and the pinned exercise."""
        self._state = ExerciseState()
        self._profile = None
        self._pinned = None

    # ==================== FRAME UPDATE ====================

    def update(self, snapshot: MetricsSnapshot) -> List[EngineEvent]:
        """
        Advance the machine by one snapshot.

        Returns:
            List[EngineEvent]: Events caused by this frame, in order.
        """
        events: List[EngineEvent] = []
        ts = snapshot.timestamp_ms

        if self._profile is None:
            profile = self._match(snapshot)
            if profile is None:
                return events
            self._start(profile, snapshot, events)
            self._check_form(snapshot, events)
            return events

        profile = self._profile
        angle = profile.primary_angle(snapshot)
        if angle is None:
            self._state.missing_frames += 1
            if self._state.missing_frames >= self._config.subject_loss_frames:
                self._lose_subject(ts, events)
            return events

        self._state.missing_frames = 0
        self._state.observe_angle(angle)
        self._check_form(snapshot, events)
        self._advance(angle, ts, events)
        return events

    # ==================== INTERNALS ====================

    def _match(self, snapshot: MetricsSnapshot) -> Optional[ExerciseProfile]:
        candidates = [self._pinned] if self._pinned else self._profiles
        matched = [p for p in candidates if p.matches_start(snapshot)]
        if not matched:
            return None
        if len(matched) > 1:
            logger.debug(
                "[PHASE] Ambiguous start at %d: %s, taking '%s'",
                snapshot.timestamp_ms, [p.name for p in matched], matched[0].name,
            )
        return matched[0]

    def _start(self, profile: ExerciseProfile, snapshot: MetricsSnapshot, events: List[EngineEvent]) -> None:
        ts = snapshot.timestamp_ms
        angle = profile.primary_angle(snapshot)
        self._profile = profile
        state = self._state
        state.exercise = profile.name
        state.phase_index = 0
        state.phase = profile.phases[0].name
        state.phase_start_ms = ts
        state.missing_frames = 0
        state.primary_angle = angle
        state.begin_rep(ts, angle)
        logger.info("[PHASE] Exercise matched: %s", profile.name)
        events.append(PhaseChangedEvent(profile.name, IDLE_PHASE, state.phase, ts))

    def _advance(self, angle: float, ts: int, events: List[EngineEvent]) -> None:
        profile = self._profile
        state = self._state
        current = profile.phases[state.phase_index]
        if not current.is_exited(angle):
            return
        if ts - state.phase_start_ms < current.min_duration_ms:
            return

        next_index = (state.phase_index + 1) % len(profile.phases)
        next_phase = profile.phases[next_index].name
        events.append(PhaseChangedEvent(profile.name, current.name, next_phase, ts))
        logger.debug("[PHASE] %s: %s -> %s (%.1f deg)", profile.name, current.name, next_phase, angle)
        state.phase_index = next_index
        state.phase = next_phase
        state.phase_start_ms = ts

        if next_index == 0:
            self._complete_rep(angle, ts, events)

    def _complete_rep(self, angle: float, ts: int, events: List[EngineEvent]) -> None:
        profile = self._profile
        state = self._state
        duration = ts - state.rep_start_ms
        if duration >= profile.min_rep_duration_ms:
            state.rep_count += 1
            rom = 0.0
            if state.rep_min_angle is not None and state.rep_max_angle is not None:
                rom = state.rep_max_angle - state.rep_min_angle
            events.append(RepCompletedEvent(
                exercise=profile.name,
                rep_count=state.rep_count,
                form_score=state.form_score,
                range_of_motion=rom,
                duration_ms=duration,
                timestamp_ms=ts,
                warnings=tuple(state.rep_warnings),
            ))
            logger.info("[PHASE] %s rep %d completed (%d ms)", profile.name, state.rep_count, duration)
        else:
            logger.debug("[PHASE] %s cycle ignored: %d ms is too fast", profile.name, duration)
        state.begin_rep(ts, angle)

    def _check_form(self, snapshot: MetricsSnapshot, events: List[EngineEvent]) -> None:
        profile = self._profile
        state = self._state
        results = [check.evaluate(snapshot, state.phase) for check in profile.form_checks]
        score = score_results(results)
        if score is not None:
            state.form_total += score
            state.form_frames += 1

        messages = failed_messages(results)
        for message in messages:
            if message not in state.rep_warnings:
                state.rep_warnings.append(message)
        if messages and messages != state.active_warnings:
            events.append(FormWarningEvent(profile.name, messages, snapshot.timestamp_ms))
        state.active_warnings = messages

    def _lose_subject(self, ts: int, events: List[EngineEvent]) -> None:
        name = self._profile.name
        logger.warning("[PHASE] Subject lost while tracking %s, returning to idle", name)
        events.append(PhaseChangedEvent(name, self._state.phase, IDLE_PHASE, ts))
        self._state = ExerciseState()
        self._profile = None

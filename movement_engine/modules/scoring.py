"""
Scoring Module.

Per-rep scores and the session summary built from RepCompletedEvent:
1. Form score: mean frame form score of the rep
2. ROM: spread of the primary angle during the rep
3. Stability: hip-midpoint stability at rep completion

ROM trend across reps doubles as a fatigue hint: a clear drop between the
first and last third of the session is reported as a recommendation.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from .events import RepCompletedEvent


# Fraction of ROM lost between first and last third that counts as fatigue
ROM_DROP_RATIO = 0.15
LOW_FORM_SCORE = 70.0


@dataclass
class RepScore:
    """
    Score of one repetition.

    Attributes:
        rep_number: Repetition index (1-based).
        exercise: Exercise name.
        form_score: Mean form score (0-100), None if no check applied.
        range_of_motion: Primary angle spread (degrees).
        stability_score: Stability at completion (0-100), None if not measured.
        duration_ms: Duration of the rep.
        warnings: Form warnings raised during the rep.
    """
    rep_number: int
    exercise: str
    form_score: Optional[float] = None
    range_of_motion: float = 0.0
    stability_score: Optional[float] = None
    duration_ms: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rep_number": self.rep_number,
            "exercise": self.exercise,
            "form_score": round(self.form_score, 1) if self.form_score is not None else None,
            "range_of_motion": round(self.range_of_motion, 1),
            "stability_score": round(self.stability_score, 1) if self.stability_score is not None else None,
            "duration_ms": self.duration_ms,
            "warnings": list(self.warnings),
        }


@dataclass
class SessionReport:
    """
    Session summary.

    Attributes:
        session_id: Engine instance / session identifier.
        start_time_ms: Timestamp of the first processed frame.
        end_time_ms: Timestamp of the last processed frame.
        total_reps: Repetitions over all exercises.
        reps_by_exercise: Repetitions per exercise.
        rep_scores: Score of each rep in order.
        average_scores: Means of form score, ROM and duration.
        recommendations: Plain-language advice.
    """
    session_id: str
    start_time_ms: int = 0
    end_time_ms: int = 0
    total_reps: int = 0
    reps_by_exercise: Dict[str, int] = field(default_factory=dict)
    rep_scores: List[RepScore] = field(default_factory=list)
    average_scores: Dict[str, float] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "start_time_ms": self.start_time_ms,
            "end_time_ms": self.end_time_ms,
            "duration_seconds": round(max(0, self.end_time_ms - self.start_time_ms) / 1000.0, 1),
            "total_reps": self.total_reps,
            "reps_by_exercise": dict(self.reps_by_exercise),
            "rep_scores": [r.to_dict() for r in self.rep_scores],
            "average_scores": {k: round(v, 1) for k, v in self.average_scores.items()},
            "recommendations": list(self.recommendations),
        }


class SessionScorer:
    """
    Collects RepScore entries for one session.

    Example:
        >>> scorer = SessionScorer()
        >>> scorer.record_rep(event, stability=92.0)
        >>> scorer.build_report("session-1").total_reps
    """

    def __init__(self):
        self._reps: List[RepScore] = []
        self._first_ts: Optional[int] = None
        self._last_ts: Optional[int] = None

    @property
    def reps(self) -> List[RepScore]:
        return list(self._reps)

    def observe_frame(self, timestamp_ms: int) -> None:
        if self._first_ts is None:
            self._first_ts = timestamp_ms
        self._last_ts = timestamp_ms

    def record_rep(self, event: RepCompletedEvent, stability: Optional[float] = None) -> RepScore:
        score = RepScore(
            rep_number=len(self._reps) + 1,
            exercise=event.exercise,
            form_score=event.form_score,
            range_of_motion=event.range_of_motion,
            stability_score=stability,
            duration_ms=event.duration_ms,
            warnings=list(event.warnings),
        )
        self._reps.append(score)
        return score

    def reset(self) -> None:
        self._reps = []
        self._first_ts = None
        self._last_ts = None

    def build_report(self, session_id: str) -> SessionReport:
        report = SessionReport(
            session_id=session_id,
            start_time_ms=self._first_ts or 0,
            end_time_ms=self._last_ts or 0,
            total_reps=len(self._reps),
            rep_scores=list(self._reps),
        )
        for rep in self._reps:
            report.reps_by_exercise[rep.exercise] = report.reps_by_exercise.get(rep.exercise, 0) + 1
        if not self._reps:
            return report

        form_scores = [r.form_score for r in self._reps if r.form_score is not None]
        if form_scores:
            report.average_scores["form_score"] = float(np.mean(form_scores))
        report.average_scores["range_of_motion"] = float(np.mean([r.range_of_motion for r in self._reps]))
        report.average_scores["duration_ms"] = float(np.mean([r.duration_ms for r in self._reps]))
        report.recommendations = self._recommendations(report)
        return report

    def _recommendations(self, report: SessionReport) -> List[str]:
        tips: List[str] = []
        form = report.average_scores.get("form_score")
        if form is not None and form < LOW_FORM_SCORE:
            tips.append("Slow down and focus on form before adding repetitions")

        roms = [r.range_of_motion for r in self._reps]
        if len(roms) >= 3:
            third = max(1, len(roms) // 3)
            early = float(np.mean(roms[:third]))
            late = float(np.mean(roms[-third:]))
            if early > 0 and (early - late) / early > ROM_DROP_RATIO:
                tips.append("Range of motion is dropping; consider a short rest")

        warning_counts: Dict[str, int] = {}
        for rep in self._reps:
            for message in rep.warnings:
                warning_counts[message] = warning_counts.get(message, 0) + 1
        if warning_counts:
            most_common = max(warning_counts.items(), key=lambda item: item[1])[0]
            tips.append(f"Most frequent cue: {most_common}")
        return tips

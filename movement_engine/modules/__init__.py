"""
Exercise-level modules: profiles, form checks, phase tracking, scoring, feedback.
"""

from .events import EngineEvent, EventType, FormWarningEvent, PhaseChangedEvent, RepCompletedEvent
from .form_checks import (
    AlignmentCheck, AngleRangeCheck, FormCheck, FormCheckResult, HingeCheck, LevelnessCheck,
    SpineLeanCheck, SymmetryCheck, score_results,
)
from .profiles import (
    AngleRange, ExerciseProfile, ExerciseProfileConfig, ExitDirection, PhaseDefinition,
    create_bicep_curl_profile, create_hip_hinge_profile, create_pushup_profile,
    create_squat_profile, default_profiles, load_profiles, load_profiles_file,
)
from .phase_tracker import IDLE_PHASE, ExercisePhaseStateMachine, ExerciseState, ExerciseStatus
from .scoring import RepScore, SessionReport, SessionScorer
from .feedback import PostureAdvisor, PostureFeedback

__all__ = [
    # Events
    'EngineEvent', 'EventType', 'FormWarningEvent', 'PhaseChangedEvent', 'RepCompletedEvent',

    # Form checks
    'AlignmentCheck', 'AngleRangeCheck', 'FormCheck', 'FormCheckResult', 'HingeCheck',
    'LevelnessCheck', 'SpineLeanCheck', 'SymmetryCheck', 'score_results',

    # Profiles
    'AngleRange', 'ExerciseProfile', 'ExerciseProfileConfig', 'ExitDirection', 'PhaseDefinition',
    'create_bicep_curl_profile', 'create_hip_hinge_profile', 'create_pushup_profile',
    'create_squat_profile', 'default_profiles', 'load_profiles', 'load_profiles_file',

    # Phase tracking
    'IDLE_PHASE', 'ExercisePhaseStateMachine', 'ExerciseState', 'ExerciseStatus',

    # Scoring / feedback
    'RepScore', 'SessionReport', 'SessionScorer', 'PostureAdvisor', 'PostureFeedback',
]

"""
Movement Analysis Engine.

Confidence-gated joint metrics, exercise phase tracking and repetition
counting over a stream of 33-point pose landmark frames.
"""

from .core import (
    BodySegment, EngineSettings, JointType, Landmark, LandmarkFrame, MetricsEngine,
    MetricsSnapshot, PoseLandmarkIndex, load_settings,
)
from .helpers import (
    MovementEngineError, ProfileConfigurationError, UnknownExerciseError, UnknownJointError,
)
from .modules import (
    EventType, ExercisePhaseStateMachine, ExerciseProfile, FormWarningEvent, PhaseChangedEvent,
    RepCompletedEvent, default_profiles, load_profiles,
)
from .service import EngineOutput, MovementEngine
from .utils import configure_logging

__version__ = "1.0.0"

__all__ = [
    'BodySegment', 'EngineSettings', 'JointType', 'Landmark', 'LandmarkFrame', 'MetricsEngine',
    'MetricsSnapshot', 'PoseLandmarkIndex', 'load_settings',
    'MovementEngineError', 'ProfileConfigurationError', 'UnknownExerciseError', 'UnknownJointError',
    'EventType', 'ExercisePhaseStateMachine', 'ExerciseProfile', 'FormWarningEvent',
    'PhaseChangedEvent', 'RepCompletedEvent', 'default_profiles', 'load_profiles',
    'EngineOutput', 'MovementEngine', 'configure_logging',
]

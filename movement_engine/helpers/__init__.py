from .exceptions import (
    MovementEngineError, ProfileConfigurationError, UnknownExerciseError, UnknownJointError
)

__all__ = [
    'MovementEngineError', 'ProfileConfigurationError', 'UnknownExerciseError', 'UnknownJointError',
]

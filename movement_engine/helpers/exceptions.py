"""
Engine exceptions.

Only configuration mistakes raise. Per-frame processing degrades to absent
metrics instead of raising.
"""

from typing import Optional


class MovementEngineError(Exception):
    code = '000'
    message = 'Movement engine error'

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        if code:
            self.code = code
        if message:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ProfileConfigurationError(MovementEngineError):
    code = '100'
    message = 'Invalid exercise profile'


class UnknownExerciseError(MovementEngineError):
    code = '101'
    message = 'Unknown exercise'


class UnknownJointError(MovementEngineError):
    code = '102'
    message = 'Unknown joint'

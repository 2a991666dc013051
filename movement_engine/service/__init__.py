from .engine_service import EngineState, EventListener, MovementEngine
from .schemas import EngineOutput

__all__ = ['EngineOutput', 'EngineState', 'EventListener', 'MovementEngine']

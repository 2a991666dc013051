"""
Posture feedback independent of any exercise.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.config import FeedbackConfig
from ..core.metrics import MetricsSnapshot


@dataclass(frozen=True)
class PostureFeedback:
    type: str
    message: str

    def to_dict(self) -> Dict:
        return {"type": self.type, "message": self.message}


class PostureAdvisor:
    """Turns posture metrics into short cues ("Straighten your back", ...)."""

    def __init__(self, config: Optional[FeedbackConfig] = None):
        self._config = config or FeedbackConfig()

    def evaluate(self, snapshot: MetricsSnapshot, check_spine: bool = True) -> List[PostureFeedback]:
        """
        Args:
            snapshot: Metrics of the current frame.
            check_spine: False while tracking an exercise performed lying down.
        """
        if not self._config.enabled:
            return []
        feedback: List[PostureFeedback] = []
        posture = snapshot.posture

        if check_spine and posture.spine_angle is not None and posture.spine_angle > self._config.max_spine_lean:
            feedback.append(PostureFeedback("warning", "Straighten your back"))

        if posture.shoulder_level is not None and abs(posture.shoulder_level) > self._config.max_shoulder_tilt:
            feedback.append(PostureFeedback("warning", "Level your shoulders"))

        return feedback

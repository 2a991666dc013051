"""
Temporal History Module.

Fixed-capacity per-joint angle buffers plus a center-of-mass position
window. Answers range-of-motion, rate-of-change, smoothness and stability
queries over the most recent samples.

Floors for short histories are deliberate values, not errors:
    - range of motion: 0 with fewer than 2 samples
    - stability: 100 with fewer than 2 samples
    - smoothness: 100 with fewer than 3 samples
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Union

import numpy as np

from .config import HistoryConfig
from .data_types import JointType, Landmark


JointKey = Union[JointType, str]


def _key(joint: JointKey) -> str:
    return joint.value if isinstance(joint, JointType) else str(joint)


def _elapsed_seconds(t_prev: int, t_last: int, mode: str, assumed_interval_s: float) -> float:
    if mode == "fixed":
        return assumed_interval_s
    dt = (t_last - t_prev) / 1000.0
    return dt if dt > 0 else assumed_interval_s


@dataclass(frozen=True)
class AngleSample:
    angle: float
    timestamp_ms: int


class AngleHistory:
    """
    Bounded FIFO of one joint's angle samples.

    Length never exceeds capacity; the oldest sample is evicted first.
    """

    def __init__(self, capacity: int = 30):
        self._samples: Deque[AngleSample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    def __len__(self) -> int:
        return len(self._samples)

    def push(self, angle: float, timestamp_ms: int = 0) -> None:
        self._samples.append(AngleSample(float(angle), int(timestamp_ms)))

    def values(self) -> List[float]:
        return [s.angle for s in self._samples]

    @property
    def latest(self) -> Optional[AngleSample]:
        return self._samples[-1] if self._samples else None

    def clear(self) -> None:
        self._samples.clear()

    def range_of_motion(self) -> float:
        if len(self._samples) < 2:
            return 0.0
        values = self.values()
        return max(values) - min(values)

    def rate_of_change(self, mode: str = "timestamps", assumed_interval_s: float = 0.5) -> Optional[float]:
        """Degrees per second between the last two samples."""
        if len(self._samples) < 2:
            return None
        prev, last = self._samples[-2], self._samples[-1]
        dt = _elapsed_seconds(prev.timestamp_ms, last.timestamp_ms, mode, assumed_interval_s)
        return (last.angle - prev.angle) / dt

    def smoothness(self, scale: float = 10.0) -> float:
        """100 for steady motion, falling with the mean absolute second difference."""
        if len(self._samples) < 3:
            return 100.0
        jerk = float(np.mean(np.abs(np.diff(np.array(self.values()), n=2))))
        return 100.0 * (1.0 - min(1.0, jerk / scale))


class TemporalHistory:
    """
    All temporal state of one tracked subject.

    Example:
        >>> history = TemporalHistory(HistoryConfig(capacity=3))
        >>> for angle in (60, 90, 75):
        ...     history.push(JointType.LEFT_KNEE, angle)
        >>> history.range_of_motion(JointType.LEFT_KNEE)
        30.0
    """

    def __init__(self, config: Optional[HistoryConfig] = None):
        self._config = config or HistoryConfig()
        self._joints: Dict[str, AngleHistory] = {}
        self._positions: Deque[Landmark] = deque(maxlen=self._config.capacity)
        self._position_times: Deque[int] = deque(maxlen=self._config.capacity)

    @property
    def capacity(self) -> int:
        return self._config.capacity

    # ==================== ANGLES ====================

    def push(self, joint: JointKey, angle: float, timestamp_ms: int = 0) -> None:
        key = _key(joint)
        if key not in self._joints:
            self._joints[key] = AngleHistory(self._config.capacity)
        self._joints[key].push(angle, timestamp_ms)

    def history(self, joint: JointKey) -> AngleHistory:
        """Buffer for a joint; an empty one if the joint was never pushed."""
        return self._joints.get(_key(joint)) or AngleHistory(self._config.capacity)

    def joints(self) -> List[str]:
        return list(self._joints.keys())

    def range_of_motion(self, joint: JointKey) -> float:
        return self.history(joint).range_of_motion()

    def rate_of_change(self, joint: JointKey) -> Optional[float]:
        return self.history(joint).rate_of_change(
            self._config.rate_interval_mode, self._config.assumed_interval_s
        )

    def smoothness(self, joint: JointKey) -> float:
        return self.history(joint).smoothness(self._config.smoothness_scale)

    # ==================== POSITIONS ====================

    def push_position(self, point: Landmark, timestamp_ms: int = 0) -> None:
        """Record a center-of-mass reference point (usually the hip midpoint)."""
        self._positions.append(point)
        self._position_times.append(int(timestamp_ms))

    @property
    def position_count(self) -> int:
        return len(self._positions)

    def stability(self) -> float:
        """
        Inverse positional variance over the window, bounded 0-100.

        100 with fewer than 2 samples.
        """
        if len(self._positions) < 2:
            return 100.0
        var_x = float(np.var([p.x for p in self._positions]))
        var_y = float(np.var([p.y for p in self._positions]))
        spread = float(np.sqrt(var_x ** 2 + var_y ** 2))
        return 100.0 * (1.0 - min(1.0, spread / self._config.stability_variance_scale))

    def center_speed(self) -> Optional[float]:
        """Speed of the reference point (normalized units per second)."""
        if len(self._positions) < 2:
            return None
        prev, last = self._positions[-2], self._positions[-1]
        dt = _elapsed_seconds(
            self._position_times[-2], self._position_times[-1],
            self._config.rate_interval_mode, self._config.assumed_interval_s,
        )
        return float(np.hypot(last.x - prev.x, last.y - prev.y)) / dt

    def clear(self) -> None:
        self._joints.clear()
        self._positions.clear()
        self._position_times.clear()

"""Time- and count-bounded buffer of recent 2D trail points."""
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterator, Optional, Tuple

from ..math.constants import TRAIL_MAX_POINTS, TRAIL_TIME_WINDOW_S


@dataclass(frozen=True)
class TrailPoint:
    """Single trail point; every instance has its own id."""
    x: float
    y: float
    timestamp: float  # seconds, same clock as the sensor samples
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def age(self, now: float) -> float:
        return now - self.timestamp


class TrailBuffer:
    """Ordered trail points, oldest first."""

    def __init__(self, max_points: int = TRAIL_MAX_POINTS,
                 time_window: float = TRAIL_TIME_WINDOW_S):
        """
        Initialize trail buffer.

        Args:
            max_points: Maximum number of points kept
            time_window: Points this old or older are dropped (seconds)
        """
        if max_points < 1:
            raise ValueError("max_points must be at least 1")
        if time_window <= 0:
            raise ValueError("time_window must be positive")
        self.max_points = max_points
        self.time_window = time_window
        self._points: Deque[TrailPoint] = deque()
        self._latest_time: Optional[float] = None

    def push(self, point: TrailPoint, now: float | None = None) -> None:
        """
        Append a point, then prune by age and by count.

        Args:
            point: New trail point
            now: Prune reference time; defaults to the newest timestamp seen
        """
        self._points.append(point)

        reference = point.timestamp if now is None else now
        if self._latest_time is not None:
            reference = max(reference, self._latest_time)
        self._latest_time = reference

        self._points = deque(p for p in self._points
                             if reference - p.timestamp < self.time_window)

        while len(self._points) > self.max_points:
            self._points.popleft()

    def add(self, x: float, y: float, timestamp: float) -> TrailPoint:
        """Create and push a point for (x, y) at timestamp."""
        point = TrailPoint(x=x, y=y, timestamp=timestamp)
        self.push(point)
        return point

    def clear(self) -> None:
        """Remove all points."""
        self._points.clear()
        self._latest_time = None

    def points(self) -> Tuple[TrailPoint, ...]:
        """Snapshot of the current points, oldest first."""
        return tuple(self._points)

    @property
    def latest(self) -> TrailPoint | None:
        return self._points[-1] if self._points else None

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[TrailPoint]:
        return iter(tuple(self._points))

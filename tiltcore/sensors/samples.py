"""
Sensor sample types delivered by the motion driver.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from ..math.utils import magnitude

@dataclass(frozen=True)
class Vector3:
    """3-axis vector (g units for acceleration and gravity)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def as_array(self) -> np.ndarray:
        """Get vector as numpy array."""
        return np.array([self.x, self.y, self.z], dtype=float)

    @classmethod
    def from_array(cls, values) -> 'Vector3':
        """Build a vector from any length-3 sequence."""
        if len(values) != 3:
            raise ValueError("Vector must have 3 elements")
        return cls(x=float(values[0]), y=float(values[1]), z=float(values[2]))

    @property
    def magnitude(self) -> float:
        return magnitude(self.x, self.y, self.z)

@dataclass(frozen=True)
class Quaternion:
    """Unit attitude quaternion (x, y, z, w)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

@dataclass(frozen=True)
class AccelerationSample:
    """Raw accelerometer reading."""

    # Acceleration (g)
    x: float
    y: float
    z: float

    # Driver timestamp (seconds)
    timestamp: float

    @property
    def acceleration(self) -> np.ndarray:
        """Get acceleration as numpy array."""
        return np.array([self.x, self.y, self.z], dtype=float)

@dataclass(frozen=True)
class AttitudeSample:
    """Device-motion reading: attitude, gravity and rotation rate."""

    quaternion: Quaternion
    gravity: Vector3

    # Rotation rate about X (pitch) and Y (roll) in rad/s
    rotation_rate: Tuple[float, float]

    # Driver timestamp (seconds)
    timestamp: float

    @property
    def pitch_rate(self) -> float:
        return self.rotation_rate[0]

    @property
    def roll_rate(self) -> float:
        return self.rotation_rate[1]

@dataclass(frozen=True)
class AdjustedAcceleration:
    """
    Offset-corrected (and usually smoothed) acceleration reading
    published to the presentation layer.
    """

    x: float
    y: float
    z: float
    timestamp: float

    @classmethod
    def from_sample(cls, sample: AccelerationSample, offset: Vector3,
                    smoothed: Optional[np.ndarray] = None) -> 'AdjustedAcceleration':
        """
        Build an adjusted reading from a raw sample.

        Args:
            sample: Raw accelerometer sample
            offset: Calibration offset to subtract
            smoothed: Already smoothed vector; used verbatim when given

        Returns:
            AdjustedAcceleration carrying the sample's timestamp
        """
        if smoothed is not None:
            return cls(x=float(smoothed[0]), y=float(smoothed[1]), z=float(smoothed[2]),
                       timestamp=sample.timestamp)

        return cls(
            x=sample.x - offset.x,
            y=sample.y - offset.y,
            z=sample.z - offset.z,
            timestamp=sample.timestamp
        )

    @property
    def acceleration(self) -> np.ndarray:
        """Get acceleration as numpy array."""
        return np.array([self.x, self.y, self.z], dtype=float)

    @property
    def magnitude(self) -> float:
        """Total acceleration in g."""
        return magnitude(self.x, self.y, self.z)

"""
Mathematical utilities for tilt estimation.
"""

from .utils import (
    radians_to_degrees,
    clamp,
    magnitude,
    normalize_pitch,
    normalize_roll,
    trail_position,
)
from .attitude import pitch_from_quaternion, lateral_roll
from .constants import *

__all__ = [
    "radians_to_degrees",
    "clamp",
    "magnitude",
    "normalize_pitch",
    "normalize_roll",
    "trail_position",
    "pitch_from_quaternion",
    "lateral_roll",
]

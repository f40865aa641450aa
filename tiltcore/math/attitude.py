"""
Attitude math: pitch from a unit quaternion and lateral roll from gravity.

Both functions are pure and return degrees.
"""

import math

from .constants import MIN_VERTICAL_GRAVITY
from .utils import radians_to_degrees

def pitch_from_quaternion(quaternion) -> float:
    """
    Pitch angle from a unit attitude quaternion.
    
    Distinguishes forward from backward tilt over the full [-180, 180] range.
    
    Args:
        quaternion: Object with x, y, z, w components
        
    Returns:
        float: Pitch in degrees
    """
    q = quaternion
    pitch_radians = math.atan2(2.0 * (q.x * q.w + q.y * q.z),
                               1.0 - 2.0 * q.x * q.x - 2.0 * q.z * q.z)
    return radians_to_degrees(pitch_radians)

def lateral_roll(gravity) -> float:
    """
    Left/right roll angle from the gravity vector, independent of pitch.
    
    Args:
        gravity: Object with x, y, z components (g)
        
    Returns:
        float: Roll in degrees, or exactly 0.0 when the vertical
        component of gravity is too small to give a roll signal
    """
    vertical_magnitude = math.sqrt(gravity.y * gravity.y + gravity.z * gravity.z)
    if vertical_magnitude <= MIN_VERTICAL_GRAVITY:
        return 0.0
    return radians_to_degrees(math.atan2(gravity.x, vertical_magnitude))

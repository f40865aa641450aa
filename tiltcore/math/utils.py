"""
Mathematical utility functions for tilt estimation.
"""

import math

from .constants import (
    RAD_TO_DEG,
    PITCH_GAUGE_RANGE_DEG,
    ROLL_GAUGE_RANGE_DEG,
    TRAIL_GAUGE_RANGE_G,
)

def radians_to_degrees(radians):
    """Convert radians to degrees."""
    return radians * RAD_TO_DEG

def clamp(value, lower, upper):
    """
    Limit a value to the closed range [lower, upper].
    
    Args:
        value (float): Value to limit
        lower (float): Lower bound
        upper (float): Upper bound
        
    Returns:
        float: Clamped value
    """
    return max(lower, min(upper, value))

def magnitude(x, y, z):
    """
    Euclidean norm of a 3-axis vector.
    
    Args:
        x, y, z: Vector components
        
    Returns:
        float: sqrt(x² + y² + z²)
    """
    return math.sqrt(x * x + y * y + z * z)

def normalize_pitch(pitch):
    """Limit a pitch angle (degrees) to the pitch gauge range."""
    return clamp(pitch, -PITCH_GAUGE_RANGE_DEG, PITCH_GAUGE_RANGE_DEG)

def normalize_roll(roll):
    """Limit a roll angle (degrees) to the roll gauge range."""
    return clamp(roll, -ROLL_GAUGE_RANGE_DEG, ROLL_GAUGE_RANGE_DEG)

def trail_position(value, max_range=TRAIL_GAUGE_RANGE_G):
    """
    Map an acceleration component onto the bullseye gauge.
    
    Args:
        value (float): Acceleration component (g)
        max_range (float): Acceleration shown at the gauge edge (g)
        
    Returns:
        float: Position in [-1, 1] as a fraction of the gauge radius
    """
    if max_range <= 0:
        raise ValueError("max_range must be positive")
    return clamp(value / max_range, -1.0, 1.0)

"""
Mutable filter state owned by a sensor session.
"""

import numpy as np
from dataclasses import dataclass, field

@dataclass
class FusionState:
    """
    Running output of the complementary filter.
    
    - current_pitch_degrees, current_roll_degrees: offset-corrected angles
    - last_attitude_timestamp: timestamp of the previous attitude sample,
      0.0 while no sample has been seen since the last reset
    """
    
    current_pitch_degrees: float = 0.0
    current_roll_degrees: float = 0.0
    last_attitude_timestamp: float = 0.0
    
    @property
    def is_initialized(self) -> bool:
        return self.last_attitude_timestamp != 0.0
    
    def reset(self):
        """Zero all fields."""
        self.current_pitch_degrees = 0.0
        self.current_roll_degrees = 0.0
        self.last_attitude_timestamp = 0.0
    
    def copy(self) -> 'FusionState':
        """Create a copy of the state."""
        return FusionState(
            current_pitch_degrees=self.current_pitch_degrees,
            current_roll_degrees=self.current_roll_degrees,
            last_attitude_timestamp=self.last_attitude_timestamp
        )
    
    def __str__(self) -> str:
        return (
            f"FusionState(pitch={self.current_pitch_degrees:.2f}, "
            f"roll={self.current_roll_degrees:.2f}, "
            f"t={self.last_attitude_timestamp:.3f})"
        )

@dataclass
class SmoothingState:
    """Previous output of the acceleration low-pass filter."""
    
    previous_smoothed: np.ndarray = field(default_factory=lambda: np.zeros(3))
    
    def reset(self):
        """Return the filter to rest."""
        self.previous_smoothed = np.zeros(3)
    
    @property
    def is_at_rest(self) -> bool:
        return not np.any(self.previous_smoothed)

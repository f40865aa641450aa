"""
Exponential moving-average low-pass filter for 3-axis acceleration.
"""

import numpy as np
from typing import Optional

from .state import SmoothingState
from ..math.constants import SMOOTHING_FACTOR

class SmoothingFilter:
    """
    Low-pass filter: smoothed = previous + factor * (incoming - previous).
    
    Lower factors smooth more, higher factors respond faster.
    """
    
    def __init__(self, factor: float = SMOOTHING_FACTOR,
                 state: Optional[SmoothingState] = None):
        """
        Initialize the filter.
        
        Args:
            factor: Smoothing factor in (0, 1]
            state: Shared state object (created if None)
        """
        if not 0.0 < factor <= 1.0:
            raise ValueError(f"Smoothing factor must be in (0, 1], got {factor}")
        
        self.factor = factor
        self.state = state or SmoothingState()
    
    @staticmethod
    def smooth(previous: np.ndarray, incoming: np.ndarray, factor: float) -> np.ndarray:
        """Apply one filter step without touching any state."""
        previous = np.asarray(previous, dtype=float)
        incoming = np.asarray(incoming, dtype=float)
        return previous + factor * (incoming - previous)
    
    def apply(self, incoming: np.ndarray) -> np.ndarray:
        """
        Filter a new reading and remember the result.
        
        Args:
            incoming: Acceleration [x, y, z]
            
        Returns:
            Smoothed acceleration [x, y, z]
        """
        smoothed = self.smooth(self.state.previous_smoothed, incoming, self.factor)
        self.state.previous_smoothed = smoothed
        return smoothed.copy()
    
    def reset(self):
        """Reset the filter to rest (all zeros)."""
        self.state.reset()
    
    @property
    def previous(self) -> np.ndarray:
        return self.state.previous_smoothed.copy()

"""
Acceleration smoothing and pitch/roll fusion filters.
"""

from .smoothing import SmoothingFilter
from .fusion import ComplementaryFusion
from .state import FusionState, SmoothingState

__all__ = ["SmoothingFilter", "ComplementaryFusion", "FusionState", "SmoothingState"]

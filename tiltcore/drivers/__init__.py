"""
Motion drivers: the interface the session consumes and two implementations.
"""

from .base import MotionDriver, Subscription
from .manual import ManualMotionDriver
from .simulated import SimulatedMotionDriver

__all__ = ["MotionDriver", "Subscription", "ManualMotionDriver", "SimulatedMotionDriver"]

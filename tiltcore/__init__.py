"""
Tilt estimation core for a motion sensor dashboard.

This module provides platform-independent implementations of:
- Acceleration low-pass smoothing
- Complementary pitch/roll fusion with deadband and clamping
- Multi-sample zero-offset calibration
- A time- and count-bounded motion trail
- The sensor session state machine that sequences them
"""

__version__ = "1.0.0"
__author__ = "Sensor Dashboard Team"

from .session import SensorSession, SensorState, SessionSnapshot
from .filters import SmoothingFilter, ComplementaryFusion, FusionState, SmoothingState
from .sensors import (
    AccelerationSample,
    AttitudeSample,
    AdjustedAcceleration,
    CalibrationOffset,
    CalibrationProcedure,
    Quaternion,
    TrailBuffer,
    TrailPoint,
    Vector3,
)
from .drivers import MotionDriver, ManualMotionDriver, SimulatedMotionDriver
from .scheduling import TimerScheduler, ManualScheduler
from .math import pitch_from_quaternion, lateral_roll, radians_to_degrees, magnitude

__all__ = [
    "SensorSession",
    "SensorState",
    "SessionSnapshot",
    "SmoothingFilter",
    "ComplementaryFusion",
    "FusionState",
    "SmoothingState",
    "AccelerationSample",
    "AttitudeSample",
    "AdjustedAcceleration",
    "CalibrationOffset",
    "CalibrationProcedure",
    "Quaternion",
    "TrailBuffer",
    "TrailPoint",
    "Vector3",
    "MotionDriver",
    "ManualMotionDriver",
    "SimulatedMotionDriver",
    "TimerScheduler",
    "ManualScheduler",
    "pitch_from_quaternion",
    "lateral_roll",
    "radians_to_degrees",
    "magnitude",
]

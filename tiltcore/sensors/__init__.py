"""
Sensor samples, calibration and trail data structures.
"""

from .samples import (
    Vector3,
    Quaternion,
    AccelerationSample,
    AttitudeSample,
    AdjustedAcceleration,
)
from .calibration import CalibrationOffset, CalibrationProcedure
from .trail import TrailPoint, TrailBuffer

__all__ = [
    "Vector3",
    "Quaternion",
    "AccelerationSample",
    "AttitudeSample",
    "AdjustedAcceleration",
    "CalibrationOffset",
    "CalibrationProcedure",
    "TrailPoint",
    "TrailBuffer",
]

"""
Multi-sample zero-offset calibration for acceleration, pitch and roll.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .samples import Vector3, AccelerationSample, AttitudeSample
from ..math.attitude import pitch_from_quaternion, lateral_roll
from ..math.constants import CALIBRATION_SAMPLE_COUNT, GRAVITY_G

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class CalibrationOffset:
    """Zero offsets computed by one calibration run."""
    
    accel: Vector3 = field(default_factory=Vector3)
    pitch_degrees: float = 0.0
    roll_degrees: float = 0.0
    
    @classmethod
    def zero(cls) -> 'CalibrationOffset':
        return cls()
    
    def __str__(self) -> str:
        return (
            f"CalibrationOffset(accel=[{self.accel.x:.3f}, {self.accel.y:.3f}, {self.accel.z:.3f}] g, "
            f"pitch={self.pitch_degrees:.2f}°, roll={self.roll_degrees:.2f}°)"
        )

class CalibrationProcedure:
    """
    Collects a fixed number of raw acceleration and attitude samples while
    the device rests, then derives the zero offsets.
    
    Completion fires once, on whichever sample brings all three counters
    (acceleration, pitch, roll) to the required count. Samples beyond the
    count on either stream are ignored. The procedure never times out; it
    stays incomplete for as long as samples do not arrive.
    """
    
    def __init__(self, sample_count: int = CALIBRATION_SAMPLE_COUNT,
                 on_complete: Optional[Callable[[CalibrationOffset], None]] = None):
        """
        Initialize calibration.
        
        Args:
            sample_count: Samples required from each stream
            on_complete: Called with the computed offset on completion
        """
        if sample_count < 1:
            raise ValueError(f"Calibration needs at least one sample, got {sample_count}")
        
        self.sample_count = sample_count
        self.on_complete = on_complete
        
        self.accel_samples: List[np.ndarray] = []
        self.pitch_samples: List[float] = []
        self.roll_samples: List[float] = []
        
        self.result: Optional[CalibrationOffset] = None
        self.cancelled = False
    
    @property
    def is_complete(self) -> bool:
        return self.result is not None
    
    @property
    def is_active(self) -> bool:
        return not (self.is_complete or self.cancelled)
    
    @property
    def progress(self) -> float:
        """Fraction of required samples collected, 0.0 to 1.0."""
        collected = (min(len(self.accel_samples), self.sample_count)
                     + min(len(self.pitch_samples), self.sample_count)
                     + min(len(self.roll_samples), self.sample_count))
        return collected / (3.0 * self.sample_count)
    
    def add_acceleration(self, sample: Optional[AccelerationSample]) -> bool:
        """
        Record a raw accelerometer sample.
        
        Returns:
            True if the sample was used
        """
        if sample is None or not self.is_active:
            return False
        if len(self.accel_samples) >= self.sample_count:
            return False
        
        self.accel_samples.append(sample.acceleration)
        self._check_complete()
        return True
    
    def add_attitude(self, sample: Optional[AttitudeSample]) -> bool:
        """
        Record quaternion pitch and gravity roll from an attitude sample.
        
        Returns:
            True if the sample was used
        """
        if sample is None or not self.is_active:
            return False
        if len(self.pitch_samples) >= self.sample_count:
            return False
        
        self.pitch_samples.append(pitch_from_quaternion(sample.quaternion))
        self.roll_samples.append(lateral_roll(sample.gravity))
        self._check_complete()
        return True
    
    def cancel(self):
        """Discard collected samples and ignore anything that arrives later."""
        self.cancelled = True
        self.accel_samples.clear()
        self.pitch_samples.clear()
        self.roll_samples.clear()
    
    def _check_complete(self):
        if (len(self.accel_samples) < self.sample_count or
                len(self.pitch_samples) < self.sample_count or
                len(self.roll_samples) < self.sample_count):
            return
        
        self.result = self.compute_offset(self.accel_samples, self.pitch_samples, self.roll_samples)
        
        logger.info("Calibration complete:")
        logger.info("  Accel offset: [%.3f, %.3f, %.3f] g",
                    self.result.accel.x, self.result.accel.y, self.result.accel.z)
        logger.info("  Pitch offset: %.2f°, roll offset: %.2f°",
                    self.result.pitch_degrees, self.result.roll_degrees)
        
        if self.on_complete is not None:
            self.on_complete(self.result)
    
    @staticmethod
    def compute_offset(accel_samples, pitch_samples, roll_samples) -> CalibrationOffset:
        """
        Derive offsets from collected samples.
        
        The Z axis keeps resting gravity out of the offset so a device
        lying flat reads zero net acceleration after correction.
        
        Args:
            accel_samples: Sequence of [x, y, z] readings (g)
            pitch_samples: Quaternion pitch readings (degrees)
            roll_samples: Gravity roll readings (degrees)
            
        Returns:
            CalibrationOffset
        """
        accel_mean = np.mean(np.asarray(accel_samples, dtype=float), axis=0)
        accel_offset = accel_mean.copy()
        accel_offset[2] -= GRAVITY_G
        
        return CalibrationOffset(
            accel=Vector3.from_array(accel_offset),
            pitch_degrees=float(np.mean(pitch_samples)),
            roll_degrees=float(np.mean(roll_samples))
        )

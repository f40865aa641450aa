"""
Complementary filter fusing gyroscope rate integration with
attitude-derived pitch and gravity-derived roll.
"""

import logging
from typing import Optional, Tuple

from .state import FusionState
from ..math.attitude import pitch_from_quaternion, lateral_roll
from ..math.constants import *
from ..math.utils import clamp

logger = logging.getLogger(__name__)

class ComplementaryFusion:
    """
    Stateful pitch/roll estimator, one instance per running session.
    
    Pitch leans on the quaternion attitude (15% gyro, 85% attitude); roll
    takes more of the gyro (40% gyro, 60% gravity) to smooth out gravity
    noise. Roll inside the deadband is forced to zero, and both outputs are
    clamped to +/-90 (pitch) and +/-45 (roll) degrees.
    """
    
    def __init__(self, state: Optional[FusionState] = None):
        """
        Initialize the estimator.
        
        Args:
            state: Shared state object (created if None)
        """
        self.state = state or FusionState()
        self.update_count = 0
    
    def update(self, sample, pitch_offset: float = 0.0,
               roll_offset: float = 0.0) -> Tuple[float, float]:
        """
        Fuse one attitude sample.
        
        Args:
            sample: AttitudeSample
            pitch_offset: Calibrated pitch zero (degrees)
            roll_offset: Calibrated roll zero (degrees)
            
        Returns:
            (pitch, roll) in degrees after fusion
        """
        state = self.state
        quaternion_pitch = pitch_from_quaternion(sample.quaternion)
        gravity_roll = lateral_roll(sample.gravity)
        self.update_count += 1
        
        # No gyro integration without a previous timestamp
        if not state.is_initialized:
            state.last_attitude_timestamp = sample.timestamp
            state.current_pitch_degrees = clamp(quaternion_pitch - pitch_offset,
                                                -PITCH_LIMIT_DEG, PITCH_LIMIT_DEG)
            state.current_roll_degrees = clamp(gravity_roll - roll_offset,
                                               -ROLL_LIMIT_DEG, ROLL_LIMIT_DEG)
            return state.current_pitch_degrees, state.current_roll_degrees
        
        dt = sample.timestamp - state.last_attitude_timestamp
        state.last_attitude_timestamp = sample.timestamp
        
        # Integrate gyro rates (rad/s) into degree deltas
        pitch_delta = sample.pitch_rate * dt * RAD_TO_DEG
        roll_delta = sample.roll_rate * dt * RAD_TO_DEG
        
        raw_pitch = (PITCH_GYRO_WEIGHT * (state.current_pitch_degrees + pitch_offset + pitch_delta)
                     + PITCH_ATTITUDE_WEIGHT * quaternion_pitch)
        pitch = raw_pitch - pitch_offset
        
        raw_roll = (ROLL_GYRO_WEIGHT * (state.current_roll_degrees + roll_offset + roll_delta)
                    + ROLL_GRAVITY_WEIGHT * gravity_roll)
        roll = raw_roll - roll_offset
        
        if abs(roll) < ROLL_DEADBAND_DEG:
            roll = 0.0
        
        state.current_pitch_degrees = clamp(pitch, -PITCH_LIMIT_DEG, PITCH_LIMIT_DEG)
        state.current_roll_degrees = clamp(roll, -ROLL_LIMIT_DEG, ROLL_LIMIT_DEG)
        
        return state.current_pitch_degrees, state.current_roll_degrees
    
    def reset(self):
        """Forget the previous sample and zero both angles."""
        self.state.reset()
        self.update_count = 0
    
    @property
    def pitch(self) -> float:
        return self.state.current_pitch_degrees
    
    @property
    def roll(self) -> float:
        return self.state.current_roll_degrees
    
    def get_statistics(self) -> dict:
        """Get estimator statistics."""
        return {
            'updates': self.update_count,
            'initialized': self.state.is_initialized,
            'pitch': self.state.current_pitch_degrees,
            'roll': self.state.current_roll_degrees
        }

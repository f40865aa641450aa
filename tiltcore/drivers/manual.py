"""
Driver fed by the caller, for replaying recorded samples and for tests.
"""

from typing import List, Optional

from .base import MotionDriver, Subscription, AccelerationHandler, AttitudeHandler
from ..sensors.samples import AccelerationSample, AttitudeSample

class ManualMotionDriver(MotionDriver):
    """
    Delivers samples only when emit_* is called, on the caller's thread.
    """
    
    def __init__(self, accelerometer_available: bool = True,
                 device_motion_available: bool = True):
        """
        Initialize manual driver.
        
        Args:
            accelerometer_available: Reported accelerometer capability
            device_motion_available: Reported device-motion capability
        """
        self._accelerometer_available = accelerometer_available
        self._device_motion_available = device_motion_available
        
        self._accel_handler: Optional[AccelerationHandler] = None
        self._motion_handler: Optional[AttitudeHandler] = None
        self.accel_subscription: Optional[Subscription] = None
        self.motion_subscription: Optional[Subscription] = None
        
        # Requested intervals, in order, for inspection
        self.accel_intervals: List[float] = []
        self.motion_intervals: List[float] = []
    
    @property
    def accelerometer_available(self) -> bool:
        return self._accelerometer_available
    
    @property
    def device_motion_available(self) -> bool:
        return self._device_motion_available
    
    def start_accelerometer_updates(self, interval: float,
                                    handler: AccelerationHandler) -> Subscription:
        self._check_interval(interval)
        if self.accel_subscription is not None:
            self.accel_subscription.cancel()
        
        subscription = Subscription("accelerometer", interval)
        self._accel_handler = handler
        self.accel_subscription = subscription
        self.accel_intervals.append(interval)
        return subscription
    
    def start_device_motion_updates(self, interval: float,
                                    handler: AttitudeHandler) -> Subscription:
        self._check_interval(interval)
        if self.motion_subscription is not None:
            self.motion_subscription.cancel()
        
        subscription = Subscription("device_motion", interval)
        self._motion_handler = handler
        self.motion_subscription = subscription
        self.motion_intervals.append(interval)
        return subscription
    
    @property
    def accelerometer_active(self) -> bool:
        return self.accel_subscription is not None and self.accel_subscription.active
    
    @property
    def device_motion_active(self) -> bool:
        return self.motion_subscription is not None and self.motion_subscription.active
    
    def emit_acceleration(self, sample: Optional[AccelerationSample]) -> bool:
        """
        Deliver an acceleration sample to the active handler.
        
        Returns:
            True if a subscriber received it
        """
        if not self.accelerometer_active:
            return False
        self._accel_handler(sample)
        return True
    
    def emit_attitude(self, sample: Optional[AttitudeSample]) -> bool:
        """
        Deliver a device-motion sample to the active handler.
        
        Returns:
            True if a subscriber received it
        """
        if not self.device_motion_active:
            return False
        self._motion_handler(sample)
        return True

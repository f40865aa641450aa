"""
Motion driver interface.

A driver supplies two independent push-style streams, raw acceleration and
device motion, each delivered to a handler at a requested interval. Handlers
receive a sample, or None when a read failed.
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..sensors.samples import AccelerationSample, AttitudeSample

AccelerationHandler = Callable[[Optional[AccelerationSample]], None]
AttitudeHandler = Callable[[Optional[AttitudeSample]], None]

class Subscription:
    """
    Handle for one active stream subscription.
    
    cancel() may be called any number of times; the teardown callback
    runs once.
    """
    
    def __init__(self, name: str, interval: float,
                 teardown: Optional[Callable[[], None]] = None):
        self.name = name
        self.interval = interval
        self._teardown = teardown
        self._lock = threading.Lock()
        self._active = True
    
    @property
    def active(self) -> bool:
        return self._active
    
    def cancel(self):
        """Stop delivering samples to this subscription's handler."""
        with self._lock:
            if not self._active:
                return
            self._active = False
            teardown, self._teardown = self._teardown, None
        if teardown is not None:
            teardown()
    
    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"Subscription({self.name}, interval={self.interval:.3f}s, {state})"

class MotionDriver(ABC):
    """Source of accelerometer and device-motion samples."""
    
    @property
    @abstractmethod
    def accelerometer_available(self) -> bool:
        """True if the hardware provides raw acceleration."""
    
    @property
    @abstractmethod
    def device_motion_available(self) -> bool:
        """True if the hardware provides attitude, gravity and rotation rate."""
    
    @abstractmethod
    def start_accelerometer_updates(self, interval: float,
                                    handler: AccelerationHandler) -> Subscription:
        """
        Begin delivering acceleration samples.
        
        Args:
            interval: Requested sampling interval in seconds
            handler: Called with each sample (or None on read failure)
            
        Returns:
            Subscription handle; cancel() stops delivery
        """
    
    @abstractmethod
    def start_device_motion_updates(self, interval: float,
                                    handler: AttitudeHandler) -> Subscription:
        """
        Begin delivering device-motion samples.
        
        Args:
            interval: Requested sampling interval in seconds
            handler: Called with each sample (or None on read failure)
            
        Returns:
            Subscription handle; cancel() stops delivery
        """
    
    @property
    def is_available(self) -> bool:
        """Both streams are supported."""
        return self.accelerometer_available and self.device_motion_available
    
    @staticmethod
    def _check_interval(interval: float):
        if interval <= 0:
            raise ValueError(f"Update interval must be positive, got {interval}")

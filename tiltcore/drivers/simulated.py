"""
Simulated motion driver.

Produces a slowly rocking device on background threads, with white noise on
every channel and optional read dropouts. Useful for running the session
without sensor hardware.
"""

import logging
import math
import threading
import time
import numpy as np
from typing import Callable, Optional

from .base import MotionDriver, Subscription, AccelerationHandler, AttitudeHandler
from ..math.constants import DEG_TO_RAD
from ..sensors.samples import AccelerationSample, AttitudeSample, Quaternion, Vector3

logger = logging.getLogger(__name__)

class SimulatedMotionDriver(MotionDriver):
    """
    Synthetic accelerometer and device-motion source.

    The device pitches and rolls sinusoidally; acceleration reads the
    reaction to gravity (+1 g on Z when flat), gravity and attitude are
    consistent with the same tilt, and rotation rate is the tilt derivative.
    """

    def __init__(self,
                 pitch_amplitude_deg: float = 20.0,
                 roll_amplitude_deg: float = 15.0,
                 pitch_frequency_hz: float = 0.1,
                 roll_frequency_hz: float = 0.07,
                 accel_noise_std: float = 0.01,
                 gyro_noise_std: float = 0.005,
                 dropout_probability: float = 0.0,
                 random_state: Optional[np.random.Generator] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize simulated driver.

        Args:
            pitch_amplitude_deg: Peak pitch (degrees)
            roll_amplitude_deg: Peak roll (degrees)
            pitch_frequency_hz: Pitch oscillation frequency
            roll_frequency_hz: Roll oscillation frequency
            accel_noise_std: Accelerometer white noise (g)
            gyro_noise_std: Gyroscope white noise (rad/s)
            dropout_probability: Chance that a read delivers None
            random_state: Random generator for reproducibility
            clock: Time source for sample timestamps (seconds)
        """
        if not 0.0 <= dropout_probability < 1.0:
            raise ValueError("dropout_probability must be in [0, 1)")

        self.pitch_amplitude = pitch_amplitude_deg * DEG_TO_RAD
        self.roll_amplitude = roll_amplitude_deg * DEG_TO_RAD
        self.pitch_frequency = pitch_frequency_hz
        self.roll_frequency = roll_frequency_hz
        self.accel_noise_std = accel_noise_std
        self.gyro_noise_std = gyro_noise_std
        self.dropout_probability = dropout_probability
        self.rng = random_state if random_state is not None else np.random.default_rng()
        self.clock = clock

        self._rng_lock = threading.Lock()
        self._start_time = clock()

    @property
    def accelerometer_available(self) -> bool:
        return True

    @property
    def device_motion_available(self) -> bool:
        return True

    def tilt_at(self, t: float):
        """
        True tilt at time t since driver creation.

        Returns:
            (pitch, roll, pitch_rate, roll_rate) in rad and rad/s
        """
        wp = 2.0 * math.pi * self.pitch_frequency
        wr = 2.0 * math.pi * self.roll_frequency
        pitch = self.pitch_amplitude * math.sin(wp * t)
        roll = self.roll_amplitude * math.sin(wr * t)
        pitch_rate = self.pitch_amplitude * wp * math.cos(wp * t)
        roll_rate = self.roll_amplitude * wr * math.cos(wr * t)
        return pitch, roll, pitch_rate, roll_rate

    def _noise(self, scale: float, size: int) -> np.ndarray:
        with self._rng_lock:
            return self.rng.normal(0.0, scale, size)

    def _dropped(self) -> bool:
        if self.dropout_probability <= 0.0:
            return False
        with self._rng_lock:
            return self.rng.random() < self.dropout_probability

    @staticmethod
    def _gravity(pitch: float, roll: float) -> np.ndarray:
        return np.array([
            math.sin(roll),
            math.cos(roll) * math.sin(pitch),
            -math.cos(roll) * math.cos(pitch)
        ])

    def read_acceleration(self) -> Optional[AccelerationSample]:
        """Produce one acceleration sample at the current time."""
        if self._dropped():
            return None

        now = self.clock()
        pitch, roll, _, _ = self.tilt_at(now - self._start_time)
        accel = -self._gravity(pitch, roll) + self._noise(self.accel_noise_std, 3)
        return AccelerationSample(x=float(accel[0]), y=float(accel[1]), z=float(accel[2]),
                                  timestamp=now)

    def read_attitude(self) -> Optional[AttitudeSample]:
        """Produce one device-motion sample at the current time."""
        if self._dropped():
            return None

        now = self.clock()
        pitch, roll, pitch_rate, roll_rate = self.tilt_at(now - self._start_time)
        gyro = self._noise(self.gyro_noise_std, 2)

        # Rotation about X by the pitch angle
        half = pitch / 2.0
        quaternion = Quaternion(x=math.sin(half), y=0.0, z=0.0, w=math.cos(half))

        return AttitudeSample(
            quaternion=quaternion,
            gravity=Vector3.from_array(self._gravity(pitch, roll)),
            rotation_rate=(pitch_rate + float(gyro[0]), roll_rate + float(gyro[1])),
            timestamp=now
        )

    def start_accelerometer_updates(self, interval: float,
                                    handler: AccelerationHandler) -> Subscription:
        self._check_interval(interval)
        return self._start_stream("accelerometer", interval, self.read_acceleration, handler)

    def start_device_motion_updates(self, interval: float,
                                    handler: AttitudeHandler) -> Subscription:
        self._check_interval(interval)
        return self._start_stream("device_motion", interval, self.read_attitude, handler)

    def _start_stream(self, name: str, interval: float, read, handler) -> Subscription:
        stop_event = threading.Event()

        def run():
            while not stop_event.wait(interval):
                try:
                    handler(read())
                except Exception:
                    logger.exception("Simulated %s handler failed", name)

        thread = threading.Thread(target=run, name=f"sim-{name}", daemon=True)

        # No join: the caller may hold a lock the handler is waiting on.
        # A sample already in flight is delivered once more and must be
        # tolerated by the subscriber.
        subscription = Subscription(name, interval, stop_event.set)
        thread.start()
        logger.debug("Simulated %s stream started at %.3fs", name, interval)
        return subscription

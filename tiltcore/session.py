"""
Sensor session: the state machine that sequences calibration, smoothing,
fusion and the trail in response to start/stop/calibrate commands and
incoming driver samples.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .drivers.base import MotionDriver, Subscription
from .filters import ComplementaryFusion, SmoothingFilter, FusionState, SmoothingState
from .math.constants import *
from .scheduling import ScheduledTask, TimerScheduler
from .sensors.calibration import CalibrationOffset, CalibrationProcedure
from .sensors.samples import AccelerationSample, AttitudeSample, AdjustedAcceleration
from .sensors.trail import TrailBuffer, TrailPoint

logger = logging.getLogger(__name__)

DEFAULT_INTERVALS = {
    'accelerometer': ACCEL_INTERVAL_RUNNING_S,
    'device_motion': MOTION_INTERVAL_RUNNING_S,
    'calibration_accelerometer': ACCEL_INTERVAL_CALIBRATING_S,
    'calibration_device_motion': MOTION_INTERVAL_CALIBRATING_S,
}

class SensorState(Enum):
    """Session lifecycle state."""
    STOPPED = "stopped"
    RUNNING = "running"
    CALIBRATING = "calibrating"

@dataclass(frozen=True)
class SessionSnapshot:
    """Everything the presentation layer displays, captured at one instant."""

    state: SensorState
    acceleration: Optional[AdjustedAcceleration]
    pitch: float
    roll: float
    trail: Tuple[TrailPoint, ...]
    offset: CalibrationOffset
    sequence: int = 0  # increases with every snapshot taken

    def __str__(self) -> str:
        accel = "none"
        if self.acceleration is not None:
            a = self.acceleration
            accel = f"[{a.x:.3f}, {a.y:.3f}, {a.z:.3f}] g"
        return (
            f"SessionSnapshot(state={self.state.value}, accel={accel}, "
            f"pitch={self.pitch:.1f}°, roll={self.roll:.1f}°, trail={len(self.trail)})"
        )

Listener = Callable[[SessionSnapshot], None]

class SensorSession:
    """
    Owns all mutable tilt-estimation state for one sensor.

    States: STOPPED (initial) -> CALIBRATING -> RUNNING -> STOPPED, with
    RUNNING -> CALIBRATING for recalibration. start() from STOPPED always
    calibrates first. Commands are ignored when the driver lacks either
    stream.

    Driver and timer callbacks may arrive on any thread; they are
    serialised by one re-entrant lock. Each subscription and each pending
    resume carries the generation it was created in, and anything from an
    older generation is ignored.

    Listeners run outside the state lock, one delivery at a time, and
    never receive a snapshot older than one already delivered.
    """

    def __init__(self, driver: MotionDriver,
                 scheduler=None,
                 smoothing_factor: float = SMOOTHING_FACTOR,
                 intervals: Dict[str, float] = None,
                 calibration_samples: int = CALIBRATION_SAMPLE_COUNT,
                 settle_delay: float = CALIBRATION_SETTLE_DELAY_S,
                 trail: Optional[TrailBuffer] = None):
        """
        Initialize the session in the STOPPED state.

        Args:
            driver: Motion sample source
            scheduler: Delayed-callback scheduler (TimerScheduler if None)
            smoothing_factor: Acceleration low-pass factor
            intervals: Stream interval overrides, keys as in DEFAULT_INTERVALS
            calibration_samples: Samples per stream for calibration
            settle_delay: Delay between calibration and RUNNING (seconds)
            trail: Trail buffer (default limits if None)
        """
        self.driver = driver
        self.scheduler = scheduler or TimerScheduler()

        self.intervals = dict(DEFAULT_INTERVALS)
        for key, value in (intervals or {}).items():
            if key not in DEFAULT_INTERVALS:
                raise ValueError(f"Unknown interval '{key}'")
            if value <= 0:
                raise ValueError(f"Interval '{key}' must be positive, got {value}")
            self.intervals[key] = value

        if calibration_samples < 1:
            raise ValueError("calibration_samples must be at least 1")
        if settle_delay < 0:
            raise ValueError("settle_delay must not be negative")
        self.calibration_samples = calibration_samples
        self.settle_delay = settle_delay

        # Filter state
        self.fusion_state = FusionState()
        self.smoothing_state = SmoothingState()
        self.fusion = ComplementaryFusion(self.fusion_state)
        self.smoothing = SmoothingFilter(smoothing_factor, self.smoothing_state)
        self.trail = trail or TrailBuffer()

        self._lock = threading.RLock()
        self._state = SensorState.STOPPED
        self._offset = CalibrationOffset.zero()
        self._acceleration: Optional[AdjustedAcceleration] = None
        self._calibration: Optional[CalibrationProcedure] = None
        self._resume_task: Optional[ScheduledTask] = None
        self._subscriptions: List[Subscription] = []
        self._generation = 0
        self._listeners: List[Listener] = []
        self._sequence = 0
        self._delivery_lock = threading.RLock()
        self._delivered_sequence = 0

        # Statistics
        self.accel_sample_count = 0
        self.attitude_sample_count = 0
        self.dropped_sample_count = 0
        self.stale_sample_count = 0
        self.calibration_count = 0

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """
        Start from STOPPED by calibrating, then run.

        Returns:
            True if calibration began
        """
        with self._lock:
            if self._state is not SensorState.STOPPED:
                logger.debug("start() ignored in state %s", self._state.value)
                return False
            started = self._begin_calibration()
            snapshot = self._snapshot_for_listeners()
        if started:
            self._notify(snapshot)
        return started

    def calibrate(self) -> bool:
        """
        Calibrate from STOPPED or RUNNING. Ignored while already calibrating.

        Returns:
            True if calibration began
        """
        with self._lock:
            if self._state is SensorState.CALIBRATING:
                logger.debug("calibrate() ignored, calibration already in progress")
                return False
            started = self._begin_calibration()
            snapshot = self._snapshot_for_listeners()
        if started:
            self._notify(snapshot)
        return started

    def stop(self):
        """
        Stop from any state.

        Cancels all subscriptions, any in-flight calibration and any pending
        resume, and clears the filters, the trail and the reading.
        """
        with self._lock:
            previous = self._state
            self._teardown()
            if self._calibration is not None:
                self._calibration.cancel()
                self._calibration = None
            self._reset_filters()
            self.trail.clear()
            self._acceleration = None
            self._state = SensorState.STOPPED
            snapshot = self._snapshot_for_listeners()

        if previous is not SensorState.STOPPED:
            logger.info("Sensor session stopped (was %s)", previous.value)
            self._notify(snapshot)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with a SessionSnapshot after every change.

        Returns:
            Callable that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> SessionSnapshot:
        """Current published state."""
        with self._lock:
            return self._snapshot_locked()

    # Each accessor is consistent on its own; use snapshot() to read
    # several values from the same instant.

    @property
    def state(self) -> SensorState:
        with self._lock:
            return self._state

    @property
    def pitch(self) -> float:
        with self._lock:
            return self.fusion_state.current_pitch_degrees

    @property
    def roll(self) -> float:
        with self._lock:
            return self.fusion_state.current_roll_degrees

    @property
    def acceleration(self) -> Optional[AdjustedAcceleration]:
        with self._lock:
            return self._acceleration

    @property
    def trail_points(self) -> Tuple[TrailPoint, ...]:
        with self._lock:
            return self.trail.points()

    @property
    def offset(self) -> CalibrationOffset:
        with self._lock:
            return self._offset

    @property
    def calibration(self) -> Optional[CalibrationProcedure]:
        with self._lock:
            return self._calibration

    @property
    def resume_pending(self) -> bool:
        with self._lock:
            return self._resume_task is not None and self._resume_task.pending

    # ------------------------------------------------------------------
    # Transitions (lock held)
    # ------------------------------------------------------------------

    def _begin_calibration(self) -> bool:
        if not self.driver.is_available:
            logger.warning("Calibration unavailable: accelerometer=%s, device motion=%s",
                           self.driver.accelerometer_available,
                           self.driver.device_motion_available)
            return False

        self._teardown()
        self._offset = CalibrationOffset.zero()
        self._reset_filters()

        procedure = CalibrationProcedure(self.calibration_samples)
        procedure.on_complete = lambda offset: self._on_calibration_complete(procedure, offset)
        self._calibration = procedure
        self._state = SensorState.CALIBRATING

        logger.info("Calibrating: collecting %d samples per stream (keep device still)",
                    self.calibration_samples)
        self._subscribe(self.intervals['calibration_accelerometer'],
                        self.intervals['calibration_device_motion'])
        return True

    def _on_calibration_complete(self, procedure: CalibrationProcedure,
                                 offset: CalibrationOffset):
        if procedure is not self._calibration:
            return

        self._teardown()
        self._calibration = None
        self._offset = offset
        self._reset_filters()
        self.calibration_count += 1

        generation = self._generation
        self._resume_task = self.scheduler.call_later(
            self.settle_delay, lambda: self._resume(generation))
        logger.info("Calibration applied %s; resuming in %.2fs", offset, self.settle_delay)

    def _resume(self, generation: int):
        with self._lock:
            if generation != self._generation or self._state is not SensorState.CALIBRATING:
                logger.debug("Stale resume ignored")
                return
            self._begin_running()
            snapshot = self._snapshot_for_listeners()
        self._notify(snapshot)

    def _begin_running(self):
        self._teardown()
        self.trail.clear()
        self._acceleration = None
        self._reset_filters()
        self._state = SensorState.RUNNING

        logger.info("Sensor session running")
        self._subscribe(self.intervals['accelerometer'], self.intervals['device_motion'])

    def _subscribe(self, accel_interval: float, motion_interval: float):
        generation = self._generation
        self._subscriptions = [
            self.driver.start_accelerometer_updates(
                accel_interval, lambda sample: self._on_acceleration(generation, sample)),
            self.driver.start_device_motion_updates(
                motion_interval, lambda sample: self._on_attitude(generation, sample)),
        ]

    def _teardown(self):
        """Cancel subscriptions and any pending resume; start a new generation."""
        self._generation += 1
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        if self._resume_task is not None:
            self._resume_task.cancel()
            self._resume_task = None

    def _reset_filters(self):
        self.fusion.reset()
        self.smoothing.reset()

    # ------------------------------------------------------------------
    # Driver callbacks
    # ------------------------------------------------------------------

    def _on_acceleration(self, generation: int, sample: Optional[AccelerationSample]):
        with self._lock:
            if not self._accept(generation, sample, "acceleration"):
                return
            self.accel_sample_count += 1

            if self._state is SensorState.RUNNING:
                self._process_acceleration(sample)
            elif self._calibration is not None:
                self._calibration.add_acceleration(sample)
            snapshot = self._snapshot_for_listeners()
        self._notify(snapshot)

    def _on_attitude(self, generation: int, sample: Optional[AttitudeSample]):
        with self._lock:
            if not self._accept(generation, sample, "attitude"):
                return
            self.attitude_sample_count += 1

            if self._state is SensorState.RUNNING:
                self.fusion.update(sample, self._offset.pitch_degrees, self._offset.roll_degrees)
            elif self._calibration is not None:
                self._calibration.add_attitude(sample)
            snapshot = self._snapshot_for_listeners()
        self._notify(snapshot)

    def _accept(self, generation: int, sample, stream: str) -> bool:
        if generation != self._generation:
            self.stale_sample_count += 1
            return False
        if sample is None:
            self.dropped_sample_count += 1
            logger.debug("Dropped missing %s sample", stream)
            return False
        return True

    def _process_acceleration(self, sample: AccelerationSample):
        offset = self._offset.accel
        smoothed = self.smoothing.apply(sample.acceleration - offset.as_array())
        reading = AdjustedAcceleration.from_sample(sample, offset, smoothed)
        self._acceleration = reading
        self.trail.add(reading.x, reading.y, reading.timestamp)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def _snapshot_locked(self) -> SessionSnapshot:
        self._sequence += 1
        return SessionSnapshot(
            state=self._state,
            acceleration=self._acceleration,
            pitch=self.fusion_state.current_pitch_degrees,
            roll=self.fusion_state.current_roll_degrees,
            trail=self.trail.points(),
            offset=self._offset,
            sequence=self._sequence
        )

    def _snapshot_for_listeners(self) -> Optional[SessionSnapshot]:
        return self._snapshot_locked() if self._listeners else None

    def _notify(self, snapshot: Optional[SessionSnapshot]):
        if snapshot is None:
            return
        with self._delivery_lock:
            # A newer snapshot overtook this one between the state lock and here
            if snapshot.sequence <= self._delivered_sequence:
                logger.debug("Superseded snapshot %d not delivered", snapshot.sequence)
                return
            self._delivered_sequence = snapshot.sequence

            with self._lock:
                listeners = list(self._listeners)
            for listener in listeners:
                try:
                    listener(snapshot)
                except Exception:
                    logger.exception("Session listener failed")

    def get_statistics(self) -> dict:
        """Get session statistics."""
        with self._lock:
            return {
                'state': self._state.value,
                'accel_samples': self.accel_sample_count,
                'attitude_samples': self.attitude_sample_count,
                'dropped_samples': self.dropped_sample_count,
                'stale_samples': self.stale_sample_count,
                'calibrations': self.calibration_count,
                'trail_points': len(self.trail),
                'fusion_updates': self.fusion.update_count,
                'offset': {
                    'accel': [self._offset.accel.x, self._offset.accel.y, self._offset.accel.z],
                    'pitch': self._offset.pitch_degrees,
                    'roll': self._offset.roll_degrees
                }
            }

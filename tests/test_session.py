#!/usr/bin/env python3
"""
Tests for the sensor session state machine, scheduling and drivers.
"""

import unittest
import math
import threading
import numpy as np
import sys
import os

# Add core modules to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tiltcore import (
    SensorSession, SensorState, ManualMotionDriver, ManualScheduler, TimerScheduler,
    SimulatedMotionDriver, AccelerationSample, AttitudeSample, Quaternion, Vector3,
)
from tiltcore.drivers import Subscription
from tiltcore.math import pitch_from_quaternion, lateral_roll

def accel(x, y, z, timestamp):
    return AccelerationSample(x=x, y=y, z=z, timestamp=timestamp)

def attitude(timestamp, pitch_deg=0.0, roll_deg=0.0, rates=(0.0, 0.0)):
    half = math.radians(pitch_deg) / 2.0
    r = math.radians(roll_deg)
    return AttitudeSample(
        quaternion=Quaternion(x=math.sin(half), y=0.0, z=0.0, w=math.cos(half)),
        gravity=Vector3(math.sin(r), 0.0, -math.cos(r)),
        rotation_rate=rates,
        timestamp=timestamp
    )

class SessionTestCase(unittest.TestCase):
    """Session wired to a manual driver and a manual clock."""

    def setUp(self):
        """Set up test fixtures."""
        self.driver = ManualMotionDriver()
        self.scheduler = ManualScheduler()
        self.session = SensorSession(self.driver, scheduler=self.scheduler)
        self.snapshots = []
        self.session.subscribe(self.snapshots.append)

    def feed_calibration(self, rest=(0.0, 0.0, 1.0), pitch_deg=0.0, roll_deg=0.0, t0=0.0):
        for i in range(10):
            t = t0 + i * 0.1
            self.driver.emit_acceleration(accel(*rest, t))
            self.driver.emit_attitude(attitude(t, pitch_deg, roll_deg))

    def start_running(self, **calibration):
        self.assertTrue(self.session.start())
        self.feed_calibration(**calibration)
        self.scheduler.advance(0.5)
        self.assertIs(self.session.state, SensorState.RUNNING)

class TestSessionLifecycle(SessionTestCase):
    """Test state transitions."""

    def test_initial_state(self):
        """Test a new session is stopped and empty."""
        snapshot = self.session.snapshot()

        self.assertIs(snapshot.state, SensorState.STOPPED)
        self.assertIsNone(snapshot.acceleration)
        self.assertEqual(snapshot.pitch, 0.0)
        self.assertEqual(snapshot.roll, 0.0)
        self.assertEqual(snapshot.trail, ())
        self.assertIsNone(self.driver.accel_subscription)

    def test_start_calibrates_first(self):
        """Test start subscribes at calibration intervals."""
        self.assertTrue(self.session.start())

        self.assertIs(self.session.state, SensorState.CALIBRATING)
        self.assertEqual(self.driver.accel_intervals, [0.1])
        self.assertEqual(self.driver.motion_intervals, [0.1])
        self.assertIsNotNone(self.session.calibration)
        self.assertIs(self.snapshots[-1].state, SensorState.CALIBRATING)

    def test_calibration_then_running(self):
        """Test the settle delay and running intervals."""
        self.session.start()
        self.feed_calibration()

        # Calibration complete, waiting out the settle delay
        self.assertIs(self.session.state, SensorState.CALIBRATING)
        self.assertIsNone(self.session.calibration)
        self.assertTrue(self.session.resume_pending)
        self.assertFalse(self.driver.accelerometer_active)
        self.assertFalse(self.driver.device_motion_active)

        self.scheduler.advance(0.49)
        self.assertIs(self.session.state, SensorState.CALIBRATING)

        self.scheduler.advance(0.01)
        self.assertIs(self.session.state, SensorState.RUNNING)
        self.assertFalse(self.session.resume_pending)
        self.assertEqual(self.driver.accel_intervals, [0.1, 0.02])
        self.assertEqual(self.driver.motion_intervals, [0.1, 0.05])
        self.assertIs(self.snapshots[-1].state, SensorState.RUNNING)

    def test_start_ignored_unless_stopped(self):
        self.session.start()
        self.assertFalse(self.session.start())
        self.assertEqual(len(self.driver.accel_intervals), 1)

    def test_calibrate_while_calibrating_is_noop(self):
        """Test repeated calibrate commands do not restart collection."""
        self.session.start()
        procedure = self.session.calibration
        self.driver.emit_acceleration(accel(0.0, 0.0, 1.0, 0.0))

        self.assertFalse(self.session.calibrate())
        self.assertIs(self.session.calibration, procedure)
        self.assertEqual(len(procedure.accel_samples), 1)
        self.assertEqual(len(self.driver.accel_intervals), 1)

    def test_calibrate_from_stopped(self):
        self.assertTrue(self.session.calibrate())
        self.assertIs(self.session.state, SensorState.CALIBRATING)

    def test_recalibrate_from_running(self):
        """Test recalibration zeroes the offset and changes intervals."""
        self.start_running(rest=(0.1, 0.2, 1.3))
        self.assertAlmostEqual(self.session.offset.accel.x, 0.1)

        self.assertTrue(self.session.calibrate())

        self.assertIs(self.session.state, SensorState.CALIBRATING)
        self.assertEqual(self.session.offset.accel, Vector3(0.0, 0.0, 0.0))
        self.assertEqual(self.driver.accel_intervals[-1], 0.1)
        self.assertEqual(self.driver.motion_intervals[-1], 0.1)

        self.feed_calibration(rest=(0.0, 0.0, 1.0), t0=10.0)
        self.scheduler.advance(0.5)
        self.assertIs(self.session.state, SensorState.RUNNING)
        self.assertAlmostEqual(self.session.offset.accel.x, 0.0)
        self.assertEqual(self.session.get_statistics()['calibrations'], 2)

    def test_capability_gate(self):
        """Test that commands are inert without both streams."""
        for accel_ok, motion_ok in [(False, True), (True, False), (False, False)]:
            driver = ManualMotionDriver(accel_ok, motion_ok)
            session = SensorSession(driver, scheduler=ManualScheduler())

            with self.assertLogs('tiltcore.session', level='WARNING'):
                self.assertFalse(session.start())
            self.assertFalse(session.calibrate())

            self.assertIs(session.state, SensorState.STOPPED)
            self.assertIsNone(driver.accel_subscription)
            self.assertIsNone(driver.motion_subscription)

    def test_calibration_waits_for_both_streams(self):
        """Test calibration does not complete on one stream alone."""
        self.session.start()
        for i in range(100):
            self.driver.emit_acceleration(accel(0.0, 0.0, 1.0, i * 0.1))
        self.scheduler.advance(60.0)

        self.assertIs(self.session.state, SensorState.CALIBRATING)
        self.assertIsNotNone(self.session.calibration)
        self.assertFalse(self.session.resume_pending)

    def test_calibration_completes_under_any_interleaving(self):
        """Test completion for random stream interleavings."""
        rng = np.random.default_rng(11)
        for _ in range(20):
            driver = ManualMotionDriver()
            scheduler = ManualScheduler()
            session = SensorSession(driver, scheduler=scheduler)
            session.start()

            t = 0.0
            while session.calibration is not None:
                t += 0.01
                if rng.random() < 0.5:
                    driver.emit_acceleration(accel(0.0, 0.0, 1.0, t))
                else:
                    driver.emit_attitude(attitude(t))
                self.assertLess(t, 10.0)

            scheduler.advance(0.5)
            self.assertIs(session.state, SensorState.RUNNING)

class TestSessionStop(SessionTestCase):
    """Test stop from every state."""

    def assert_stopped_clean(self):
        snapshot = self.session.snapshot()
        self.assertIs(snapshot.state, SensorState.STOPPED)
        self.assertIsNone(snapshot.acceleration)
        self.assertEqual(snapshot.trail, ())
        self.assertEqual(snapshot.pitch, 0.0)
        self.assertEqual(snapshot.roll, 0.0)
        self.assertFalse(self.session.fusion_state.is_initialized)
        self.assertTrue(self.session.smoothing_state.is_at_rest)
        self.assertIsNone(self.session.calibration)
        self.assertFalse(self.session.resume_pending)
        self.assertFalse(self.driver.accelerometer_active)
        self.assertFalse(self.driver.device_motion_active)

    def test_stop_when_stopped(self):
        """Test stop is a silent no-op when already stopped."""
        self.session.stop()
        self.assert_stopped_clean()
        self.assertEqual(self.snapshots, [])

    def test_stop_during_calibration(self):
        self.session.start()
        self.feed_calibration()
        self.session.stop()

        self.assert_stopped_clean()
        self.assertFalse(self.driver.emit_acceleration(accel(0.0, 0.0, 1.0, 5.0)))

    def test_stop_mid_collection(self):
        self.session.start()
        procedure = self.session.calibration
        self.driver.emit_acceleration(accel(0.0, 0.0, 1.0, 0.0))
        self.session.stop()

        self.assert_stopped_clean()
        self.assertTrue(procedure.cancelled)

    def test_stop_during_settle_delay_suppresses_resume(self):
        """Test that a pending resume never fires after stop."""
        self.session.start()
        self.feed_calibration()
        self.assertTrue(self.session.resume_pending)

        self.session.stop()
        self.scheduler.advance(5.0)

        self.assert_stopped_clean()
        self.assertEqual(len(self.driver.accel_intervals), 1)

    def test_stop_while_running(self):
        """Test that stop clears readings but keeps the offset."""
        self.start_running(rest=(0.1, 0.2, 1.3))
        self.driver.emit_acceleration(accel(1.0, 2.0, 3.0, 2.0))
        self.driver.emit_attitude(attitude(2.0, pitch_deg=10.0))
        self.assertIsNotNone(self.session.acceleration)

        self.session.stop()

        self.assert_stopped_clean()
        self.assertAlmostEqual(self.session.offset.accel.x, 0.1)
        self.assertIs(self.snapshots[-1].state, SensorState.STOPPED)

    def test_restart_after_stop(self):
        self.start_running()
        self.session.stop()
        self.start_running()
        self.assertEqual(self.session.get_statistics()['calibrations'], 2)

class TestSessionProcessing(SessionTestCase):
    """Test sample handling while running."""

    def test_acceleration_pipeline(self):
        """Test offset subtraction, smoothing and the trail."""
        self.start_running(rest=(0.1, 0.2, 1.3))
        self.driver.emit_acceleration(accel(1.0, 2.0, 3.0, 1000.0))

        reading = self.session.acceleration
        self.assertAlmostEqual(reading.x, 0.15 * 0.9)
        self.assertAlmostEqual(reading.y, 0.15 * 1.8)
        self.assertAlmostEqual(reading.z, 0.15 * 2.7)
        self.assertEqual(reading.timestamp, 1000.0)

        trail = self.session.trail_points
        self.assertEqual(len(trail), 1)
        self.assertAlmostEqual(trail[0].x, reading.x)
        self.assertAlmostEqual(trail[0].y, reading.y)

    def test_acceleration_without_smoothing(self):
        """Test the adjusted value with a pass-through filter."""
        session = SensorSession(self.driver, scheduler=self.scheduler, smoothing_factor=1.0)
        session.start()
        self.feed_calibration(rest=(0.1, 0.2, 1.3))
        self.scheduler.advance(0.5)

        self.driver.emit_acceleration(accel(1.0, 2.0, 3.0, 1000.0))
        reading = session.acceleration
        self.assertAlmostEqual(reading.x, 0.9, places=3)
        self.assertAlmostEqual(reading.y, 1.8, places=3)
        self.assertAlmostEqual(reading.z, 2.7, places=3)

    def test_resting_device_reads_zero(self):
        self.start_running()
        for i in range(50):
            self.driver.emit_acceleration(accel(0.0, 0.0, 1.0, 1.0 + i * 0.02))
        reading = self.session.acceleration
        self.assertAlmostEqual(reading.magnitude, 0.0)

    def test_attitude_pipeline(self):
        """Test fused pitch and roll against the calibrated offsets."""
        self.start_running(pitch_deg=5.0, roll_deg=3.0)
        self.assertAlmostEqual(self.session.offset.pitch_degrees, 5.0, places=6)
        self.assertAlmostEqual(self.session.offset.roll_degrees, 3.0, places=6)

        self.driver.emit_attitude(attitude(2.0, pitch_deg=15.0, roll_deg=23.0))
        self.assertAlmostEqual(self.session.pitch, 10.0, places=6)
        self.assertAlmostEqual(self.session.roll, 20.0, places=6)

        snapshot = self.snapshots[-1]
        self.assertAlmostEqual(snapshot.pitch, 10.0, places=6)
        self.assertAlmostEqual(snapshot.roll, 20.0, places=6)

    def test_running_outputs_bounded(self):
        self.start_running()
        rng = np.random.default_rng(5)
        for i in range(200):
            self.driver.emit_attitude(attitude(1.0 + i * 0.05, rng.uniform(-170, 170),
                                               rng.uniform(-85, 85), tuple(rng.normal(0, 20, 2))))
            self.assertLessEqual(abs(self.session.pitch), 90.0)
            self.assertLessEqual(abs(self.session.roll), 45.0)

    def test_trail_bounded(self):
        self.start_running()
        for i in range(300):
            t = 1.0 + i * 0.02
            self.driver.emit_acceleration(accel(0.1, 0.1, 1.0, t))

        trail = self.session.trail_points
        self.assertLessEqual(len(trail), 200)
        for point in trail:
            self.assertLess(point.age(t), 3.5)

    def test_missing_samples_dropped(self):
        """Test that None samples leave state untouched."""
        self.start_running()
        self.driver.emit_acceleration(None)
        self.driver.emit_attitude(None)

        self.assertIsNone(self.session.acceleration)
        self.assertFalse(self.session.fusion_state.is_initialized)
        self.assertEqual(self.session.get_statistics()['dropped_samples'], 2)

        self.driver.emit_acceleration(accel(0.0, 0.0, 1.0, 2.0))
        self.assertIsNotNone(self.session.acceleration)

    def test_missing_samples_during_calibration(self):
        self.session.start()
        for _ in range(20):
            self.driver.emit_acceleration(None)
            self.driver.emit_attitude(None)
        self.assertEqual(self.session.calibration.progress, 0.0)

    def test_stale_handler_ignored(self):
        """Test that a handler from a torn-down subscription has no effect."""
        self.start_running()
        stale_handler = self.driver._accel_handler

        self.session.calibrate()
        stale_handler(accel(5.0, 5.0, 5.0, 3.0))

        self.assertIsNone(self.session.acceleration)
        self.assertEqual(self.session.calibration.progress, 0.0)
        self.assertEqual(self.session.get_statistics()['stale_samples'], 1)

    def test_recalibration_keeps_trail_until_running(self):
        self.start_running()
        self.driver.emit_acceleration(accel(0.5, 0.5, 1.0, 1.0))
        self.session.calibrate()
        self.assertEqual(len(self.session.trail_points), 1)

        self.feed_calibration(t0=2.0)
        self.scheduler.advance(0.5)
        self.assertEqual(self.session.trail_points, ())
        self.assertIsNone(self.session.acceleration)

    def test_statistics(self):
        self.start_running()
        self.driver.emit_attitude(attitude(2.0))
        stats = self.session.get_statistics()

        self.assertEqual(stats['state'], 'running')
        self.assertEqual(stats['accel_samples'], 10)
        self.assertEqual(stats['attitude_samples'], 11)
        self.assertEqual(stats['fusion_updates'], 1)
        self.assertEqual(stats['calibrations'], 1)

class TestSessionListeners(SessionTestCase):
    """Test change notification."""

    def test_unsubscribe(self):
        received = []
        unsubscribe = self.session.subscribe(received.append)
        self.session.start()
        unsubscribe()
        self.feed_calibration()
        self.assertEqual(len(received), 1)

    def test_failing_listener_logged(self):
        """Test that one failing listener does not block others."""
        def broken(snapshot):
            raise RuntimeError("listener failure")

        session = SensorSession(self.driver, scheduler=self.scheduler)
        received = []
        session.subscribe(broken)
        session.subscribe(received.append)

        with self.assertLogs('tiltcore.session', level='ERROR'):
            session.start()
        self.assertEqual(len(received), 1)

    def test_snapshots_immutable(self):
        self.session.start()
        with self.assertRaises(AttributeError):
            self.snapshots[-1].pitch = 1.0

    def test_snapshot_sequence_increases(self):
        self.start_running()
        self.driver.emit_acceleration(accel(0.0, 0.0, 1.0, 2.0))
        self.session.stop()

        sequences = [s.sequence for s in self.snapshots]
        self.assertEqual(sequences, sorted(set(sequences)))

    def test_superseded_snapshot_not_delivered(self):
        """Test that a snapshot older than one already delivered is dropped."""
        self.start_running()
        older = self.session.snapshot()
        self.session.stop()
        delivered = len(self.snapshots)

        self.session._notify(older)

        self.assertEqual(len(self.snapshots), delivered)
        self.assertIs(self.snapshots[-1].state, SensorState.STOPPED)

    def test_stop_delivered_after_blocked_update(self):
        """Test that listeners end on STOPPED when stop races a running update."""
        self.start_running()
        entered = threading.Event()
        release = threading.Event()
        states = []

        def slow_listener(snapshot):
            states.append(snapshot.state)
            if snapshot.state is SensorState.RUNNING and not entered.is_set():
                entered.set()
                release.wait(2.0)

        self.session.subscribe(slow_listener)

        feeder = threading.Thread(
            target=lambda: self.driver.emit_acceleration(accel(0.0, 0.0, 1.0, 2.0)))
        feeder.start()
        self.assertTrue(entered.wait(2.0))

        stopper = threading.Thread(target=self.session.stop)
        stopper.start()
        stopper.join(0.1)
        release.set()
        feeder.join(2.0)
        stopper.join(2.0)

        self.assertIs(self.session.state, SensorState.STOPPED)
        self.assertEqual(states, [SensorState.RUNNING, SensorState.STOPPED])
        self.assertIs(self.snapshots[-1].state, SensorState.STOPPED)

    def test_accessors_wait_for_state_lock(self):
        """Test that property reads are serialised with updates."""
        self.start_running()
        result = []

        with self.session._lock:
            reader = threading.Thread(target=lambda: result.append(self.session.state))
            reader.start()
            reader.join(0.1)
            self.assertTrue(reader.is_alive())
            self.session._state = SensorState.CALIBRATING

        reader.join(2.0)
        self.assertEqual(result, [SensorState.CALIBRATING])

class TestInvalidSettings(unittest.TestCase):
    """Test constructor validation."""

    def test_invalid_arguments(self):
        driver = ManualMotionDriver()
        with self.assertRaises(ValueError):
            SensorSession(driver, intervals={'magnetometer': 1.0})
        with self.assertRaises(ValueError):
            SensorSession(driver, intervals={'accelerometer': 0.0})
        with self.assertRaises(ValueError):
            SensorSession(driver, calibration_samples=0)
        with self.assertRaises(ValueError):
            SensorSession(driver, settle_delay=-1.0)
        with self.assertRaises(ValueError):
            SensorSession(driver, smoothing_factor=0.0)

    def test_interval_overrides(self):
        driver = ManualMotionDriver()
        session = SensorSession(driver, scheduler=ManualScheduler(),
                                intervals={'calibration_accelerometer': 0.2})
        session.start()
        self.assertEqual(driver.accel_intervals, [0.2])
        self.assertEqual(driver.motion_intervals, [0.1])

class TestScheduling(unittest.TestCase):
    """Test delayed callbacks."""

    def test_manual_order(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(0.3, lambda: calls.append('c'))
        scheduler.call_later(0.1, lambda: calls.append('a'))
        scheduler.call_later(0.2, lambda: calls.append('b'))

        self.assertEqual(scheduler.advance(0.15), 1)
        self.assertEqual(scheduler.advance(1.0), 2)
        self.assertEqual(calls, ['a', 'b', 'c'])
        self.assertAlmostEqual(scheduler.now, 1.15)

    def test_manual_cancel(self):
        scheduler = ManualScheduler()
        calls = []
        task = scheduler.call_later(0.1, lambda: calls.append(1))
        task.cancel()
        task.cancel()

        self.assertEqual(scheduler.pending_count, 0)
        self.assertEqual(scheduler.advance(1.0), 0)
        self.assertEqual(calls, [])

    def test_timer_runs(self):
        fired = threading.Event()
        task = TimerScheduler().call_later(0.01, fired.set)
        self.assertTrue(fired.wait(2.0))
        self.assertFalse(task.pending)

    def test_timer_cancel(self):
        fired = threading.Event()
        task = TimerScheduler().call_later(0.2, fired.set)
        task.cancel()
        self.assertFalse(fired.wait(0.4))

    def test_session_with_timer(self):
        """Test the settle delay on a real timer thread."""
        driver = ManualMotionDriver()
        session = SensorSession(driver, settle_delay=0.01)
        running = threading.Event()
        session.subscribe(lambda s: running.set() if s.state is SensorState.RUNNING else None)

        session.start()
        for i in range(10):
            driver.emit_acceleration(accel(0.0, 0.0, 1.0, i * 0.1))
            driver.emit_attitude(attitude(i * 0.1))

        self.assertTrue(running.wait(2.0))
        session.stop()
        self.assertIs(session.state, SensorState.STOPPED)

class TestDrivers(unittest.TestCase):
    """Test driver contracts."""

    def test_availability(self):
        self.assertTrue(ManualMotionDriver().is_available)
        self.assertFalse(ManualMotionDriver(accelerometer_available=False).is_available)
        self.assertFalse(ManualMotionDriver(device_motion_available=False).is_available)
        self.assertTrue(SimulatedMotionDriver().is_available)

    def test_subscription_cancel_once(self):
        calls = []
        subscription = Subscription("test", 0.1, lambda: calls.append(1))
        subscription.cancel()
        subscription.cancel()
        self.assertFalse(subscription.active)
        self.assertEqual(calls, [1])

    def test_manual_driver_rejects_bad_interval(self):
        with self.assertRaises(ValueError):
            ManualMotionDriver().start_accelerometer_updates(0.0, lambda s: None)

    def test_simulated_attitude_consistent(self):
        """Test that simulated attitude matches the true tilt."""
        clock_time = [100.0]
        driver = SimulatedMotionDriver(accel_noise_std=0.0, gyro_noise_std=0.0,
                                       random_state=np.random.default_rng(0),
                                       clock=lambda: clock_time[0])
        for elapsed in [0.0, 1.3, 2.7, 6.1]:
            clock_time[0] = 100.0 + elapsed
            pitch, roll, _, _ = driver.tilt_at(elapsed)
            sample = driver.read_attitude()

            self.assertEqual(sample.timestamp, 100.0 + elapsed)
            self.assertAlmostEqual(pitch_from_quaternion(sample.quaternion),
                                   math.degrees(pitch), places=6)
            self.assertAlmostEqual(lateral_roll(sample.gravity), math.degrees(roll), places=6)

            acceleration = driver.read_acceleration()
            self.assertAlmostEqual(np.linalg.norm(acceleration.acceleration), 1.0)

    def test_simulated_dropouts(self):
        driver = SimulatedMotionDriver(dropout_probability=0.5,
                                       random_state=np.random.default_rng(1))
        readings = [driver.read_acceleration() for _ in range(200)]
        self.assertTrue(any(r is None for r in readings))
        self.assertTrue(any(r is not None for r in readings))

        with self.assertRaises(ValueError):
            SimulatedMotionDriver(dropout_probability=1.0)

    def test_simulated_stream(self):
        """Test delivery on a background thread until cancelled."""
        driver = SimulatedMotionDriver(random_state=np.random.default_rng(2))
        received = []
        enough = threading.Event()

        def handler(sample):
            received.append(sample)
            if len(received) >= 3:
                enough.set()

        subscription = driver.start_accelerometer_updates(0.005, handler)
        self.assertTrue(enough.wait(2.0))
        subscription.cancel()
        self.assertIsInstance(received[0], AccelerationSample)

    def test_simulated_session_reaches_running(self):
        """Test a full calibrate-and-run cycle on the simulated driver."""
        driver = SimulatedMotionDriver(random_state=np.random.default_rng(4))
        session = SensorSession(
            driver, settle_delay=0.01,
            intervals={
                'accelerometer': 0.005, 'device_motion': 0.005,
                'calibration_accelerometer': 0.005, 'calibration_device_motion': 0.005,
            })
        reading = threading.Event()
        session.subscribe(lambda s: reading.set() if s.acceleration is not None else None)

        try:
            self.assertTrue(session.start())
            self.assertTrue(reading.wait(5.0))
            self.assertIs(session.state, SensorState.RUNNING)
        finally:
            session.stop()

        self.assertIs(session.state, SensorState.STOPPED)

if __name__ == '__main__':
    unittest.main()

#!/usr/bin/env python3
"""
Basic usage example of the tilt estimation core.

Replays a synthetic recording through a ManualMotionDriver so the whole
calibrate -> run -> stop cycle happens deterministically on one thread.
"""

import sys
import os
import math
import numpy as np

# Add core modules to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tiltcore import (
    SensorSession, ManualMotionDriver, ManualScheduler,
    AccelerationSample, AttitudeSample, Quaternion, Vector3,
)

def simulate_tilt(duration=10.0, dt=0.02, tilt_start=3.0, pitch_deg=15.0, roll_deg=10.0):
    """
    Simulate a device resting flat, then tilting forward and to the right.

    Args:
        duration: Recording length in seconds
        dt: Accelerometer sample period in seconds
        tilt_start: Time at which the tilt begins
        pitch_deg: Final pitch in degrees
        roll_deg: Final roll in degrees

    Yields:
        (timestamp, acceleration_sample, attitude_sample or None) tuples;
        attitude samples arrive every fifth step
    """
    rng = np.random.default_rng(7)
    step = 0
    t = dt
    while t < duration:
        # Ramp into the tilt over one second
        ramp = min(max((t - tilt_start) / 1.0, 0.0), 1.0)
        pitch = math.radians(pitch_deg) * ramp
        roll = math.radians(roll_deg) * ramp
        rate = 1.0 if 0.0 < ramp < 1.0 else 0.0

        gravity = np.array([
            math.sin(roll),
            math.cos(roll) * math.sin(pitch),
            -math.cos(roll) * math.cos(pitch)
        ])
        accel = -gravity + rng.normal(0, 0.01, 3)

        accel_sample = AccelerationSample(x=accel[0], y=accel[1], z=accel[2], timestamp=t)

        attitude_sample = None
        if step % 5 == 0:
            attitude_sample = AttitudeSample(
                quaternion=Quaternion(x=math.sin(pitch / 2), y=0.0, z=0.0, w=math.cos(pitch / 2)),
                gravity=Vector3.from_array(gravity),
                rotation_rate=(math.radians(pitch_deg) * rate, math.radians(roll_deg) * rate),
                timestamp=t
            )

        yield t, accel_sample, attitude_sample
        step += 1
        t += dt

def main():
    """Run the example."""
    print("Tilt Estimation - Basic Usage Example")
    print("=" * 50)

    driver = ManualMotionDriver()
    scheduler = ManualScheduler()
    session = SensorSession(driver, scheduler=scheduler)

    session.start()
    print(f"Session state: {session.state.value}")

    last_time = 0.0
    last_print = 0.0
    for t, accel_sample, attitude_sample in simulate_tilt():
        # Keep the scheduler clock in step with the recording
        scheduler.advance(t - last_time)
        last_time = t

        driver.emit_acceleration(accel_sample)
        if attitude_sample is not None:
            driver.emit_attitude(attitude_sample)

        if t - last_print >= 1.0:
            snapshot = session.snapshot()
            print(f"t={t:5.2f}s  {snapshot}")
            last_print = t

    print("\nCalibration offset:", session.offset)
    print("Statistics:", session.get_statistics())

    session.stop()
    print(f"Final state: {session.state.value}")

if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Headless tilt dashboard running on the simulated motion driver.

Calibrates, then prints pitch, roll, acceleration and trail status at the
configured output rate until interrupted.
"""

import sys
import os
import time
import threading
import signal
import logging
import numpy as np

# Add core modules to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from tiltcore import SensorSession, SensorState, SimulatedMotionDriver, TrailBuffer
from tiltcore.math import magnitude, normalize_pitch, normalize_roll
from config import Config

logger = logging.getLogger(__name__)

def configure_logging(config: Config):
    """Set up root logging from the configuration."""
    handlers = [logging.StreamHandler()]
    if config.enable_logging and config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers
    )

class TiltDashboardSystem:
    """Simulated sensor plus session plus status output."""

    def __init__(self, config: Config):
        """
        Initialize the dashboard system.

        Args:
            config: Loaded configuration
        """
        self.config = config

        sim = self.config.simulator
        seed = sim.get("seed")
        self.driver = SimulatedMotionDriver(
            pitch_amplitude_deg=sim["pitch_amplitude_deg"],
            roll_amplitude_deg=sim["roll_amplitude_deg"],
            pitch_frequency_hz=sim["pitch_frequency_hz"],
            roll_frequency_hz=sim["roll_frequency_hz"],
            accel_noise_std=sim["accel_noise_std"],
            gyro_noise_std=sim["gyro_noise_std"],
            dropout_probability=sim["dropout_probability"],
            random_state=np.random.default_rng(seed) if seed is not None else None
        )

        self.session = SensorSession(
            self.driver,
            smoothing_factor=self.config.smoothing_factor,
            intervals=self.config.intervals,
            calibration_samples=self.config.calibration_samples,
            settle_delay=self.config.settle_delay,
            trail=TrailBuffer(
                max_points=self.config.trail["max_points"],
                time_window=self.config.trail["time_window_s"]
            )
        )
        self.unsubscribe = self.session.subscribe(self._on_snapshot)

        # Threading control
        self.running = False
        self.output_thread = None

        # Data storage
        self.last_state = SensorState.STOPPED
        self.start_time = time.time()

        # Setup signal handlers
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        logger.info("Tilt dashboard initialized (simulated driver)")

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info("Shutdown signal received, stopping system...")
        self.stop()
        sys.exit(0)

    def _on_snapshot(self, snapshot):
        if snapshot.state is not self.last_state:
            logger.info("Session state: %s -> %s", self.last_state.value, snapshot.state.value)
            self.last_state = snapshot.state

    def start(self) -> bool:
        """Start calibration and the status output loop."""
        if self.running:
            logger.warning("System already running")
            return True

        logger.info("Calibrating... (keep device stationary)")
        if not self.session.start():
            logger.error("Sensor session could not start")
            return False

        self.running = True
        self.output_thread = threading.Thread(target=self._output_loop, daemon=True)
        self.output_thread.start()
        return True

    def stop(self):
        """Stop the session and the output loop."""
        if not self.running:
            return

        self.running = False
        self.session.stop()

        if self.output_thread and self.output_thread.is_alive() \
                and self.output_thread is not threading.current_thread():
            self.output_thread.join(timeout=2.0)

        logger.info("Tilt dashboard stopped")

    def _output_loop(self):
        """Status output loop."""
        output_interval = 1.0 / self.config.output_rate_hz

        while self.running:
            self._print_status()
            time.sleep(output_interval)

    def _print_status(self):
        """Print current session status."""
        uptime = time.time() - self.start_time
        status = self.get_current_status()
        stats = self.session.get_statistics()

        print(f"\n=== Tilt Dashboard Status (Uptime: {uptime:.1f}s) ===")
        print(f"State:    {status['state']}")
        print(f"Pitch:    {status['pitch']:.1f}° (gauge {status['pitch_gauge']:.1f}°)")
        print(f"Roll:     {status['roll']:.1f}° (gauge {status['roll_gauge']:.1f}°)")

        accel = status['acceleration']
        if accel is not None:
            print(f"Accel:    [{accel['x']:.3f}, {accel['y']:.3f}, {accel['z']:.3f}] g "
                  f"(|a| = {accel['magnitude']:.2f} g)")
        else:
            print("Accel:    --")

        print(f"Trail:    {status['trail_points']} points")
        print(f"Samples:  {stats['accel_samples']} accel, {stats['attitude_samples']} attitude, "
              f"{stats['dropped_samples']} dropped, {stats['calibrations']} calibrations")

    def get_current_status(self) -> dict:
        """Get current readings for external API."""
        snapshot = self.session.snapshot()

        acceleration = None
        if snapshot.acceleration is not None:
            a = snapshot.acceleration
            acceleration = {
                'x': a.x, 'y': a.y, 'z': a.z,
                'magnitude': magnitude(a.x, a.y, a.z),
                'timestamp': a.timestamp
            }

        return {
            'timestamp': time.time(),
            'state': snapshot.state.value,
            'pitch': snapshot.pitch,
            'roll': snapshot.roll,
            'pitch_gauge': normalize_pitch(snapshot.pitch),
            'roll_gauge': normalize_roll(snapshot.roll),
            'acceleration': acceleration,
            'trail_points': len(snapshot.trail)
        }

def main():
    """Main entry point."""
    config = Config(sys.argv[1] if len(sys.argv) > 1 else "config.json")
    configure_logging(config)

    print("Tilt Dashboard (simulated sensor)")
    print("=" * 50)

    # Create and start system
    system = TiltDashboardSystem(config)

    if not system.start():
        print("Failed to start system")
        return 1

    try:
        # Keep main thread alive
        while system.running:
            time.sleep(1.0)

    except KeyboardInterrupt:
        print("\nKeyboard interrupt received")

    finally:
        system.stop()

    return 0

if __name__ == "__main__":
    sys.exit(main())

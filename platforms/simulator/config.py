"""
Configuration manager for the simulated tilt dashboard runner.
"""

import copy
import json
import logging
import os
from typing import Dict, Any

logger = logging.getLogger(__name__)

def _deep_update(base: Dict[str, Any], override: Dict[str, Any]):
    """Merge override into base in place, section by section."""
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _deep_update(base[key], value)
        else:
            base[key] = value

class Config:
    """Configuration manager for the tilt dashboard."""

    DEFAULT_CONFIG = {
        # Filtering
        "smoothing_factor": 0.15,

        # Driver update intervals (seconds)
        "intervals": {
            "accelerometer": 0.02,
            "device_motion": 0.05,
            "calibration_accelerometer": 0.1,
            "calibration_device_motion": 0.1
        },

        # Calibration
        "calibration_samples": 10,
        "settle_delay_s": 0.5,

        # Trail
        "trail": {
            "max_points": 200,
            "time_window_s": 3.5
        },

        # Simulated sensor
        "simulator": {
            "pitch_amplitude_deg": 20.0,
            "roll_amplitude_deg": 15.0,
            "pitch_frequency_hz": 0.1,
            "roll_frequency_hz": 0.07,
            "accel_noise_std": 0.01,
            "gyro_noise_std": 0.005,
            "dropout_probability": 0.0,
            "seed": None
        },

        # Data logging
        "enable_logging": True,
        "log_file": "tilt_dashboard.log",
        "log_level": "INFO",

        # Output configuration
        "output_rate_hz": 1.0
    }

    def __init__(self, config_file: str = "config.json"):
        """
        Load configuration, writing a default file if none exists.

        Args:
            config_file: Path to configuration file
        """
        self.config_file = config_file
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if not os.path.exists(config_file):
            logger.info("Config file %s not found, writing defaults", config_file)
            self.save_config()
        else:
            self.load_config()

    def load_config(self) -> bool:
        """
        Overlay values from the config file on the current configuration.

        Returns:
            True if the file was read and applied
        """
        try:
            with open(self.config_file, 'r') as f:
                overrides = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load config %s: %s", self.config_file, e)
            return False

        if not isinstance(overrides, dict):
            logger.error("Config file %s must contain a JSON object", self.config_file)
            return False

        _deep_update(self.config, overrides)
        logger.info("Configuration loaded from %s", self.config_file)
        return True

    def save_config(self) -> bool:
        """Write the current configuration; True on success."""
        try:
            with open(self.config_file, 'w') as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            logger.error("Failed to save config %s: %s", self.config_file, e)
            return False
        return True

    def get(self, key: str, default=None):
        """Look up a dotted key such as 'trail.max_points'."""
        node = self.config
        for part in key.split('.'):
            try:
                node = node[part]
            except (KeyError, TypeError):
                return default
        return node

    def set(self, key: str, value: Any):
        """Assign a dotted key, creating intermediate sections."""
        *sections, leaf = key.split('.')
        node = self.config
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = value

    # Property accessors for common configuration values
    @property
    def smoothing_factor(self) -> float:
        return self.config["smoothing_factor"]

    @property
    def intervals(self) -> Dict[str, float]:
        return self.config["intervals"]

    @property
    def calibration_samples(self) -> int:
        return self.config["calibration_samples"]

    @property
    def settle_delay(self) -> float:
        return self.config["settle_delay_s"]

    @property
    def trail(self) -> Dict[str, float]:
        return self.config["trail"]

    @property
    def simulator(self) -> Dict[str, Any]:
        return self.config["simulator"]

    @property
    def enable_logging(self) -> bool:
        return self.config["enable_logging"]

    @property
    def log_file(self) -> str:
        return self.config["log_file"]

    @property
    def log_level(self) -> str:
        return self.config["log_level"]

    @property
    def output_rate_hz(self) -> float:
        return self.config["output_rate_hz"]


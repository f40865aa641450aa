"""
Mathematical constants and fixed design parameters for tilt estimation.
"""

import math

# Conversion factors
DEG_TO_RAD = math.pi / 180.0
RAD_TO_DEG = 180.0 / math.pi

# Resting gravity on the Z axis (g units, as reported by the motion driver)
GRAVITY_G = 1.0

# Low-pass filter
SMOOTHING_FACTOR = 0.15  # Lower values = more smoothing

# Complementary filter weights (gyro-integrated share of each estimate)
PITCH_GYRO_WEIGHT = 0.15
PITCH_ATTITUDE_WEIGHT = 0.85
ROLL_GYRO_WEIGHT = 0.4
ROLL_GRAVITY_WEIGHT = 0.6

# Roll deadband (degrees)
ROLL_DEADBAND_DEG = 1.0

# Output clamps (degrees)
PITCH_LIMIT_DEG = 90.0
ROLL_LIMIT_DEG = 45.0

# Below this vertical gravity magnitude no roll signal is available
MIN_VERTICAL_GRAVITY = 0.01

# Calibration
CALIBRATION_SAMPLE_COUNT = 10
CALIBRATION_SETTLE_DELAY_S = 0.5

# Trail buffer
TRAIL_MAX_POINTS = 200
TRAIL_TIME_WINDOW_S = 3.5

# Driver update intervals (seconds)
ACCEL_INTERVAL_RUNNING_S = 0.02
MOTION_INTERVAL_RUNNING_S = 0.05
ACCEL_INTERVAL_CALIBRATING_S = 0.1
MOTION_INTERVAL_CALIBRATING_S = 0.1

# Gauge display ranges (degrees / g)
PITCH_GAUGE_RANGE_DEG = 30.0
ROLL_GAUGE_RANGE_DEG = 45.0
TRAIL_GAUGE_RANGE_G = 1.5

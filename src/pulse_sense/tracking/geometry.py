"""
Tracking Geometry
=================

Angle arithmetic and the path-loss range model.

Angles live in (-pi, pi]. Interpolation always follows the shortest arc,
so blending from 170° toward -170° passes through 180°, never through 0°.
"""

import math
from typing import Optional


DEFAULT_TX_POWER_DBM = -59
PATH_LOSS_EXPONENT = 2.0
MIN_RANGE_M = 0.3
MAX_RANGE_M = 30.0


def wrap_pi(value: float) -> float:
    """Wrap an angle into (-pi, pi]."""
    while value <= -math.pi:
        value += 2 * math.pi
    while value > math.pi:
        value -= 2 * math.pi
    return value


def angle_diff(target: float, source: float) -> float:
    """Signed shortest rotation from source to target."""
    return wrap_pi(target - source)


def angle_lerp(source: float, target: float, t: float) -> float:
    """Move fraction t of the shortest arc from source toward target."""
    return wrap_pi(source + angle_diff(target, source) * t)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def estimate_range(rssi_ema: float, tx_power: Optional[int] = None) -> float:
    """
    Log-distance path-loss inversion.
    
        distance = 10 ** ((tx_power - rssi) / (10 * n)),  n = 2.0
    
    Missing tx power falls back to -59 dBm. The result is clamped to
    [0.3, 30] metres: an order-of-magnitude estimate, not metrology.
    """
    tx = DEFAULT_TX_POWER_DBM if tx_power is None else tx_power
    distance = 10.0 ** ((tx - rssi_ema) / (10.0 * PATH_LOSS_EXPONENT))
    return clamp(distance, MIN_RANGE_M, MAX_RANGE_M)

"""
Dot Projection
==============

Policies that place trackable devices in viewport coordinates.

Two policies exist and they are NOT interchangeable mid-session: switching
would visibly relocate every dot. A tracker picks one at construction.

    - CompassConeProjector (default): bearing relative to the compass yaw
      mapped into a 70° field-of-view cone; vertical position from range.
      Without compass input the yaw stays 0 and track azimuths are
      hash-seeded, so placement is still deterministic.
    - HashRadialProjector: stable hash-derived angle around the viewport
      centre, radius from range, plus a confidence-scaled jitter.
"""

import math
from typing import Protocol

from pulse_sense.identity.hashing import stable_hash
from pulse_sense.models.tracking import DeviceTrack, UiDot
from pulse_sense.tracking.geometry import MAX_RANGE_M, MIN_RANGE_M, clamp, lerp, wrap_pi


FOV_RAD = math.radians(70.0)
NEAR_RANGE_M = 1.0
FAR_RANGE_M = 12.0


class DotProjector(Protocol):
    """Maps one trackable track to a UiDot inside a known viewport."""
    
    name: str
    
    def project(
        self,
        track: DeviceTrack,
        range_meters: float,
        yaw_rad: float,
        width: float,
        height: float,
    ) -> UiDot:
        ...


def _dot_size(range_meters: float, confidence: float) -> float:
    base = lerp(10.0, 34.0, clamp(1.0 - range_meters / FAR_RANGE_M, 0.0, 1.0))
    return base * lerp(0.7, 1.2, clamp(confidence, 0.0, 1.0))


def _dot(track: DeviceTrack, range_meters: float, x: float, y: float) -> UiDot:
    return UiDot(
        key=track.key,
        confidence=track.confidence,
        phone_score=track.phone_score,
        rssi_ema=track.rssi_ema,
        range_meters=range_meters,
        screen_x=x,
        screen_y=y,
        size_px=_dot_size(range_meters, track.confidence),
        alpha=clamp(track.confidence, 0.2, 1.0),
    )


class CompassConeProjector:
    """Compass-relative placement inside a field-of-view cone."""
    
    name = "compass_cone"
    
    def project(
        self,
        track: DeviceTrack,
        range_meters: float,
        yaw_rad: float,
        width: float,
        height: float,
    ) -> UiDot:
        center_x = width / 2.0
        center_y = height / 2.0
        margin = max(width * 0.05, 14.0)
        
        relative = wrap_pi(track.azimuth_rad - yaw_rad)
        x_offset = (relative / (FOV_RAD / 2.0)) * (width * 0.45)
        x = clamp(center_x + x_offset, margin, width - margin)
        
        t = clamp((range_meters - NEAR_RANGE_M) / (FAR_RANGE_M - NEAR_RANGE_M), 0.0, 1.0)
        y_offset = (-0.15 + 0.45 * t) * height
        y = clamp(center_y + y_offset, margin, height - margin)
        
        return _dot(track, range_meters, x, y)


class HashRadialProjector:
    """Hash-seeded polar placement around the viewport centre."""
    
    name = "hash_radial"
    
    def project(
        self,
        track: DeviceTrack,
        range_meters: float,
        yaw_rad: float,
        width: float,
        height: float,
    ) -> UiDot:
        min_dim = min(width, height)
        radius = self._radius(range_meters, min_dim)
        angle = self._angle(track.key, track.confidence)
        
        x = clamp(width / 2.0 + math.cos(angle) * radius, 0.0, width)
        y = clamp(height / 2.0 + math.sin(angle) * radius, 0.0, height)
        return _dot(track, range_meters, x, y)
    
    @staticmethod
    def _radius(range_meters: float, min_dim: float) -> float:
        clamped = clamp(range_meters, MIN_RANGE_M, MAX_RANGE_M)
        t = (clamped - MIN_RANGE_M) / (MAX_RANGE_M - MIN_RANGE_M)
        return (0.1 + 0.35 * t) * min_dim
    
    @staticmethod
    def _angle(key: str, confidence: float) -> float:
        base_seed = abs(stable_hash(key))
        jitter_seed = abs(stable_hash(f"{key}:jitter"))
        base_angle = (base_seed % 3600) / 3600.0 * (2 * math.pi)
        jitter = ((jitter_seed % 1000) / 1000.0 - 0.5) * 0.4 * (1.0 - confidence)
        return base_angle + jitter


PROJECTORS = {
    CompassConeProjector.name: CompassConeProjector,
    HashRadialProjector.name: HashRadialProjector,
}


def create_projector(name: str) -> DotProjector:
    """Build a projector by config name."""
    try:
        return PROJECTORS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown projection policy: {name} (expected one of {sorted(PROJECTORS)})"
        ) from None

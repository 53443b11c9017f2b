"""
Tracking Models
===============

Data models for the per-device tracker.

BleScanEvent and YawSample flow in from external collaborators (radio
scanner, orientation sensor). UiDot and DebugSnapshot flow out to the
renderer. DeviceTrack is internal to the tracker and never crosses the
lock boundary.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class BleScanEvent:
    """
    One observed advertisement.
    
    Attributes:
        device_key: Track identity (hashed advertisement fields)
        timestamp_ms: Observation time in milliseconds
        rssi: Received signal strength (dBm)
        tx_power: Advertised transmit power at 1 m, if present
        manufacturer_id: First manufacturer-specific data id, if present
        service_uuids: Advertised service UUIDs
    """
    
    device_key: str
    timestamp_ms: int
    rssi: int
    tx_power: Optional[int] = None
    manufacturer_id: Optional[int] = None
    service_uuids: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class YawSample:
    """Compass heading of the observing device (radians)."""
    
    timestamp_ms: int
    yaw_rad: float


@dataclass(slots=True)
class DeviceTrack:
    """
    Mutable per-device state owned by the tracker.
    
    Attributes:
        key: Device key
        last_seen_ms: Timestamp of the most recent scan
        seen_count: Number of scans observed
        rssi_ema: EMA of RSSI (alpha 0.2)
        rssi_var: EMA of squared deviation from rssi_ema (alpha 0.1)
        confidence: Accrued confidence in [0, 1]
        phone_score: Likelihood the device is a phone in [0, 1]
        azimuth_rad: Estimated bearing in (-pi, pi]
        azimuth_confidence: Confidence in the bearing
        tx_power: Last advertised tx power, if any
    """
    
    key: str
    last_seen_ms: int
    seen_count: int = 0
    rssi_ema: float = 0.0
    rssi_var: float = 0.0
    confidence: float = 0.0
    phone_score: float = 0.0
    azimuth_rad: float = 0.0
    azimuth_confidence: float = 0.0
    tx_power: Optional[int] = None


@dataclass(frozen=True, slots=True)
class UiDot:
    """
    One trackable device projected into viewport coordinates.
    """
    
    key: str
    confidence: float
    phone_score: float
    rssi_ema: float
    range_meters: float
    screen_x: float
    screen_y: float
    size_px: float
    alpha: float
    
    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "key": self.key,
            "confidence": round(self.confidence, 4),
            "phone_score": round(self.phone_score, 4),
            "rssi_ema": round(self.rssi_ema, 2),
            "range_meters": round(self.range_meters, 2),
            "screen_x": round(self.screen_x, 1),
            "screen_y": round(self.screen_y, 1),
            "size_px": round(self.size_px, 1),
            "alpha": round(self.alpha, 3),
        }


@dataclass(frozen=True, slots=True)
class DebugDevice:
    """Compact per-track row for the debug overlay."""
    
    key_prefix: str
    rssi_ema: float
    phone_score: float
    confidence: float
    azimuth_confidence: float
    last_seen_delta_ms: int
    
    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "key_prefix": self.key_prefix,
            "rssi_ema": round(self.rssi_ema, 2),
            "phone_score": round(self.phone_score, 4),
            "confidence": round(self.confidence, 4),
            "azimuth_confidence": round(self.azimuth_confidence, 4),
            "last_seen_delta_ms": self.last_seen_delta_ms,
        }


@dataclass(frozen=True, slots=True)
class DebugSnapshot:
    """Tracker internals summarized for the debug overlay."""
    
    total_tracks: int = 0
    trackable_count: int = 0
    yaw_rad: float = 0.0
    scan_count: int = 0
    last_scan_ms: int = 0
    top_devices: Tuple[DebugDevice, ...] = field(default_factory=tuple)
    
    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "total_tracks": self.total_tracks,
            "trackable_count": self.trackable_count,
            "yaw_rad": round(self.yaw_rad, 4),
            "scan_count": self.scan_count,
            "last_scan_ms": self.last_scan_ms,
            "top_devices": [device.to_dict() for device in self.top_devices],
        }

"""
API Models
==========

Pydantic request schemas for the HTTP ingest and configuration endpoints.

Scanner collaborators post one payload per observation. Malformed payloads
are rejected by validation (HTTP 422) before they reach any estimator;
optional fields that are simply absent degrade to documented defaults
inside the core.

Example:
    {
        "address": "02:00:00:00:00:01",
        "rssi": -63,
        "timestamp_ms": 1707321234567,
        "tx_power": -59,
        "manufacturer_data": {"76": "0215"},
        "service_uuids": ["0000fe9f-0000-1000-8000-00805f9b34fb"]
    }
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from pulse_sense.ingest.adapters import BleAdvertisement, WifiScanResult
from pulse_sense.models.tracking import YawSample


class BleAdvertisementMessage(BaseModel):
    """
    One BLE advertisement reported by a scanner.

    Attributes:
        rssi: Received signal strength (dBm)
        timestamp_ms: Wall-clock milliseconds
        address: Session-stable hardware address, if the platform exposes one
        tx_power: Advertised tx power at 1 m, if present
        manufacturer_data: Hex-encoded payload keyed by decimal company id
        service_uuids: Advertised service UUIDs
        local_name: Advertised local name
        raw_hex: Raw advertisement bytes, hex-encoded
    """

    rssi: int = Field(..., ge=-150, le=20, description="RSSI in dBm")
    timestamp_ms: int = Field(..., ge=0, description="Observation time (ms)")
    address: Optional[str] = Field(default=None, description="Hardware address")
    tx_power: Optional[int] = Field(default=None, ge=-127, le=127, description="Tx power (dBm)")
    manufacturer_data: Dict[int, str] = Field(
        default_factory=dict,
        description="Hex payload by company id",
    )
    service_uuids: List[str] = Field(default_factory=list, description="Service UUIDs")
    local_name: Optional[str] = Field(default=None, description="Local name")
    raw_hex: Optional[str] = Field(
        default=None,
        pattern=r"^([0-9a-fA-F]{2})*$",
        description="Raw advertisement bytes (hex)",
    )

    def to_advertisement(self) -> BleAdvertisement:
        """Convert to the ingest adapter's advertisement."""
        return BleAdvertisement(
            rssi=self.rssi,
            timestamp_ms=self.timestamp_ms,
            address=self.address,
            tx_power=self.tx_power,
            manufacturer_data={
                company: _hex_bytes(payload)
                for company, payload in self.manufacturer_data.items()
            },
            service_uuids=tuple(self.service_uuids),
            local_name=self.local_name,
            raw_bytes=bytes.fromhex(self.raw_hex) if self.raw_hex is not None else None,
        )


class WifiResultMessage(BaseModel):
    """One access point within a Wi-Fi scan batch."""

    bssid: Optional[str] = Field(default=None, description="Access point BSSID")
    rssi: int = Field(..., ge=-150, le=20, description="RSSI in dBm")


class WifiScanMessage(BaseModel):
    """One Wi-Fi scan batch."""

    timestamp_ms: int = Field(..., ge=0, description="Scan completion time (ms)")
    results: List[WifiResultMessage] = Field(default_factory=list)

    def to_results(self) -> List[WifiScanResult]:
        return [
            WifiScanResult(rssi=result.rssi, timestamp_ms=self.timestamp_ms, bssid=result.bssid)
            for result in self.results
        ]


class YawMessage(BaseModel):
    """Compass heading sample."""

    timestamp_ms: int = Field(..., ge=0)
    yaw_rad: float = Field(..., ge=-7.0, le=7.0, description="Heading in radians")

    def to_sample(self) -> YawSample:
        return YawSample(timestamp_ms=self.timestamp_ms, yaw_rad=self.yaw_rad)


class ViewportMessage(BaseModel):
    """Renderer viewport size in pixels."""

    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)


def _hex_bytes(payload: str) -> bytes:
    try:
        return bytes.fromhex(payload)
    except ValueError:
        # Manufacturer payloads only matter for their company id
        return b""

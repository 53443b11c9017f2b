"""
Scan Adapters
=============

Platform-neutral translation of raw scan results into core ingest events.

The radio scanners themselves are external. Whatever they capture is
reduced here to a key plus RSSI before it reaches any estimator: raw
addresses and BSSIDs never enter engine state.

Routing:
    BLE advertisement  -> DeviceTracker   (BleScanEvent, session-stable key)
                       -> SignalEngine    (ephemeral "ble" id, kind BLE)
    Wi-Fi scan result  -> SignalEngine    (ephemeral "wifi" id, kind WIFI)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from pulse_sense.identity.device_key import resolve_scan_key
from pulse_sense.identity.ephemeral import EphemeralIdGenerator
from pulse_sense.models.signal import SourceKind
from pulse_sense.models.tracking import BleScanEvent
from pulse_sense.signals.engine import SignalEngine
from pulse_sense.tracking.tracker import DeviceTracker


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BleAdvertisement:
    """
    Raw BLE advertisement as reported by a platform scanner.
    
    Attributes:
        rssi: Received signal strength (dBm)
        timestamp_ms: Wall-clock milliseconds
        address: Session-stable hardware address, if exposed
        tx_power: Advertised tx power, if present
        manufacturer_data: Manufacturer-specific data by company id
        service_uuids: Advertised service UUIDs
        local_name: Advertised local name, if any
        raw_bytes: Raw advertisement payload, if exposed
    """
    
    rssi: int
    timestamp_ms: int
    address: Optional[str] = None
    tx_power: Optional[int] = None
    manufacturer_data: Dict[int, bytes] = field(default_factory=dict)
    service_uuids: Tuple[str, ...] = ()
    local_name: Optional[str] = None
    raw_bytes: Optional[bytes] = None
    
    @property
    def manufacturer_id(self) -> Optional[int]:
        """First manufacturer id in the advertisement."""
        return next(iter(self.manufacturer_data), None)
    
    @property
    def device_key(self) -> str:
        return resolve_scan_key(
            self.address,
            self.raw_bytes,
            self.manufacturer_id,
            self.service_uuids,
            self.local_name,
        )
    
    def to_scan_event(self) -> BleScanEvent:
        """Reduce to the tracker's ingest event."""
        return BleScanEvent(
            device_key=self.device_key,
            timestamp_ms=self.timestamp_ms,
            rssi=self.rssi,
            tx_power=self.tx_power,
            manufacturer_id=self.manufacturer_id,
            service_uuids=tuple(self.service_uuids),
        )


@dataclass(frozen=True)
class WifiScanResult:
    """One access point from a Wi-Fi scan."""
    
    rssi: int
    timestamp_ms: int
    bssid: Optional[str] = None


class SignalIngestor:
    """
    Routes scan results into the configured estimators.
    
    Either estimator may be omitted. Scanner failures (permissions, radio
    off) simply mean these methods are never called.
    
    Example:
        ingestor = SignalIngestor(engine=engine, tracker=tracker, ids=ids)
        ingestor.on_ble(advertisement)
        ingestor.on_wifi_batch(results)
    """
    
    def __init__(
        self,
        engine: Optional[SignalEngine] = None,
        tracker: Optional[DeviceTracker] = None,
        ids: Optional[EphemeralIdGenerator] = None,
        enable_wifi: bool = True,
    ) -> None:
        self.engine = engine
        self.tracker = tracker
        self.ids = ids or EphemeralIdGenerator()
        self.enable_wifi = enable_wifi
        self._ble_count: int = 0
        self._wifi_count: int = 0
        self._wifi_dropped: int = 0
    
    def on_ble(self, advertisement: BleAdvertisement) -> BleScanEvent:
        """Route one BLE advertisement. Returns the derived scan event."""
        self._ble_count += 1
        event = advertisement.to_scan_event()
        
        if self.tracker is not None:
            self.tracker.on_scan(event)
        if self.engine is not None:
            source_id = self.ids.id_for("ble", event.device_key, advertisement.timestamp_ms)
            self.engine.add_sample(
                source_id, advertisement.rssi, advertisement.timestamp_ms, SourceKind.BLE
            )
        return event
    
    def on_wifi(self, result: WifiScanResult) -> Optional[str]:
        """
        Route one Wi-Fi result to the fusion engine.
        
        Returns:
            The ephemeral source id, or None if Wi-Fi ingest is disabled
        """
        if not self.enable_wifi or self.engine is None:
            self._wifi_dropped += 1
            return None
        
        self._wifi_count += 1
        source_id = self.ids.id_for("wifi", result.bssid or "unknown", result.timestamp_ms)
        self.engine.add_sample(source_id, result.rssi, result.timestamp_ms, SourceKind.WIFI)
        return source_id
    
    def on_wifi_batch(self, results: Iterable[WifiScanResult]) -> int:
        """Route a whole scan batch. Returns the number of results ingested."""
        return sum(1 for result in results if self.on_wifi(result) is not None)
    
    def get_metrics(self) -> dict:
        """Get ingest counters for observability."""
        return {
            "ble_count": self._ble_count,
            "wifi_count": self._wifi_count,
            "wifi_dropped": self._wifi_dropped,
        }

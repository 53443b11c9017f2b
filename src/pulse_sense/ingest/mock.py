"""
Mock Scan Source
================

Deterministic simulated radio environment for testing and demos.

Generates stable, predictable advertisements without any radio access:
    - A fixed population of simulated devices, identified by index
    - RSSI follows a slow sinusoid around a per-device base level
    - Small deterministic noise derived from stable_hash (±3 dB)
    - Every device advertises on every step; every third device is a
      phone-vendor device so the tracker has something to surface

Given the same constructor arguments and the same sequence of timestamps,
two sources produce identical output.
"""

import logging
import math
from typing import List

from pulse_sense.identity.hashing import stable_hash
from pulse_sense.ingest.adapters import BleAdvertisement, WifiScanResult


logger = logging.getLogger(__name__)


APPLE_COMPANY_ID = 0x004C
GENERIC_COMPANY_ID = 0x0059


class MockScanSource:
    """
    Simulated scanner producing BLE advertisements and Wi-Fi results.
    
    Attributes:
        device_count: Number of simulated BLE devices
        access_point_count: Number of simulated Wi-Fi access points
        variation_amplitude: Amplitude of the RSSI sinusoid (dB)
        variation_period_ms: Period of the RSSI sinusoid
    """
    
    def __init__(
        self,
        device_count: int = 4,
        access_point_count: int = 2,
        variation_amplitude: float = 4.0,
        variation_period_ms: int = 30_000,
    ) -> None:
        if device_count < 0 or access_point_count < 0:
            raise ValueError("device and access point counts must be >= 0")
        if variation_period_ms <= 0:
            raise ValueError("variation_period_ms must be > 0")
        
        self.device_count = device_count
        self.access_point_count = access_point_count
        self.variation_amplitude = variation_amplitude
        self.variation_period_ms = variation_period_ms
        self._step: int = 0
        
        logger.info(
            f"MockScanSource initialized: devices={device_count}, "
            f"access_points={access_point_count}"
        )
    
    def _rssi(self, label: str, base: float, timestamp_ms: int) -> int:
        phase = (abs(stable_hash(label)) % 360) * math.pi / 180.0
        variation = self.variation_amplitude * math.sin(
            2 * math.pi * timestamp_ms / self.variation_period_ms + phase
        )
        noise = abs(stable_hash(f"{label}:{timestamp_ms}")) % 7 - 3
        return int(round(base + variation + noise))
    
    def advertisements(self, timestamp_ms: int) -> List[BleAdvertisement]:
        """One advertisement per simulated device at timestamp_ms."""
        self._step += 1
        result = []
        for index in range(self.device_count):
            label = f"mock-ble-{index}"
            company = APPLE_COMPANY_ID if index % 3 == 0 else GENERIC_COMPANY_ID
            result.append(
                BleAdvertisement(
                    rssi=self._rssi(label, -50.0 - 8.0 * index, timestamp_ms),
                    timestamp_ms=timestamp_ms,
                    address=f"02:00:00:00:00:{index:02x}",
                    manufacturer_data={company: b"\x00"},
                    service_uuids=(f"0000fe{index % 10:02x}-0000-1000-8000-00805f9b34fb",),
                )
            )
        return result
    
    def wifi_results(self, timestamp_ms: int) -> List[WifiScanResult]:
        """One result per simulated access point at timestamp_ms."""
        return [
            WifiScanResult(
                rssi=self._rssi(f"mock-ap-{index}", -45.0 - 20.0 * index, timestamp_ms),
                timestamp_ms=timestamp_ms,
                bssid=f"0a:00:00:00:01:{index:02x}",
            )
            for index in range(self.access_point_count)
        ]
    
    @property
    def step_count(self) -> int:
        """Number of advertisement batches generated."""
        return self._step

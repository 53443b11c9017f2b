"""
Ingest Module
=============

Translation from scanner output to core ingest events, plus a
deterministic mock scanner for testing and demos.
"""

from pulse_sense.ingest.adapters import BleAdvertisement, SignalIngestor, WifiScanResult
from pulse_sense.ingest.mock import MockScanSource

__all__ = ["BleAdvertisement", "WifiScanResult", "SignalIngestor", "MockScanSource"]

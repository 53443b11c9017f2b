"""
Test Configuration
==================

Pytest fixtures and test configuration for PulseSense.

The service tick loop is slowed down and the mock scanner disabled so that
API tests observe only the data they post.
"""

import os

os.environ.setdefault("PULSE_TICK_INTERVAL_MS", "10000")
os.environ.setdefault("PULSE_INGEST_BACKEND", "none")
os.environ.setdefault("PULSE_LOG_LEVEL", "WARNING")

import pytest

from pulse_sense.models.signal import SourceKind
from pulse_sense.models.tracking import BleScanEvent
from pulse_sense.signals.engine import SignalEngine
from pulse_sense.tracking.tracker import DeviceTracker


@pytest.fixture
def engine():
    """Fresh fusion engine with default parameters."""
    return SignalEngine()


@pytest.fixture
def tracker():
    """Fresh tracker with the default compass-cone projection."""
    return DeviceTracker()


@pytest.fixture
def feed_source():
    """Add one sample per RSSI value for a source, step_ms apart. Returns the last timestamp."""
    
    def _feed(engine, source_id, rssi_values, start_ms=0, step_ms=1_000, kind=SourceKind.BLE):
        timestamp = start_ms
        for rssi in rssi_values:
            engine.add_sample(source_id, rssi, timestamp, kind)
            timestamp += step_ms
        return timestamp - step_ms
    
    return _feed


@pytest.fixture
def scan():
    """Build a BleScanEvent with sensible defaults."""
    
    def _scan(key="phone-1", timestamp_ms=0, rssi=-60, tx_power=None, manufacturer_id=None):
        return BleScanEvent(
            device_key=key,
            timestamp_ms=timestamp_ms,
            rssi=rssi,
            tx_power=tx_power,
            manufacturer_id=manufacturer_id,
        )
    
    return _scan

"""
PulseSense
==========

Privacy-preserving presence estimation from radio signal strength.

This package turns a noisy, intermittent stream of (source, RSSI, timestamp)
observations from nearby Bluetooth LE and Wi-Fi devices into a stable,
ranked picture of how many distinct things are nearby, how confident the
estimate is, and whether they are moving. No stable hardware identifier is
ever stored.

Components:
    - identity: hashing, ephemeral ids, device keys
    - signals: sliding windows and the clustering fusion engine
    - tracking: per-device tracker, compass fusion, viewport projection
    - ingest: scanner adapters and a deterministic mock scan source
    - main: FastAPI service driving the estimators

Example:
    from pulse_sense.signals import SignalEngine
    from pulse_sense.tracking import DeviceTracker

    engine = SignalEngine()
    engine.add_sample("source", -60, 1_000)
    clusters = engine.get_clusters_snapshot(1_500)
"""

__version__ = "0.1.0"
__author__ = "PulseSense Project"

__all__ = [
    "__version__",
]

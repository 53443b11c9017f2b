"""
Data Models
===========

Value objects for the PulseSense estimators.

Models:
    Signal:
        - SourceKind, MotionState, Trend, ConfidenceLevel: enums
        - SignalSample, SourceObservation: ingest for the fusion engine
        - SignalSourceSnapshot, ClusterSnapshot: fusion engine output
        - PresenceSummary: summary shared by both estimators

    Tracking:
        - BleScanEvent, YawSample: ingest for the tracker
        - DeviceTrack: internal per-device state
        - UiDot, DebugDevice, DebugSnapshot: tracker output

HTTP request schemas live in pulse_sense.models.api and are not
re-exported here.
"""

from pulse_sense.models.signal import (
    ClusterSnapshot,
    ConfidenceLevel,
    MotionState,
    PresenceSummary,
    SignalSample,
    SignalSourceSnapshot,
    SourceKind,
    SourceObservation,
    Trend,
)
from pulse_sense.models.tracking import (
    BleScanEvent,
    DebugDevice,
    DebugSnapshot,
    DeviceTrack,
    UiDot,
    YawSample,
)

__all__ = [
    # Signal
    "SourceKind",
    "MotionState",
    "Trend",
    "ConfidenceLevel",
    "SignalSample",
    "SourceObservation",
    "SignalSourceSnapshot",
    "ClusterSnapshot",
    "PresenceSummary",
    # Tracking
    "BleScanEvent",
    "YawSample",
    "DeviceTrack",
    "UiDot",
    "DebugDevice",
    "DebugSnapshot",
]

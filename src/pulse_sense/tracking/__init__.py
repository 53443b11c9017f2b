"""
Tracking Module
===============

Per-identity variant of presence estimation.

Components:
    - DeviceTracker: EMA tracks, phone scoring, range, compass fusion
    - CompassConeProjector / HashRadialProjector: viewport placement policies
    - ObservableState: latest-value container the UI subscribes to
"""

from pulse_sense.tracking.geometry import angle_lerp, estimate_range, wrap_pi
from pulse_sense.tracking.observable import ObservableState
from pulse_sense.tracking.projection import (
    CompassConeProjector,
    DotProjector,
    HashRadialProjector,
    create_projector,
)
from pulse_sense.tracking.tracker import DeviceTracker, compute_phone_score, is_trackable

__all__ = [
    "DeviceTracker",
    "compute_phone_score",
    "is_trackable",
    "DotProjector",
    "CompassConeProjector",
    "HashRadialProjector",
    "create_projector",
    "ObservableState",
    "angle_lerp",
    "estimate_range",
    "wrap_pi",
]

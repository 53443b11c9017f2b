"""
Presence Estimator Protocol
===========================

Capability interface shared by the two presence strategies.

    - SignalEngine: clustering over ephemeral sources (SourceObservation)
    - DeviceTracker: per-device tracks (BleScanEvent)

Both are driven the same way: push events in with ingest(), age with
tick(now_ms), read with summary(now_ms). Neither owns a timer; the caller
decides when "now" is.

Note that SignalEngine.summary() ages the engine (it snapshots clusters,
which runs tick). Callers that need a pure read must use the tracker or
cache the engine's output.
"""

from typing import Protocol, TypeVar, runtime_checkable

from pulse_sense.models.signal import PresenceSummary


EventT = TypeVar("EventT", contravariant=True)


@runtime_checkable
class PresenceEstimator(Protocol[EventT]):
    """Ingest / tick / summary contract."""
    
    def ingest(self, event: EventT) -> None:
        """Fold one scan event into the estimator state."""
        ...
    
    def tick(self, now_ms: int) -> None:
        """Prune, decay and evict relative to now_ms."""
        ...
    
    def summary(self, now_ms: int) -> PresenceSummary:
        """Aggregate presence picture."""
        ...

"""
Signal Models
=============

Value objects for the signal fusion engine.

Core Concepts:
    - SignalSample: One RSSI reading from one source, immutable
    - SourceObservation: Ingest event (sample plus its ephemeral source id)
    - SignalSourceSnapshot: Read-only copy of one source's derived state
    - ClusterSnapshot: One probable physical device, recomputed per query
    - PresenceSummary: Aggregate view shared by the engine and the tracker

Snapshots are copies. Nothing here references live engine state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class SourceKind(str, Enum):
    """Radio technology a sample was observed on."""
    
    BLE = "BLE"
    WIFI = "WIFI"


class MotionState(str, Enum):
    """
    Motion classification derived from RSSI variance.
    
    Attributes:
        STATIONARY: variance < 12 dBm²
        MOVING: variance > 28 dBm²
        UNCERTAIN: anything in between
    """
    
    STATIONARY = "Stationary"
    MOVING = "Moving"
    UNCERTAIN = "Uncertain"
    
    @property
    def score(self) -> float:
        """Stability contribution: stationary=1, moving=0, uncertain=0.5."""
        if self is MotionState.STATIONARY:
            return 1.0
        if self is MotionState.MOVING:
            return 0.0
        return 0.5


class Trend(str, Enum):
    """Direction of a cluster's presence score since the previous snapshot."""
    
    STRENGTHENING = "Strengthening"
    STABLE = "Stable"
    WEAKENING = "Weakening"


class ConfidenceLevel(str, Enum):
    """Bucketed confidence shared by clusters and tracker summaries."""
    
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    
    @classmethod
    def from_score(cls, score: float) -> "ConfidenceLevel":
        """Bucket a [0, 1] score: >= 0.66 High, >= 0.33 Medium, else Low."""
        if score >= 0.66:
            return cls.HIGH
        if score >= 0.33:
            return cls.MEDIUM
        return cls.LOW


@dataclass(frozen=True, slots=True)
class SignalSample:
    """
    One RSSI reading.
    
    Attributes:
        rssi: Received signal strength (dBm)
        timestamp_ms: Observation time in milliseconds
        kind: Radio the sample came from
    """
    
    rssi: int
    timestamp_ms: int
    kind: SourceKind


@dataclass(frozen=True, slots=True)
class SourceObservation:
    """Ingest event for the fusion engine."""
    
    source_id: str
    rssi: int
    timestamp_ms: int
    kind: SourceKind = SourceKind.BLE


@dataclass(frozen=True, slots=True)
class SignalSourceSnapshot:
    """
    Derived state of one source at snapshot time.
    
    Attributes:
        source_id: Ephemeral source id
        presence_score: Smoothed presence in [0, 1]
        average_rssi: Mean RSSI over the current window (dBm)
        motion_state: Variance-based motion classification
        last_seen_ms: Timestamp of the most recent sample
    """
    
    source_id: str
    presence_score: float
    average_rssi: float
    motion_state: MotionState
    last_seen_ms: int
    
    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "source_id": self.source_id,
            "presence_score": round(self.presence_score, 4),
            "average_rssi": round(self.average_rssi, 2),
            "motion_state": self.motion_state.value,
            "last_seen_ms": self.last_seen_ms,
        }


@dataclass(frozen=True, slots=True)
class ClusterSnapshot:
    """
    A group of sources believed to be one physical device.
    
    cluster_id depends only on membership, so the same members produce the
    same id on every tick and trend can be computed against the prior value.
    """
    
    cluster_id: str
    aggregated_presence_score: float
    estimated_device_count: int
    stability_score: float
    trend: Trend
    confidence: ConfidenceLevel
    sources: Tuple[SignalSourceSnapshot, ...]
    
    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "cluster_id": self.cluster_id,
            "aggregated_presence_score": round(self.aggregated_presence_score, 4),
            "estimated_device_count": self.estimated_device_count,
            "stability_score": round(self.stability_score, 4),
            "trend": self.trend.value,
            "confidence": self.confidence.value,
            "sources": [source.to_dict() for source in self.sources],
        }


@dataclass(frozen=True, slots=True)
class PresenceSummary:
    """
    Aggregate presence picture for the UI.
    
    Attributes:
        total_devices: Estimated number of distinct nearby devices
        confidence_level: Bucketed overall confidence
        stationary_count: Devices judged stationary
    """
    
    total_devices: int
    confidence_level: ConfidenceLevel
    stationary_count: int
    
    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "total_devices": self.total_devices,
            "confidence_level": self.confidence_level.value,
            "stationary_count": self.stationary_count,
        }

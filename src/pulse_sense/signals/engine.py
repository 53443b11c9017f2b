"""
Signal Fusion Engine
====================

Turns per-source RSSI samples into ranked cluster snapshots.

This engine:
    - Keeps one SignalWindow plus derived statistics per ephemeral source id
    - Classifies motion from RSSI variance
    - Smooths a presence score toward a persistence/stability target
    - Decays presence while a source is silent and evicts it once stale
    - Groups sources into clusters by RSSI and time proximity

Presence Target:
    persistence = clamp((sample_count - min_samples) / 10, 0, 1)
    stability   = clamp(1 - variance / 80, 0, 1)
    target      = 0.7 * persistence + 0.3 * stability
    presence    = presence + (target - presence) * 0.15

Snapshot Side Effects:
    get_clusters_snapshot() runs tick(now) first. Observing the engine ages
    it: a snapshot is NOT a read-only call, and repeated snapshots at
    increasing timestamps decay presence exactly like repeated ticks.

Concurrency:
    Every public method runs under one threading.Lock. Ingest, tick and
    query are serialized against each other and run to completion.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from pulse_sense.errors import raise_if_errors
from pulse_sense.identity.hashing import stable_hash
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
from pulse_sense.signals.summary import compute_cluster_summary
from pulse_sense.signals.window import SignalWindow


logger = logging.getLogger(__name__)


# Variance thresholds (dBm²) for motion classification
STATIONARY_VARIANCE = 12.0
MOVING_VARIANCE = 28.0

# Eviction: both conditions must hold
EVICT_PRESENCE = 0.02

# Cluster candidacy and output policy
MIN_CANDIDATE_PRESENCE = 0.05
DEVICE_PRESENCE = 0.2
TREND_DELTA = 0.05


@dataclass
class _SourceState:
    """Mutable per-source state. Never leaves the engine."""

    source_id: str
    window: SignalWindow
    presence_score: float = 0.0
    last_seen_ms: int = 0
    decayed_until_ms: int = 0
    average_rssi: float = 0.0
    variance: float = 0.0
    motion_state: MotionState = MotionState.UNCERTAIN

    def to_snapshot(self) -> Optional[SignalSourceSnapshot]:
        if self.window.is_empty():
            return None
        return SignalSourceSnapshot(
            source_id=self.source_id,
            presence_score=min(1.0, max(0.0, self.presence_score)),
            average_rssi=self.average_rssi,
            motion_state=self.motion_state,
            last_seen_ms=self.last_seen_ms,
        )


@dataclass
class _ClusterBuilder:
    """Greedy cluster accumulator with a running-mean RSSI centroid."""

    sources: List[SignalSourceSnapshot] = field(default_factory=list)
    average_rssi: float = 0.0
    last_seen_ms: int = 0

    @classmethod
    def seed(cls, source: SignalSourceSnapshot) -> "_ClusterBuilder":
        return cls(
            sources=[source],
            average_rssi=source.average_rssi,
            last_seen_ms=source.last_seen_ms,
        )

    def add(self, source: SignalSourceSnapshot) -> None:
        self.sources.append(source)
        self.average_rssi = sum(s.average_rssi for s in self.sources) / len(self.sources)
        self.last_seen_ms = max(self.last_seen_ms, source.last_seen_ms)

    def cluster_id(self) -> str:
        joined = "|".join(sorted(s.source_id for s in self.sources))
        return f"c{abs(stable_hash(joined))}"

    def aggregated_presence(self) -> float:
        # P(at least one member is present)
        product = 1.0
        for source in self.sources:
            product *= 1.0 - min(1.0, max(0.0, source.presence_score))
        return min(1.0, max(0.0, 1.0 - product))

    def build(self, previous_scores: Dict[str, float]) -> ClusterSnapshot:
        aggregated = self.aggregated_presence()
        cluster_id = self.cluster_id()
        previous = previous_scores.get(cluster_id, aggregated)

        if aggregated - previous > TREND_DELTA:
            trend = Trend.STRENGTHENING
        elif previous - aggregated > TREND_DELTA:
            trend = Trend.WEAKENING
        else:
            trend = Trend.STABLE

        return ClusterSnapshot(
            cluster_id=cluster_id,
            aggregated_presence_score=aggregated,
            estimated_device_count=max(
                1, sum(1 for s in self.sources if s.presence_score > DEVICE_PRESENCE)
            ),
            stability_score=sum(s.motion_state.score for s in self.sources) / len(self.sources),
            trend=trend,
            confidence=ConfidenceLevel.from_score(aggregated),
            sources=tuple(self.sources),
        )


class SignalEngine:
    """
    Clustering presence estimator over ephemeral radio sources.

    Attributes:
        window_ms: Sliding window length per source
        decay_half_life_ms: Time constant of presence decay while silent
        min_samples_for_presence: Samples needed before persistence accrues
        cluster_rssi_threshold_db: Max centroid distance for a cluster merge
        presence_smoothing: Fraction of the gap to target closed per sample

    Example:
        engine = SignalEngine()
        engine.add_sample("src-a", -60, 1_000, SourceKind.BLE)
        clusters = engine.get_clusters_snapshot(now_ms=1_200)
    """

    def __init__(
        self,
        window_ms: int = 20_000,
        decay_half_life_ms: int = 18_000,
        min_samples_for_presence: int = 3,
        cluster_rssi_threshold_db: float = 8.0,
        presence_smoothing: float = 0.15,
        log_every_n_ticks: int = 50,
    ) -> None:
        self._validate_parameters(
            window_ms,
            decay_half_life_ms,
            min_samples_for_presence,
            cluster_rssi_threshold_db,
            presence_smoothing,
        )

        self.window_ms = window_ms
        self.decay_half_life_ms = decay_half_life_ms
        self.min_samples_for_presence = min_samples_for_presence
        self.cluster_rssi_threshold_db = cluster_rssi_threshold_db
        self.presence_smoothing = presence_smoothing
        self.log_every_n_ticks = log_every_n_ticks

        self._lock = threading.Lock()
        self._sources: Dict[str, _SourceState] = {}
        self._previous_cluster_scores: Dict[str, float] = {}
        self._tick_count: int = 0
        self._sample_count: int = 0
        self._evicted_count: int = 0

        logger.info(
            f"SignalEngine initialized: window={window_ms}ms, "
            f"half_life={decay_half_life_ms}ms, "
            f"rssi_threshold={cluster_rssi_threshold_db}dB"
        )

    @staticmethod
    def _validate_parameters(
        window_ms: int,
        half_life_ms: int,
        min_samples: int,
        rssi_threshold: float,
        smoothing: float,
    ) -> None:
        """Validate parameters at startup. Fail fast."""
        errors = []

        if window_ms <= 0:
            errors.append(f"window_ms must be > 0, got {window_ms}")
        if half_life_ms <= 0:
            errors.append(f"decay_half_life_ms must be > 0, got {half_life_ms}")
        if min_samples < 0:
            errors.append(f"min_samples_for_presence must be >= 0, got {min_samples}")
        if not math.isfinite(rssi_threshold) or rssi_threshold < 0:
            errors.append(f"cluster_rssi_threshold_db must be finite and >= 0, got {rssi_threshold}")
        if not 0 < smoothing <= 1:
            errors.append(f"presence_smoothing must be in (0, 1], got {smoothing}")

        raise_if_errors("SignalEngine", errors)

    # -------------------------------------------------------------------------
    # Ingest
    # -------------------------------------------------------------------------

    def add_sample(
        self,
        source_id: str,
        rssi: int,
        timestamp_ms: int,
        kind: SourceKind = SourceKind.BLE,
    ) -> None:
        """
        Record one RSSI reading and recompute the source's statistics.

        Timestamps must be non-decreasing per source.
        """
        with self._lock:
            state = self._sources.get(source_id)
            if state is None:
                state = _SourceState(source_id=source_id, window=SignalWindow(self.window_ms))
                self._sources[source_id] = state
                logger.debug(f"New source: {source_id[:12]}")

            state.window.add_sample(SignalSample(rssi, timestamp_ms, kind))
            state.last_seen_ms = timestamp_ms
            state.decayed_until_ms = timestamp_ms
            self._sample_count += 1
            self._update_presence(state)

    def ingest(self, observation: SourceObservation) -> None:
        """PresenceEstimator entry point."""
        self.add_sample(
            observation.source_id,
            observation.rssi,
            observation.timestamp_ms,
            observation.kind,
        )

    def _update_presence(self, state: _SourceState) -> None:
        samples = state.window.snapshot()
        if not samples:
            return

        rssi = np.fromiter((s.rssi for s in samples), dtype=np.float64, count=len(samples))
        average = float(rssi.mean())
        variance = float(rssi.var())

        state.average_rssi = average
        state.variance = variance
        if variance < STATIONARY_VARIANCE:
            state.motion_state = MotionState.STATIONARY
        elif variance > MOVING_VARIANCE:
            state.motion_state = MotionState.MOVING
        else:
            state.motion_state = MotionState.UNCERTAIN

        persistence = _clamp((len(samples) - self.min_samples_for_presence) / 10.0)
        stability = _clamp(1.0 - variance / 80.0)
        target = _clamp(0.7 * persistence + 0.3 * stability)

        state.presence_score += (target - state.presence_score) * self.presence_smoothing

    # -------------------------------------------------------------------------
    # Aging
    # -------------------------------------------------------------------------

    def tick(self, now_ms: int) -> None:
        """
        Prune windows, decay silent sources and evict dead ones.

        Decay covers the time since the later of the last sample and the
        last tick, so repeating tick(now) with the same now is a no-op.
        """
        with self._lock:
            self._tick_locked(now_ms)

    def _tick_locked(self, now_ms: int) -> None:
        self._tick_count += 1

        for source_id in list(self._sources):
            state = self._sources[source_id]
            state.window.prune(now_ms)

            reference = max(state.last_seen_ms, state.decayed_until_ms)
            elapsed = now_ms - reference
            if elapsed > 0:
                state.presence_score *= math.exp(-elapsed / self.decay_half_life_ms)
                state.decayed_until_ms = now_ms

            silent_for = now_ms - state.last_seen_ms
            if state.presence_score < EVICT_PRESENCE and silent_for > self.window_ms:
                del self._sources[source_id]
                self._evicted_count += 1
                logger.debug(
                    f"Evicted source {source_id[:12]}: silent {silent_for}ms, "
                    f"presence={state.presence_score:.4f}"
                )

        if self.log_every_n_ticks > 0 and self._tick_count % self.log_every_n_ticks == 0:
            logger.info(
                f"SignalEngine [tick {self._tick_count}]: "
                f"sources={len(self._sources)}, evicted={self._evicted_count}"
            )

    # -------------------------------------------------------------------------
    # Query
    # -------------------------------------------------------------------------

    def get_clusters_snapshot(self, now_ms: int) -> List[ClusterSnapshot]:
        """
        Age the engine to now_ms and return clusters ranked by presence.

        Grouping is a single greedy pass over candidates sorted by average
        RSSI (strongest first). Each source joins the first cluster whose
        running-mean RSSI is within cluster_rssi_threshold_db and whose
        latest sample is within window_ms; otherwise it seeds a new cluster.

        Side effects:
            - Applies tick(now_ms)
            - Records each cluster's score for the next trend comparison
        """
        with self._lock:
            self._tick_locked(now_ms)

            candidates = []
            for state in self._sources.values():
                snapshot = state.to_snapshot()
                if snapshot is None:
                    continue
                if (
                    now_ms - snapshot.last_seen_ms <= self.window_ms * 2
                    and snapshot.presence_score > MIN_CANDIDATE_PRESENCE
                ):
                    candidates.append(snapshot)

            if not candidates:
                return []

            candidates.sort(key=lambda s: s.average_rssi, reverse=True)

            builders: List[_ClusterBuilder] = []
            for source in candidates:
                target = next(
                    (
                        builder for builder in builders
                        if abs(builder.average_rssi - source.average_rssi) <= self.cluster_rssi_threshold_db
                        and abs(builder.last_seen_ms - source.last_seen_ms) <= self.window_ms
                    ),
                    None,
                )
                if target is not None:
                    target.add(source)
                else:
                    builders.append(_ClusterBuilder.seed(source))

            clusters = []
            for builder in builders:
                cluster = builder.build(self._previous_cluster_scores)
                self._previous_cluster_scores[cluster.cluster_id] = cluster.aggregated_presence_score
                clusters.append(cluster)

            clusters.sort(key=lambda c: c.aggregated_presence_score, reverse=True)
            return clusters

    def summary(self, now_ms: int) -> PresenceSummary:
        """
        Aggregate summary of the current clusters.

        Runs get_clusters_snapshot(now_ms) and inherits its side effects.
        """
        return compute_cluster_summary(self.get_clusters_snapshot(now_ms))

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def source_count(self) -> int:
        """Number of tracked sources."""
        with self._lock:
            return len(self._sources)

    def reset(self) -> None:
        """Drop all sources and trend history."""
        with self._lock:
            self._sources.clear()
            self._previous_cluster_scores.clear()
            self._tick_count = 0
            self._sample_count = 0
            self._evicted_count = 0
        logger.info("SignalEngine reset")

    def get_metrics(self) -> dict:
        """Get engine metrics for observability."""
        with self._lock:
            return {
                "source_count": len(self._sources),
                "tick_count": self._tick_count,
                "sample_count": self._sample_count,
                "evicted_count": self._evicted_count,
                "tracked_cluster_ids": len(self._previous_cluster_scores),
            }


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))

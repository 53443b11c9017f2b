"""
Device Tracker
==============

Per-identity variant of presence estimation.

This tracker:
    - Keeps one exponentially smoothed track per device key
    - Accrues confidence per scan and decays it while a device is silent
    - Scores how phone-like each device is
    - Estimates range from path loss
    - Optionally fuses a compass yaw into a per-track azimuth
    - Projects trackable devices into viewport coordinates

Track Update (per scan):
    rssi_ema    = 0.8 * rssi_ema + 0.2 * rssi
    rssi_var    = 0.9 * rssi_var + 0.1 * (rssi - rssi_ema)²
    confidence  = min(1, confidence + 0.06)
    phone_score = 0.55 * persistence + 0.35 * stability + 0.10 * manufacturer_hint

Trackable:
    confidence >= 0.35 AND phone_score >= 0.55. A persistent beacon that
    does not look like a phone is never surfaced.

Concurrency:
    One re-entrant lock guards tracks, viewport, yaw and the cached dots.
    Dots and debug snapshots are published to ObservableState containers
    while the lock is held, so publications are totally ordered.
"""

import logging
import math
import threading
from typing import Dict, List, Optional, Tuple

from pulse_sense.identity.hashing import stable_hash
from pulse_sense.models.signal import ConfidenceLevel, PresenceSummary
from pulse_sense.models.tracking import (
    BleScanEvent,
    DebugDevice,
    DebugSnapshot,
    DeviceTrack,
    UiDot,
    YawSample,
)
from pulse_sense.tracking.geometry import angle_lerp, clamp, estimate_range, wrap_pi
from pulse_sense.tracking.observable import ObservableState
from pulse_sense.tracking.projection import CompassConeProjector, DotProjector


logger = logging.getLogger(__name__)


# Smoothing
RSSI_EMA_ALPHA = 0.2
RSSI_VAR_ALPHA = 0.1
CONFIDENCE_STEP = 0.06

# Aging
DECAY_AFTER_MS = 1_500
CONFIDENCE_DECAY_MS = 6_000.0
STALE_AFTER_MS = 20_000
MIN_CONFIDENCE = 0.10
AZIMUTH_CONFIDENCE_DECAY = 0.995

# Trackability
TRACKABLE_CONFIDENCE = 0.35
TRACKABLE_PHONE_SCORE = 0.55
STATIONARY_STABILITY = 0.7

# Known phone chipset vendors (Bluetooth SIG company ids)
PHONE_MANUFACTURER_IDS = frozenset({0x004C, 0x0075, 0x00E0})

# Azimuth seeding
SEED_AZIMUTH_CONFIDENCE = 0.08
YAW_SEED_AZIMUTH_CONFIDENCE = 0.18

# Azimuth pull: proximity 0 at -90 dBm, 1 at -55 dBm and stronger
FAR_RSSI_DBM = -90.0
PROXIMITY_SPAN_DB = 35.0

DEBUG_TOP_N = 3


def rssi_stability(track: DeviceTrack) -> float:
    """1 - min(1, std / 18): 1 for a rock-steady signal, 0 for a noisy one."""
    return clamp(1.0 - min(1.0, math.sqrt(track.rssi_var) / 18.0), 0.0, 1.0)


def compute_phone_score(track: DeviceTrack, manufacturer_id: Optional[int]) -> float:
    """Weighted phone likelihood from persistence, stability and vendor."""
    persistence = min(1.0, track.seen_count / 12.0)
    stability = rssi_stability(track)
    manufacturer_hint = 0.15 if manufacturer_id in PHONE_MANUFACTURER_IDS else 0.0
    score = 0.55 * persistence + 0.35 * stability + 0.10 * manufacturer_hint
    return clamp(score, 0.0, 1.0)


def is_trackable(track: DeviceTrack) -> bool:
    return track.confidence >= TRACKABLE_CONFIDENCE and track.phone_score >= TRACKABLE_PHONE_SCORE


def seed_azimuth(key: str) -> float:
    """Deterministic bearing for a key with no compass information."""
    value = stable_hash(key) & 0x7FFFFFFF
    return wrap_pi((value % 3600) / 3600.0 * (2 * math.pi))


class DeviceTracker:
    """
    Per-device tracker with compass fusion and viewport projection.

    Attributes:
        projector: Placement policy, fixed for the tracker's lifetime

    Example:
        tracker = DeviceTracker()
        tracker.set_viewport(1080, 1920)
        tracker.on_scan(BleScanEvent("key", 1_000, -60))
        tracker.tick(1_200)
        dots = tracker.get_dots_snapshot()
    """

    def __init__(
        self,
        projector: Optional[DotProjector] = None,
        log_every_n_ticks: int = 50,
    ) -> None:
        self._projector: DotProjector = projector or CompassConeProjector()
        self.log_every_n_ticks = log_every_n_ticks

        self._lock = threading.RLock()
        self._tracks: Dict[str, DeviceTrack] = {}

        self._viewport_width: float = 0.0
        self._viewport_height: float = 0.0
        self._last_tick_ms: Optional[int] = None
        self._last_scan_ms: int = 0
        self._last_yaw_ms: int = 0
        self._last_yaw_rad: float = 0.0
        self._has_yaw: bool = False
        self._scan_count: int = 0
        self._tick_count: int = 0
        self._evicted_count: int = 0

        self._last_dots: Tuple[UiDot, ...] = ()
        self._dots = ObservableState[Tuple[UiDot, ...]](())
        self._debug = ObservableState[DebugSnapshot](DebugSnapshot())

        logger.info(f"DeviceTracker initialized: projection={self._projector.name}")

    @property
    def projector(self) -> DotProjector:
        """Placement policy (read-only)."""
        return self._projector

    @property
    def dots(self) -> ObservableState[Tuple[UiDot, ...]]:
        """Observable container of the latest projected dots."""
        return self._dots

    @property
    def debug(self) -> ObservableState[DebugSnapshot]:
        """Observable container of the latest debug snapshot."""
        return self._debug

    # -------------------------------------------------------------------------
    # Configuration / sensor input
    # -------------------------------------------------------------------------

    def set_viewport(self, width: float, height: float) -> None:
        """Set viewport size in pixels and recompute dots if it changed."""
        with self._lock:
            if width == self._viewport_width and height == self._viewport_height:
                return
            self._viewport_width = width
            self._viewport_height = height
            self._emit_dots_locked()

    def on_yaw(self, sample: YawSample) -> None:
        """Record the latest compass heading."""
        with self._lock:
            self._last_yaw_rad = sample.yaw_rad
            self._last_yaw_ms = sample.timestamp_ms
            self._has_yaw = True
            self._emit_dots_locked()

    # -------------------------------------------------------------------------
    # Ingest
    # -------------------------------------------------------------------------

    def on_scan(self, event: BleScanEvent) -> None:
        """Fold one advertisement into its device track."""
        with self._lock:
            self._last_scan_ms = max(self._last_scan_ms, event.timestamp_ms)
            self._scan_count += 1

            track = self._tracks.get(event.device_key)
            if track is None:
                track = DeviceTrack(
                    key=event.device_key,
                    last_seen_ms=event.timestamp_ms,
                    rssi_ema=float(event.rssi),
                    azimuth_rad=seed_azimuth(event.device_key),
                    azimuth_confidence=SEED_AZIMUTH_CONFIDENCE,
                    tx_power=event.tx_power,
                )
                self._tracks[event.device_key] = track

            if track.seen_count == 0 and self._has_yaw:
                track.azimuth_rad = self._last_yaw_rad
                track.azimuth_confidence = YAW_SEED_AZIMUTH_CONFIDENCE

            track.last_seen_ms = event.timestamp_ms
            track.seen_count += 1

            next_ema = track.rssi_ema * (1 - RSSI_EMA_ALPHA) + event.rssi * RSSI_EMA_ALPHA
            delta = event.rssi - next_ema
            track.rssi_var = track.rssi_var * (1 - RSSI_VAR_ALPHA) + RSSI_VAR_ALPHA * delta * delta
            track.rssi_ema = next_ema

            if event.tx_power is not None:
                track.tx_power = event.tx_power
            track.confidence = min(1.0, track.confidence + CONFIDENCE_STEP)
            track.phone_score = compute_phone_score(track, event.manufacturer_id)

            self._update_azimuth_locked(track)
            self._emit_dots_locked()

    def ingest(self, event: BleScanEvent) -> None:
        """PresenceEstimator entry point."""
        self.on_scan(event)

    def _update_azimuth_locked(self, track: DeviceTrack) -> None:
        if not self._has_yaw:
            return
        # Near (strong) and steady devices are pulled hardest toward the heading
        proximity = clamp((track.rssi_ema - FAR_RSSI_DBM) / PROXIMITY_SPAN_DB, 0.0, 1.0)
        pull_strength = clamp(proximity * rssi_stability(track), 0.0, 1.0)
        if pull_strength <= 0.0:
            return
        pull = 0.05 + 0.10 * pull_strength
        track.azimuth_rad = angle_lerp(track.azimuth_rad, self._last_yaw_rad, pull)
        track.azimuth_confidence = min(1.0, track.azimuth_confidence + 0.03 * pull_strength)

    # -------------------------------------------------------------------------
    # Aging
    # -------------------------------------------------------------------------

    def tick(self, now_ms: int) -> None:
        """
        Decay silent tracks and evict stale or low-confidence ones.

        Decay is proportional to the time since the previous tick, so the
        first tick and any repeat of the same now_ms apply no decay.
        """
        with self._lock:
            delta_ms = 0 if self._last_tick_ms is None else now_ms - self._last_tick_ms
            self._last_tick_ms = now_ms
            self._tick_count += 1

            for key in list(self._tracks):
                track = self._tracks[key]
                unseen_ms = now_ms - track.last_seen_ms
                if unseen_ms > DECAY_AFTER_MS and delta_ms > 0:
                    track.confidence *= math.exp(-delta_ms / CONFIDENCE_DECAY_MS)
                if delta_ms > 0:
                    track.azimuth_confidence *= AZIMUTH_CONFIDENCE_DECAY
                if unseen_ms > STALE_AFTER_MS or track.confidence < MIN_CONFIDENCE:
                    del self._tracks[key]
                    self._evicted_count += 1
                    logger.debug(
                        f"Evicted track {key[:6]}: unseen {unseen_ms}ms, "
                        f"confidence={track.confidence:.3f}"
                    )

            if self.log_every_n_ticks > 0 and self._tick_count % self.log_every_n_ticks == 0:
                logger.info(
                    f"DeviceTracker [tick {self._tick_count}]: "
                    f"tracks={len(self._tracks)}, dots={len(self._last_dots)}, "
                    f"evicted={self._evicted_count}"
                )

            self._emit_dots_locked()

    # -------------------------------------------------------------------------
    # Query
    # -------------------------------------------------------------------------

    def get_dots_snapshot(self) -> Tuple[UiDot, ...]:
        """Dots computed by the most recent mutation."""
        with self._lock:
            return self._last_dots

    def get_summary_snapshot(self) -> PresenceSummary:
        """Trackable device count, mean-confidence level and stationary count."""
        with self._lock:
            trackable = [track for track in self._tracks.values() if is_trackable(track)]
            if trackable:
                mean_confidence = sum(t.confidence for t in trackable) / len(trackable)
            else:
                mean_confidence = 0.0
            return PresenceSummary(
                total_devices=len(trackable),
                confidence_level=ConfidenceLevel.from_score(mean_confidence),
                stationary_count=sum(
                    1 for t in trackable if rssi_stability(t) >= STATIONARY_STABILITY
                ),
            )

    def summary(self, now_ms: int) -> PresenceSummary:
        """PresenceEstimator query. Pure read: now_ms is not needed here."""
        return self.get_summary_snapshot()

    def get_debug_snapshot(self, now_ms: int) -> DebugSnapshot:
        """Counts plus the highest-confidence tracks, relative to now_ms."""
        with self._lock:
            return self._build_debug_snapshot(now_ms)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _emit_dots_locked(self) -> None:
        width = self._viewport_width
        height = self._viewport_height

        if width <= 0 or height <= 0:
            dots: Tuple[UiDot, ...] = ()
        else:
            projected: List[UiDot] = []
            for track in self._tracks.values():
                if not is_trackable(track):
                    continue
                range_meters = estimate_range(track.rssi_ema, track.tx_power)
                projected.append(
                    self._projector.project(
                        track, range_meters, self._last_yaw_rad, width, height
                    )
                )
            dots = tuple(projected)

        self._last_dots = dots
        self._dots.publish(dots)
        reference_ms = max(self._last_tick_ms or 0, self._last_scan_ms, self._last_yaw_ms)
        self._debug.publish(self._build_debug_snapshot(reference_ms))

    def _build_debug_snapshot(self, now_ms: int) -> DebugSnapshot:
        tracks = list(self._tracks.values())
        top = sorted(tracks, key=lambda t: t.confidence, reverse=True)[:DEBUG_TOP_N]
        return DebugSnapshot(
            total_tracks=len(tracks),
            trackable_count=sum(1 for t in tracks if is_trackable(t)),
            yaw_rad=self._last_yaw_rad,
            scan_count=self._scan_count,
            last_scan_ms=self._last_scan_ms,
            top_devices=tuple(
                DebugDevice(
                    key_prefix=track.key[:6],
                    rssi_ema=track.rssi_ema,
                    phone_score=track.phone_score,
                    confidence=track.confidence,
                    azimuth_confidence=track.azimuth_confidence,
                    last_seen_delta_ms=max(0, now_ms - track.last_seen_ms),
                )
                for track in top
            ),
        )

    @property
    def track_count(self) -> int:
        """Number of live tracks."""
        with self._lock:
            return len(self._tracks)

    def reset(self) -> None:
        """Drop all tracks and sensor state. Viewport and projector are kept."""
        with self._lock:
            self._tracks.clear()
            self._last_tick_ms = None
            self._last_scan_ms = 0
            self._last_yaw_ms = 0
            self._last_yaw_rad = 0.0
            self._has_yaw = False
            self._scan_count = 0
            self._tick_count = 0
            self._evicted_count = 0
            self._emit_dots_locked()
        logger.info("DeviceTracker reset")

    def get_metrics(self) -> dict:
        """Get tracker metrics for observability."""
        with self._lock:
            return {
                "track_count": len(self._tracks),
                "dot_count": len(self._last_dots),
                "scan_count": self._scan_count,
                "tick_count": self._tick_count,
                "evicted_count": self._evicted_count,
                "has_yaw": self._has_yaw,
                "projection": self._projector.name,
            }

"""
Device Tracker Tests
====================

Track updates, aging, trackability, compass fusion and dot publication.
"""

import math

import pytest

from pulse_sense.estimator import PresenceEstimator
from pulse_sense.models.signal import ConfidenceLevel
from pulse_sense.models.tracking import DeviceTrack, YawSample
from pulse_sense.tracking.geometry import angle_lerp, estimate_range, wrap_pi
from pulse_sense.tracking.projection import HashRadialProjector
from pulse_sense.tracking.tracker import (
    DeviceTracker,
    compute_phone_score,
    is_trackable,
    seed_azimuth,
)


def _feed(tracker, scan, count, rssi=-60, key="phone-1", start_ms=0, step_ms=100, **kwargs):
    for index in range(count):
        tracker.on_scan(scan(key=key, timestamp_ms=start_ms + index * step_ms, rssi=rssi, **kwargs))
    return start_ms + (count - 1) * step_ms


class TestGeometry:
    """Tests for angle helpers and the range model."""
    
    def test_range_at_reference_power(self):
        assert estimate_range(-59, -59) == pytest.approx(1.0)
        assert estimate_range(-59) == pytest.approx(1.0)
        assert estimate_range(-79, -59) == pytest.approx(10.0)
    
    def test_range_is_clamped(self):
        assert estimate_range(-200) == 30.0
        assert estimate_range(0) == 0.3
    
    def test_angle_lerp_takes_shortest_arc(self):
        """170° toward -170° passes through 180°, not 0°."""
        result = angle_lerp(math.radians(170), math.radians(-170), 0.5)
        assert abs(abs(result) - math.pi) < 1e-9
    
    def test_wrap_pi(self):
        assert wrap_pi(4.0) == pytest.approx(4.0 - 2 * math.pi)
        assert wrap_pi(-4.0) == pytest.approx(-4.0 + 2 * math.pi)
        assert wrap_pi(math.pi) == math.pi


class TestPhoneScore:
    """Tests for phone likelihood scoring."""
    
    def test_steady_persistent_device(self):
        track = DeviceTrack(key="k", last_seen_ms=0, seen_count=20, rssi_var=0.0)
        assert compute_phone_score(track, None) == pytest.approx(0.90)
    
    def test_phone_vendor_hint(self):
        track = DeviceTrack(key="k", last_seen_ms=0, seen_count=20, rssi_var=0.0)
        assert compute_phone_score(track, 0x004C) == pytest.approx(0.915)
        assert compute_phone_score(track, 0x0059) == pytest.approx(0.90)
    
    def test_trackable_gate(self):
        track = DeviceTrack(key="k", last_seen_ms=0, confidence=0.35, phone_score=0.55)
        assert is_trackable(track)
        assert not is_trackable(DeviceTrack(key="k", last_seen_ms=0, confidence=0.34, phone_score=0.9))
        assert not is_trackable(DeviceTrack(key="k", last_seen_ms=0, confidence=0.9, phone_score=0.54))


class TestScanUpdates:
    """Tests for on_scan track updates."""
    
    def test_ema_and_variance(self, tracker, scan):
        tracker.on_scan(scan(timestamp_ms=0, rssi=-60))
        tracker.on_scan(scan(timestamp_ms=100, rssi=-70))
        
        device = tracker.get_debug_snapshot(100).top_devices[0]
        
        assert device.rssi_ema == pytest.approx(-62.0)
        # persistence 2/12, stability 1 - sqrt(6.4)/18
        expected = 0.55 * (2 / 12) + 0.35 * (1 - math.sqrt(6.4) / 18)
        assert device.phone_score == pytest.approx(expected)
        assert device.confidence == pytest.approx(0.12)
    
    def test_confidence_accrues_and_caps(self, tracker, scan):
        tracker.on_scan(scan(timestamp_ms=0))
        assert tracker.get_debug_snapshot(0).top_devices[0].confidence == pytest.approx(0.06)
        
        _feed(tracker, scan, 25, start_ms=100)
        
        assert tracker.get_debug_snapshot(2_500).top_devices[0].confidence == 1.0
    
    def test_steady_device_score(self, tracker, scan):
        _feed(tracker, scan, 20)
        device = tracker.get_debug_snapshot(1_900).top_devices[0]
        assert device.phone_score == pytest.approx(0.90)
    
    def test_tracks_per_key(self, tracker, scan):
        tracker.on_scan(scan(key="a"))
        tracker.on_scan(scan(key="b"))
        tracker.on_scan(scan(key="a"))
        
        assert tracker.track_count == 2
        assert tracker.get_metrics()["scan_count"] == 3
    
    def test_is_presence_estimator(self, tracker, scan):
        assert isinstance(tracker, PresenceEstimator)
        tracker.ingest(scan())
        assert tracker.track_count == 1


class TestAging:
    """Tests for tick() decay and eviction."""
    
    def test_first_tick_does_not_decay(self, tracker, scan):
        _feed(tracker, scan, 10)
        
        tracker.tick(5_000)
        
        assert tracker.get_debug_snapshot(5_000).top_devices[0].confidence == pytest.approx(0.6)
    
    def test_decay_after_silence(self, tracker, scan):
        _feed(tracker, scan, 10)
        tracker.tick(1_000)
        
        tracker.tick(3_000)
        
        expected = 0.6 * math.exp(-2_000 / 6_000)
        assert tracker.get_debug_snapshot(3_000).top_devices[0].confidence == pytest.approx(expected)
    
    def test_repeated_tick_is_idempotent(self, tracker, scan):
        _feed(tracker, scan, 10)
        tracker.tick(1_000)
        tracker.tick(3_000)
        before = tracker.get_debug_snapshot(3_000).to_dict()
        
        tracker.tick(3_000)
        
        assert tracker.get_debug_snapshot(3_000).to_dict() == before
    
    def test_recently_seen_track_does_not_decay(self, tracker, scan):
        _feed(tracker, scan, 10)
        tracker.tick(500)
        
        tracker.tick(1_500)
        
        assert tracker.get_debug_snapshot(1_500).top_devices[0].confidence == pytest.approx(0.6)
    
    def test_single_scan_is_evicted(self, tracker, scan):
        tracker.on_scan(scan(timestamp_ms=0))
        
        tracker.tick(100)
        
        assert tracker.track_count == 0
    
    def test_stale_track_is_evicted(self, tracker, scan):
        _feed(tracker, scan, 20)
        tracker.tick(2_000)
        
        tracker.tick(22_000)
        
        assert tracker.track_count == 0
        assert tracker.get_metrics()["evicted_count"] == 1


class TestDots:
    """Tests for trackability gating and projection."""
    
    def test_no_dots_without_viewport(self, tracker, scan):
        _feed(tracker, scan, 8)
        
        assert tracker.get_debug_snapshot(700).trackable_count == 1
        assert tracker.get_dots_snapshot() == ()
    
    def test_dots_after_viewport(self, tracker, scan):
        _feed(tracker, scan, 8)
        
        tracker.set_viewport(1_000, 2_000)
        
        dots = tracker.get_dots_snapshot()
        assert len(dots) == 1
        assert dots[0].key == "phone-1"
    
    def test_noisy_beacon_is_not_surfaced(self, tracker, scan):
        tracker.set_viewport(1_000, 2_000)
        for index in range(8):
            rssi = -40 if index % 2 == 0 else -90
            tracker.on_scan(scan(key="beacon", timestamp_ms=index * 100, rssi=rssi))
        
        debug = tracker.get_debug_snapshot(700)
        assert debug.total_tracks == 1
        assert debug.trackable_count == 0
        assert tracker.get_dots_snapshot() == ()
    
    def test_compass_cone_vertical_position(self, tracker, scan):
        """Range 1 m sits 15% of the height above centre."""
        tracker.set_viewport(1_000, 2_000)
        _feed(tracker, scan, 8, rssi=-59)
        
        dot = tracker.get_dots_snapshot()[0]
        
        assert dot.range_meters == pytest.approx(1.0)
        assert dot.screen_y == pytest.approx(700.0)
        assert 50.0 <= dot.screen_x <= 950.0
    
    def test_yaw_seeds_new_track(self, tracker, scan):
        tracker.set_viewport(1_000, 2_000)
        tracker.on_yaw(YawSample(timestamp_ms=0, yaw_rad=1.0))
        
        _feed(tracker, scan, 8, rssi=-60)
        
        dot = tracker.get_dots_snapshot()[0]
        assert dot.screen_x == pytest.approx(500.0)
        # seeded at 0.18, plus 0.03 * proximity per scan; proximity at -60 dBm is 30 / 35
        device = tracker.get_debug_snapshot(700).top_devices[0]
        assert device.azimuth_confidence == pytest.approx(0.18 + 8 * 0.03 * 30 / 35)
    
    def test_near_devices_follow_compass_harder(self, scan):
        """A strong signal closes more of the gap to the heading than a weak one."""
        width = 1_000
        yaw = wrap_pi(seed_azimuth("device") + 0.5)
        offsets = {}
        for rssi in (-45, -85):
            tracker = DeviceTracker()
            tracker.set_viewport(width, 2_000)
            tracker.on_scan(scan(key="device", timestamp_ms=0, rssi=rssi))
            tracker.on_yaw(YawSample(timestamp_ms=0, yaw_rad=yaw))
            _feed(tracker, scan, 9, key="device", rssi=rssi, start_ms=100)
            
            dot = tracker.get_dots_snapshot()[0]
            offsets[rssi] = abs(dot.screen_x - width / 2)
        
        assert 0.0 < offsets[-45] < offsets[-85]
    
    def test_hash_seeded_azimuth_without_yaw(self, tracker, scan):
        tracker.on_scan(scan(key="phone-1"))
        device = tracker.get_debug_snapshot(0).top_devices[0]
        
        assert device.azimuth_confidence == pytest.approx(0.08)
        assert -math.pi < seed_azimuth("phone-1") <= math.pi
    
    def test_subscribers_receive_dots(self, tracker, scan):
        received = []
        unsubscribe = tracker.dots.subscribe(received.append)
        tracker.set_viewport(1_000, 2_000)
        _feed(tracker, scan, 8)
        
        assert len(received[-1]) == 1
        assert tracker.dots.value == received[-1]
        
        unsubscribe()
        count = len(received)
        tracker.tick(800)
        assert len(received) == count
    
    def test_projector_is_fixed(self, tracker):
        assert tracker.projector.name == "compass_cone"
        with pytest.raises(AttributeError):
            tracker.projector = HashRadialProjector()
    
    def test_hash_radial_dots_inside_viewport(self, scan):
        tracker = DeviceTracker(projector=HashRadialProjector())
        tracker.set_viewport(800, 600)
        for key in ("a", "b", "c", "d"):
            _feed(tracker, scan, 10, key=key, rssi=-70)
        
        dots = tracker.get_dots_snapshot()
        
        assert len(dots) == 4
        for dot in dots:
            assert 0.0 <= dot.screen_x <= 800.0
            assert 0.0 <= dot.screen_y <= 600.0
            assert 0.2 <= dot.alpha <= 1.0


class TestSnapshots:
    """Tests for summary and debug snapshots."""
    
    def test_summary(self, tracker, scan):
        _feed(tracker, scan, 8, key="phone-1")
        tracker.on_scan(scan(key="passing", timestamp_ms=800))
        
        summary = tracker.summary(800)
        
        assert summary.total_devices == 1
        assert summary.confidence_level == ConfidenceLevel.MEDIUM
        assert summary.stationary_count == 1
    
    def test_empty_summary(self, tracker):
        summary = tracker.get_summary_snapshot()
        assert summary.total_devices == 0
        assert summary.confidence_level == ConfidenceLevel.LOW
    
    def test_debug_top_devices(self, tracker, scan):
        for count, key in enumerate(("aaaaaaaa", "bbbbbbbb", "cccccccc", "dddddddd"), start=1):
            _feed(tracker, scan, count, key=key)
        
        debug = tracker.get_debug_snapshot(10_000)
        
        assert debug.total_tracks == 4
        assert [d.key_prefix for d in debug.top_devices] == ["dddddd", "cccccc", "bbbbbb"]
        assert all(d.last_seen_delta_ms > 0 for d in debug.top_devices)
    
    def test_debug_delta_never_negative(self, tracker, scan):
        tracker.on_scan(scan(timestamp_ms=5_000))
        assert tracker.get_debug_snapshot(1_000).top_devices[0].last_seen_delta_ms == 0
    
    def test_scores_bounded_under_extreme_rssi(self, tracker, scan):
        tracker.set_viewport(500, 500)
        for index, rssi in enumerate([-1000, 1000, -127, 20] * 5):
            tracker.on_scan(scan(timestamp_ms=index * 100, rssi=rssi))
        
        device = tracker.get_debug_snapshot(2_000).top_devices[0]
        assert 0.0 <= device.confidence <= 1.0
        assert 0.0 <= device.phone_score <= 1.0
        for dot in tracker.get_dots_snapshot():
            assert 0.3 <= dot.range_meters <= 30.0
    
    def test_deterministic(self, scan):
        outputs = []
        for _ in range(2):
            tracker = DeviceTracker()
            tracker.set_viewport(1_080, 1_920)
            tracker.on_yaw(YawSample(0, 0.4))
            for key, rssi in (("a", -55), ("b", -65), ("c", -75)):
                _feed(tracker, scan, 12, key=key, rssi=rssi)
            tracker.tick(1_200)
            tracker.tick(4_000)
            outputs.append(
                ([d.to_dict() for d in tracker.get_dots_snapshot()], tracker.get_debug_snapshot(4_000).to_dict())
            )
        
        assert outputs[0] == outputs[1]
    
    def test_reset(self, tracker, scan):
        _feed(tracker, scan, 8)
        tracker.reset()
        assert tracker.track_count == 0
        assert tracker.get_dots_snapshot() == ()

"""
Signal Window Tests
===================
"""

import pytest

from pulse_sense.errors import ConfigurationError
from pulse_sense.models.signal import SignalSample, SourceKind
from pulse_sense.signals.window import SignalWindow


def _sample(timestamp_ms, rssi=-60):
    return SignalSample(rssi=rssi, timestamp_ms=timestamp_ms, kind=SourceKind.BLE)


class TestSignalWindow:
    """Tests for SignalWindow pruning and snapshots."""
    
    def test_prune_drops_old_prefix(self):
        window = SignalWindow(window_ms=1_000)
        for ts in (0, 500, 1_500):
            window.add_sample(_sample(ts))
        
        removed = window.prune(now_ms=2_000)
        
        assert removed == 2
        assert [s.timestamp_ms for s in window.snapshot()] == [1_500]
    
    def test_sample_at_cutoff_is_kept(self):
        window = SignalWindow(window_ms=1_000)
        window.add_sample(_sample(1_000))
        
        assert window.prune(now_ms=2_000) == 0
        assert len(window) == 1
    
    def test_prune_everything(self):
        window = SignalWindow(window_ms=1_000)
        window.add_sample(_sample(0))
        window.add_sample(_sample(10))
        
        window.prune(now_ms=5_000)
        
        assert window.is_empty()
    
    def test_out_of_order_sample_survives_behind_newer_one(self):
        """Pruning only inspects the head of the window."""
        window = SignalWindow(window_ms=1_000)
        window.add_sample(_sample(500))
        window.add_sample(_sample(100))
        
        assert window.prune(now_ms=1_200) == 0
        assert [s.timestamp_ms for s in window.snapshot()] == [500, 100]
    
    def test_snapshot_is_detached(self):
        window = SignalWindow(window_ms=1_000)
        window.add_sample(_sample(0))
        snapshot = window.snapshot()
        
        window.add_sample(_sample(100))
        
        assert len(snapshot) == 1
        assert len(window) == 2
    
    def test_invalid_window_rejected(self):
        with pytest.raises(ConfigurationError):
            SignalWindow(window_ms=0)

"""
Signal Window
=============

Per-source sliding window of recent samples.

Samples are kept in arrival order. Callers must supply non-decreasing
timestamps per source: prune() only inspects the head of the window, so an
out-of-order old sample behind a newer one survives until everything in
front of it has aged out. This is an assumption of the data flow and is not
enforced here.
"""

from typing import List, Tuple

from pulse_sense.errors import ConfigurationError
from pulse_sense.models.signal import SignalSample


class SignalWindow:
    """
    Ordered samples for one source within window_ms of "now".
    
    Attributes:
        window_ms: Maximum sample age retained after prune()
        
    Example:
        window = SignalWindow(window_ms=20_000)
        window.add_sample(SignalSample(-60, 1_000, SourceKind.BLE))
        window.prune(now_ms=25_000)
        assert window.is_empty()
    """
    
    def __init__(self, window_ms: int) -> None:
        if window_ms <= 0:
            raise ConfigurationError(f"window_ms must be > 0, got {window_ms}")
        self.window_ms = window_ms
        self._samples: List[SignalSample] = []
    
    def add_sample(self, sample: SignalSample) -> None:
        """Append a sample in arrival order."""
        self._samples.append(sample)
    
    def prune(self, now_ms: int) -> int:
        """
        Drop the maximal prefix of samples older than now_ms - window_ms.
        
        Single forward scan followed by one slice deletion.
        
        Returns:
            Number of samples removed
        """
        cutoff = now_ms - self.window_ms
        index = 0
        while index < len(self._samples) and self._samples[index].timestamp_ms < cutoff:
            index += 1
        if index > 0:
            del self._samples[:index]
        return index
    
    def snapshot(self) -> Tuple[SignalSample, ...]:
        """Immutable copy of the current contents."""
        return tuple(self._samples)
    
    def is_empty(self) -> bool:
        return not self._samples
    
    def __len__(self) -> int:
        return len(self._samples)

"""
Observable State
================

Latest-value container the UI can poll or subscribe to.

The tracker publishes into these after every mutation. This is the only
push-out path from the core: subscribers receive immutable snapshots and
must not call back into the publishing tracker from their callback.
"""

import logging
import threading
from typing import Callable, Generic, List, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ObservableState(Generic[T]):
    """
    Thread-safe holder of the most recently published value.
    
    Example:
        dots = ObservableState(())
        unsubscribe = dots.subscribe(lambda value: render(value))
        dots.publish(new_dots)
        unsubscribe()
    """
    
    def __init__(self, initial: T) -> None:
        self._value = initial
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[T], None]] = []
    
    @property
    def value(self) -> T:
        """Most recently published value."""
        with self._lock:
            return self._value
    
    def publish(self, value: T) -> None:
        """Replace the value and notify subscribers in subscription order."""
        with self._lock:
            self._value = value
            subscribers = list(self._subscribers)
        
        for callback in subscribers:
            try:
                callback(value)
            except Exception as e:
                logger.error(f"Subscriber {callback!r} failed: {e}")
    
    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a callback for future publications.
        
        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)
        
        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        
        return unsubscribe

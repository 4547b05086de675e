"""
Named, payload-less broadcast actions between the resolver, the background
task and the consuming surface.
"""
import logging
import threading
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

ACTION_PREFIX = "prayer_sync"
REFRESH_WIDGET_CACHE = f"{ACTION_PREFIX}.REFRESH_WIDGET_CACHE"
WIDGET_RERENDER = f"{ACTION_PREFIX}.WIDGET_RERENDER"


class SignalBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, action: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._subscribers.setdefault(action, []).append(callback)

    def unsubscribe(self, action: str, callback: Callable[[], None]) -> None:
        with self._lock:
            callbacks = self._subscribers.get(action, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def broadcast(self, action: str) -> int:
        """Call every subscriber of action. Returns how many ran without raising."""
        with self._lock:
            callbacks = list(self._subscribers.get(action, []))
        if not callbacks:
            logger.debug(f"No subscribers for {action}")
        delivered = 0
        for callback in callbacks:
            try:
                callback()
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber for {action} failed: {e}", exc_info=True)
        return delivered

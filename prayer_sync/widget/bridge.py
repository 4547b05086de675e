"""
Hand-off between the foreground resolver and whatever renders the widget.

write() persists the record, reads it back, then asks the surface to re-render.
request_refresh() is the background side: if today's record is missing it asks
for a refresh and waits (event, bounded poll) for the write to land.
"""
import logging
import threading
import time
from datetime import date, datetime
from typing import Any, Dict, Optional

from prayer_sync.core.signals import REFRESH_WIDGET_CACHE, WIDGET_RERENDER, SignalBus
from prayer_sync.core.task import WorkResult
from prayer_sync.prayer.cities import CityRepository
from prayer_sync.prayer.resolver import ResolvedPrayerTimes
from prayer_sync.widget.record import (
    WIDGET_CACHE_KEY,
    WIDGET_LAST_UPDATE_KEY,
    DisplaySettings,
    WidgetCacheRecord,
)
from prayer_sync.widget.store import KeyValueStore


class WidgetSyncBridge:
    def __init__(
        self,
        store: KeyValueStore,
        signal_bus: SignalBus,
        cities: Optional[CityRepository] = None,
        poll_interval: float = 1.0,
        max_attempts: int = 10,
        timeout: float = 15.0,
    ):
        self.store = store
        self.signal_bus = signal_bus
        self.cities = cities
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)
        self._written = threading.Event()

    @classmethod
    def from_config(cls, widget_config: Dict[str, Any], store: KeyValueStore, signal_bus: SignalBus,
                    cities: Optional[CityRepository] = None) -> "WidgetSyncBridge":
        widget_config = widget_config or {}
        return cls(
            store,
            signal_bus,
            cities=cities,
            poll_interval=float(widget_config.get("poll_interval", 1.0)),
            max_attempts=int(widget_config.get("max_attempts", 10)),
            timeout=float(widget_config.get("timeout", 15.0)),
        )

    def write(self, resolved: ResolvedPrayerTimes, display: DisplaySettings,
              now: Optional[datetime] = None) -> bool:
        """Persist the record for resolved, verify by reading it back, then signal a re-render."""
        record = WidgetCacheRecord.from_resolved(resolved, display, cities=self.cities, now=now)
        payload = record.to_json()

        if not self.store.put(WIDGET_CACHE_KEY, payload):
            return False
        self.store.put(WIDGET_LAST_UPDATE_KEY, str(record.cache_timestamp_ms))

        verified = self.store.get(WIDGET_CACHE_KEY) == payload
        if verified:
            self.logger.info(f"Widget cache updated ({record.source}, {record.location})")
        else:
            self.logger.warning("Widget cache verification read did not match what was written")

        self.signal_bus.broadcast(WIDGET_RERENDER)
        self._written.set()
        return verified

    def read(self) -> Optional[WidgetCacheRecord]:
        raw = self.store.get(WIDGET_CACHE_KEY)
        if not raw:
            return None
        try:
            return WidgetCacheRecord.from_json(raw)
        except (ValueError, TypeError) as e:
            self.logger.error(f"Unreadable widget cache entry: {e}")
            return None

    def is_fresh(self, today: Optional[date] = None) -> bool:
        record = self.read()
        return record is not None and record.is_fresh(today)

    def request_refresh(self, today: Optional[date] = None) -> WorkResult:
        if self.is_fresh(today):
            self.logger.debug("Widget cache is current, nothing to do")
            return WorkResult.SUCCESS

        self._written.clear()
        delivered = self.signal_bus.broadcast(REFRESH_WIDGET_CACHE)
        self.logger.info(f"Requested widget refresh ({delivered} listeners)")

        if not self._wait_for_write(today):
            self.logger.warning("No widget cache write seen before the wait ran out")

        if self.is_fresh(today):
            return WorkResult.SUCCESS
        return WorkResult.RETRY

    def _wait_for_write(self, today: Optional[date]) -> bool:
        deadline = time.monotonic() + self.timeout
        for _ in range(max(1, self.max_attempts)):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if self._written.wait(min(self.poll_interval, remaining)):
                return True
            # another process may have written the shared DB
            if self.is_fresh(today):
                return True
        return False

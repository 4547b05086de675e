import logging
import sys
import threading
from datetime import date
from typing import Any, Dict, Optional

import requests

from .config import Config
from .db import init_db
from .signals import REFRESH_WIDGET_CACHE, SignalBus
from .task_manager import TaskManager
from prayer_sync.notifications.config import NotificationSettings
from prayer_sync.notifications.scheduler import AlarmBackend, NotificationScheduler, TimerAlarmBackend
from prayer_sync.prayer.backends import MinistryBackend
from prayer_sync.prayer.calendar_parser import MonthlyCalendar
from prayer_sync.prayer.cities import CityRepository
from prayer_sync.prayer.resolver import ResolvedPrayerTimes, ResolverSettings, SourceResolver
from prayer_sync.prayer.task import PrayerRefreshTask
from prayer_sync.widget.bridge import WidgetSyncBridge
from prayer_sync.widget.record import DisplaySettings
from prayer_sync.widget.store import KeyValueStore
from prayer_sync.widget.task import WidgetCacheUpdateTask

DEFAULT_CITY_ID = "58"


class PrayerSyncApp:
    def __init__(
        self,
        config_path: Optional[str] = None,
        watch_config: bool = True,
        db_url: Optional[str] = None,
        config: Optional[Config] = None,
        session: Optional[requests.Session] = None,
        alarm_backend: Optional[AlarmBackend] = None,
        cities: Optional[CityRepository] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = config or Config(config_path=config_path, watch=watch_config)
        self.config.register_change_callback(self.handle_config_change)

        self._setup_logging()

        # Initialize database before anything reads or writes the store
        init_db(self.config.data, db_url=db_url)

        self.session = session or requests.Session()
        self.signal_bus = SignalBus()
        self.task_manager = TaskManager()
        self.cities = cities or CityRepository.load(self.config.section("cities").get("path") or None)
        self.store = KeyValueStore()
        self.scheduler = NotificationScheduler(alarm_backend or TimerAlarmBackend(self.task_manager))
        self.widget_bridge = WidgetSyncBridge.from_config(
            self.config.section("widget"), self.store, self.signal_bus, cities=self.cities
        )

        self.calendar: Optional[MonthlyCalendar] = None
        self.last_resolved: Optional[ResolvedPrayerTimes] = None
        self.last_scheduled_count = 0
        self._refresh_lock = threading.Lock()
        self._stop_event = threading.Event()

        self.signal_bus.subscribe(REFRESH_WIDGET_CACHE, self._on_refresh_requested)

    def _setup_logging(self) -> None:
        """Apply logging.level and an optional logging.file on top of the stdout handler."""
        log_config = self.config.section("logging")
        root_logger = logging.getLogger()
        level_name = str(log_config.get("level", "INFO")).upper()
        root_logger.setLevel(getattr(logging, level_name, logging.INFO))

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        if not root_logger.handlers:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        log_file = log_config.get("file")
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        logging.info("Prayer sync starting...")

    def _prayer_config(self) -> Dict[str, Any]:
        cfg = dict(self.config.section("prayer"))
        cfg.setdefault("cache_dir", self.config.section("cache").get("directory"))
        return cfg

    def build_resolver(self) -> SourceResolver:
        """A resolver for the current config; config edits take effect on the next refresh."""
        cfg = self._prayer_config()
        return SourceResolver.from_config(cfg, cache_dir=cfg.get("cache_dir"), session=self.session)

    def notification_settings(self) -> NotificationSettings:
        return NotificationSettings.from_config(
            self.config.section("notifications"),
            self.config.section("display"),
            timezone=self.config.section("prayer").get("timezone"),
        )

    def display_settings(self) -> DisplaySettings:
        return DisplaySettings.from_config(self.config.section("display"), self.config.section("prayer"))

    def refresh(self) -> ResolvedPrayerTimes:
        """Resolve today's times, supersede the alarm set, then rewrite the widget record."""
        with self._refresh_lock:
            settings = ResolverSettings.from_config(self.config.section("prayer"))
            resolved = self.build_resolver().resolve(settings)
            self.last_resolved = resolved

            if not resolved.ok:
                self.logger.error(f"No prayer times available: {resolved.input_settings.get('lastError')}")
                return resolved

            try:
                self.last_scheduled_count = self.scheduler.reschedule(resolved.times, self.notification_settings())
            except Exception as e:
                self.logger.error(f"Error scheduling notifications: {e}", exc_info=True)
                self.last_scheduled_count = 0

            self.widget_bridge.write(resolved, self.display_settings())
            return resolved

    def _on_refresh_requested(self) -> None:
        self.logger.info("Widget refresh requested")
        self.refresh()

    def resolve_city_id(self) -> str:
        """Configured ministry id, else the id of the named or nearest known city."""
        prayer_config = self.config.section("prayer")
        city_id = str(prayer_config.get("city_id") or "").strip()
        if city_id:
            return city_id

        city = self.cities.by_name(prayer_config.get("city_name", ""))
        if city is not None and city.ministry_id:
            return str(city.ministry_id)

        settings = ResolverSettings.from_config(prayer_config)
        if settings.has_coordinates:
            nearest = self.cities.find_closest(settings.lat, settings.lon)
            if nearest is not None and nearest.city.ministry_id:
                self.logger.info(f"Using nearest city {nearest.city.name} for the calendar")
                return str(nearest.city.ministry_id)

        return DEFAULT_CITY_ID

    def get_calendar(self, force_fetch: bool = False, today: Optional[date] = None) -> MonthlyCalendar:
        """Current Hijri month; refetched once the held calendar has expired.

        Raises PrayerSourceError when the page cannot be fetched or parsed.
        """
        today = today or date.today()
        if self.calendar is not None and not force_fetch and not self.calendar.is_expired(today):
            return self.calendar

        backend = MinistryBackend(self._prayer_config(), session=self.session)
        self.calendar = backend.fetch_monthly_calendar(self.resolve_city_id(), force_fetch=force_fetch, today=today)
        self.logger.info(
            f"Calendar for {self.calendar.hijri_month_latin}: {self.calendar.total_days} days, "
            f"expires {self.calendar.expires_at}"
        )
        return self.calendar

    def register_tasks(self) -> None:
        prayer_config = self.config.section("prayer")
        widget_config = self.config.section("widget")
        tasks = [
            (PrayerRefreshTask(self.refresh, prayer_config), prayer_config),
            (WidgetCacheUpdateTask(self.widget_bridge, widget_config.get("check_interval", 1800)), widget_config),
        ]
        for task, task_config in tasks:
            task.ensure_scheduled()
            self.task_manager.register_task(task.component_name, task.run)
            self.task_manager.schedule_registered_task(task.component_name, task_config, self.config.data)

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Re-resolve in the background when anything affecting times or alarms changed."""
        self.logger.info("Handling config change")
        try:
            self.widget_bridge.poll_interval = float(new_config.get("widget", {}).get("poll_interval", 1.0))
            self.widget_bridge.max_attempts = int(new_config.get("widget", {}).get("max_attempts", 10))
            self.widget_bridge.timeout = float(new_config.get("widget", {}).get("timeout", 15.0))
            self.calendar = None
            self.task_manager.schedule_task("config_refresh", self._on_refresh_requested, 0)
        except Exception as e:
            self.logger.error(f"Error handling config change: {e}", exc_info=True)

    def _drain_result_queue(self) -> None:
        """Log background task results."""
        try:
            while not self.task_manager.result_queue.empty():
                task_name, result = self.task_manager.result_queue.get_nowait()
                self.logger.debug(f"Task result for {task_name}: {result}")
        except Exception as e:
            self.logger.error(f"Error draining result queue: {e}")

    def start(self) -> None:
        """Start the API server and background tasks, then re-arm today's alarms."""
        try:
            from prayer_sync.api import run_api_server
            run_api_server(self)
        except Exception as e:
            self.logger.warning(f"API server not started: {e}")

        self.register_tasks()
        # Alarms live in process memory; the persisted daily run may be hours away
        self.task_manager.schedule_task("startup_refresh", self._on_refresh_requested, 0)

    def run(self) -> None:
        self.start()
        try:
            while not self._stop_event.is_set():
                self._drain_result_queue()
                self._stop_event.wait(1.0)
        except KeyboardInterrupt:
            self.logger.info("Interrupted, shutting down")
        finally:
            self.stop()

    def stop(self) -> None:
        self._stop_event.set()
        self.task_manager.stop()
        self.config.cleanup()

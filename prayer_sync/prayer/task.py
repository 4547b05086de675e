"""
Background task: resolve today's times, reschedule alarms and rewrite the widget record.
"""
import logging
from typing import Any, Callable, Dict, Optional

from prayer_sync.core.task import BaseTask, TaskType, WorkResult, update_after_run

logger = logging.getLogger(__name__)

COMPONENT_NAME = "prayer_refresh"


class PrayerRefreshTask(BaseTask):
    """Run the app's refresh once a day at prayer.schedule_time."""

    def __init__(self, refresh: Callable[[], Any], config: Dict[str, Any],
                 component_name: str = COMPONENT_NAME):
        schedule_type, schedule_config = self._schedule_from_config(config)
        super().__init__(component_name, schedule_type, schedule_config)
        self.refresh = refresh

    def _schedule_from_config(self, config: Dict[str, Any]) -> tuple:
        schedule_time = (config or {}).get("schedule_time") or "00:05"
        try:
            parts = str(schedule_time).strip().split(":")
            hour = int(parts[0]) if parts else 0
            minute = int(parts[1]) if len(parts) > 1 else 0
            return TaskType.DAILY, {"time": f"{hour:02d}:{minute:02d}"}
        except (ValueError, IndexError):
            logger.warning(f"Bad schedule_time {schedule_time!r}, using 00:05")
            return TaskType.DAILY, {"time": "00:05"}

    def run(
        self,
        config: Dict[str, Any],
        result_queue: Any,
        config_data: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> WorkResult:
        try:
            resolved = self.refresh()
        except Exception as e:
            self.logger.exception(f"Prayer refresh failed: {e}")
            update_after_run(self.component_name, last_error=str(e))
            self._report(result_queue, None)
            return WorkResult.RETRY

        if not resolved.ok:
            update_after_run(self.component_name, last_error=resolved.input_settings.get("lastError"))
            self._report(result_queue, resolved.to_dict())
            return WorkResult.RETRY

        update_after_run(self.component_name)
        self._report(result_queue, resolved.to_dict())
        return WorkResult.SUCCESS

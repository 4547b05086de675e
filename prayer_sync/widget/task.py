"""
Background task: make sure today's widget record exists, asking for a refresh if not.
"""
from typing import Any, Dict, Optional

from prayer_sync.core.task import BaseTask, TaskType, WorkResult, update_after_run
from prayer_sync.widget.bridge import WidgetSyncBridge

COMPONENT_NAME = "widget_cache_update"


class WidgetCacheUpdateTask(BaseTask):
    """Check the widget cache every check_interval seconds; RETRY while it is stale."""

    def __init__(self, bridge: WidgetSyncBridge, check_interval: int = 1800,
                 component_name: str = COMPONENT_NAME):
        super().__init__(component_name, TaskType.INTERVAL_SECONDS, {"interval_seconds": int(check_interval)})
        self.bridge = bridge

    def run(
        self,
        config: Dict[str, Any],
        result_queue: Any,
        config_data: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> WorkResult:
        try:
            result = self.bridge.request_refresh()
        except Exception as e:
            self.logger.exception(f"Widget cache check failed: {e}")
            result = WorkResult.RETRY

        if result == WorkResult.SUCCESS:
            update_after_run(self.component_name)
        else:
            update_after_run(self.component_name, last_error="widget cache missing or stale")
        self._report(result_queue, result.value)
        return result

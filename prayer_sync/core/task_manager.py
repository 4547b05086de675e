"""
Single place for scheduling: in-memory timers (alarms, one-shot jobs) and
DB-backed registered tasks with retry backoff.
"""
import logging
import threading
from datetime import datetime, timezone
from queue import Queue
from threading import Timer
from typing import Any, Callable, Dict, List, Optional

from prayer_sync.core.task import WorkResult, get_next_run_from_db


class TaskManager:
    DEFAULT_RETRY_DELAY = 60
    MAX_RETRY_DELAY = 3600

    def __init__(self, retry_delay: int = DEFAULT_RETRY_DELAY, max_retry_delay: int = MAX_RETRY_DELAY):
        self.tasks: Dict[str, Timer] = {}
        self.result_queue = Queue()
        self.logger = logging.getLogger("TaskManager")
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay
        self._lock = threading.RLock()
        self._registered_tasks: Dict[str, Callable[..., Any]] = {}
        self._registered_config: Dict[str, tuple] = {}  # name -> (config, config_data)
        self._retry_attempts: Dict[str, int] = {}

    def schedule_task(self, name: str, callback: Callable, delay: float, one_time: bool = True) -> None:
        """Schedule a task to run after delay seconds. A task with the same name is replaced."""
        try:
            delay = max(0.0, float(delay))
            self.logger.debug(f"Scheduling task {name} with delay {delay:.0f} seconds")
            with self._lock:
                existing = self.tasks.get(name)
                if existing is not None:
                    self.logger.debug(f"Cancelling existing task {name}")
                    existing.cancel()

                scheduled_time = datetime.now().timestamp() + delay
                timer = Timer(delay, self._run_task, args=(name, callback, delay, one_time))
                timer.daemon = True
                timer.scheduled_time = scheduled_time

                self.tasks[name] = timer
                timer.start()
            self.logger.debug(f"Timer started for {name}, scheduled for {datetime.fromtimestamp(scheduled_time)}")
        except Exception as e:
            self.logger.error(f"Error scheduling task {name}: {e}")

    def _run_task(self, name: str, callback: Callable, delay: float, one_time: bool) -> None:
        """Run the task and reschedule if needed."""
        try:
            with self._lock:
                timer = self.tasks.get(name)
                if one_time and timer is not None and timer is threading.current_thread():
                    del self.tasks[name]
            callback()
            if not one_time:
                self.schedule_task(name, callback, delay, one_time)
        except Exception as e:
            self.logger.error(f"Error running task {name}: {e}")

    def cancel_task(self, name: str) -> bool:
        with self._lock:
            timer = self.tasks.pop(name, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_group(self, prefix: str) -> int:
        """Cancel every timer whose name starts with prefix. Returns how many were cancelled."""
        with self._lock:
            names = [name for name in self.tasks if name.startswith(prefix)]
            timers = [self.tasks.pop(name) for name in names]
        for timer in timers:
            timer.cancel()
        if names:
            self.logger.info(f"Cancelled {len(names)} timers in group {prefix}")
        return len(names)

    def register_task(self, component_name: str, runnable: Callable[..., Any]) -> None:
        """Register a runnable. runnable(config, result_queue, **kwargs) does the work and returns a WorkResult."""
        self._registered_tasks[component_name] = runnable
        self.logger.debug(f"Registered task: {component_name}")

    def schedule_registered_task(
        self,
        component_name: str,
        config: Dict[str, Any],
        config_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Schedule a registered task: run at next_run from DB (or immediately if past due).
        After running, the runnable updates next_run in DB; we reschedule again for the new next_run.
        """
        if component_name not in self._registered_tasks:
            self.logger.warning(f"No task registered: {component_name}")
            return
        self._registered_config[component_name] = (config, config_data)
        next_run = get_next_run_from_db(component_name)
        if next_run is None:
            delay = 0
        else:
            delay = max(0, (next_run - datetime.now()).total_seconds())
        callback = lambda: self._run_registered_and_reschedule(component_name)
        self.schedule_task(component_name, callback, delay, one_time=True)

    def _invoke(self, component_name: str) -> Optional[WorkResult]:
        runnable = self._registered_tasks.get(component_name)
        config, config_data = self._registered_config.get(component_name, (None, None))
        if runnable is None or config is None:
            return None
        if config_data is not None:
            return runnable(config, self.result_queue, config_data=config_data)
        return runnable(config, self.result_queue)

    def _run_registered_and_reschedule(self, component_name: str) -> None:
        """Run the registered runnable, then reschedule for next_run from DB, or back off on RETRY."""
        try:
            result = self._invoke(component_name)
        except Exception as e:
            self.logger.exception(f"Registered task {component_name} failed: {e}")
            result = WorkResult.FAILURE

        config, config_data = self._registered_config.get(component_name, (None, None))
        if config is None:
            return

        if result == WorkResult.RETRY:
            attempt = self._retry_attempts.get(component_name, 0)
            self._retry_attempts[component_name] = attempt + 1
            delay = self.backoff_delay(attempt)
            self.logger.info(f"Task {component_name} asked for retry #{attempt + 1}, retrying in {delay}s")
            callback = lambda: self._run_registered_and_reschedule(component_name)
            self.schedule_task(component_name, callback, delay, one_time=True)
            return

        self._retry_attempts.pop(component_name, None)
        self.schedule_registered_task(component_name, config, config_data)

    def backoff_delay(self, attempt: int) -> int:
        """Exponential backoff: retry_delay * 2**attempt, capped at max_retry_delay."""
        return min(self.retry_delay * (2 ** attempt), self.max_retry_delay)

    def get_active_timers(self) -> List[Dict[str, Any]]:
        """Return list of active timer names and their next run time (for API)."""
        result = []
        with self._lock:
            items = list(self.tasks.items())
        for name, timer in items:
            if getattr(timer, "scheduled_time", None) is not None:
                next_run = datetime.fromtimestamp(timer.scheduled_time, tz=timezone.utc)
                result.append({"name": name, "next_run_at": next_run})
        return result

    def run_task_now(
        self,
        component_name: str,
        config: Dict[str, Any],
        config_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[WorkResult]:
        """Run a registered task once immediately (e.g. manual refresh). Puts result on result_queue."""
        runnable = self._registered_tasks.get(component_name)
        if not runnable:
            self.logger.warning(f"No task registered: {component_name}")
            return None
        try:
            if config_data is not None:
                return runnable(config, self.result_queue, config_data=config_data)
            return runnable(config, self.result_queue)
        except Exception as e:
            self.logger.exception(f"Run task now {component_name} failed: {e}")
            return WorkResult.FAILURE

    def stop(self) -> None:
        """Stop all scheduled tasks."""
        with self._lock:
            timers = list(self.tasks.values())
            self.tasks.clear()
        for task in timers:
            task.cancel()

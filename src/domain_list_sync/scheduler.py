"""
Interval scheduler for periodic refresh cycles.

Tasks run every N seconds. A task flagged ``skip_if_running`` is not started
again while its previous run is still in progress, so slow refresh cycles
never overlap.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .audit_logger import AuditLogger


COMPONENT = "Scheduler"


@dataclass
class ScheduledTask:
    """Represents a scheduled task."""

    name: str
    interval_seconds: float
    callback: Callable[[], Awaitable[None]]
    next_run: float = 0.0
    last_run: Optional[float] = None
    enabled: bool = True
    skip_if_running: bool = True
    running: bool = False
    run_count: int = 0
    skipped_count: int = 0
    error_count: int = 0

    def is_due(self, now: float) -> bool:
        return self.enabled and now >= self.next_run


class IntervalScheduler:
    """Runs async callbacks at fixed intervals."""

    def __init__(
        self,
        tick_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False
        self._tick_seconds = tick_seconds
        self._clock = clock
        self._sleep = sleep
        self._logger = logger
        self._pending: set[asyncio.Task] = set()

    def schedule(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
        run_immediately: bool = True,
        skip_if_running: bool = True,
    ) -> ScheduledTask:
        """
        Schedule a task.

        Args:
            name: Unique name for the task
            interval_seconds: Seconds between two starts of the task
            callback: Async function to call when the task is due
            run_immediately: Start the first run on the next tick
            skip_if_running: Skip a due run while the previous one is active

        Raises:
            ValueError: If the name is taken or the interval is not positive
        """
        if name in self._tasks:
            raise ValueError(f"Task '{name}' already exists")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        now = self._clock()
        task = ScheduledTask(
            name=name,
            interval_seconds=interval_seconds,
            callback=callback,
            next_run=now if run_immediately else now + interval_seconds,
            skip_if_running=skip_if_running,
        )
        self._tasks[name] = task
        return task

    def unschedule(self, name: str) -> bool:
        if name in self._tasks:
            del self._tasks[name]
            return True
        return False

    def get_task(self, name: str) -> Optional[ScheduledTask]:
        return self._tasks.get(name)

    def list_tasks(self) -> list[ScheduledTask]:
        return list(self._tasks.values())

    def enable_task(self, name: str) -> bool:
        """Enable a task. Returns True if task exists."""
        if name in self._tasks:
            self._tasks[name].enabled = True
            return True
        return False

    def disable_task(self, name: str) -> bool:
        """Disable a task. Returns True if task exists."""
        if name in self._tasks:
            self._tasks[name].enabled = False
            return True
        return False

    async def run_task(self, name: str) -> bool:
        """
        Run a task right away and wait for it.

        Returns:
            False if the task does not exist or was skipped because a
            previous run is still active
        """
        task = self._tasks.get(name)
        if task is None or not self._claim(task):
            return False
        await self._invoke(task)
        return True

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Run the scheduler loop until stopped.

        Due tasks are started in the background so a slow task does not
        delay the others. Callback errors are logged and do not end the loop.

        Args:
            stop_event: Optional event to signal the scheduler to stop
        """
        self._running = True
        try:
            while self._running:
                now = self._clock()
                for task in list(self._tasks.values()):
                    if task.is_due(now):
                        task.next_run = now + task.interval_seconds
                        self._launch(task)

                if stop_event is not None and stop_event.is_set():
                    break

                await self._sleep(self._tick_seconds)
        finally:
            self._running = False
            if self._pending:
                await asyncio.gather(*self._pending, return_exceptions=True)

    def stop(self) -> None:
        """Signal the scheduler to stop."""
        self._running = False

    def is_running(self) -> bool:
        return self._running

    def _claim(self, task: ScheduledTask) -> bool:
        if task.skip_if_running and task.running:
            task.skipped_count += 1
            if self._logger:
                self._logger.debug(COMPONENT, "Previous run still active, skipping", {"task": task.name})
            return False
        task.running = True
        task.last_run = self._clock()
        return True

    def _launch(self, task: ScheduledTask) -> None:
        if not self._claim(task):
            return
        pending = asyncio.ensure_future(self._invoke(task))
        self._pending.add(pending)
        pending.add_done_callback(self._pending.discard)

    async def _invoke(self, task: ScheduledTask) -> None:
        try:
            await task.callback()
            task.run_count += 1
        except Exception as e:
            task.error_count += 1
            if self._logger:
                self._logger.log_error(
                    COMPONENT,
                    "Scheduled task failed",
                    e,
                    additional_data={"task": task.name},
                )
        finally:
            task.running = False

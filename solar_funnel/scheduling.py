"""Cancellable delayed callbacks used for transient funnel side effects."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Protocol

LOGGER = logging.getLogger(__name__)


class ScheduledTask(Protocol):
    def cancel(self) -> None:  # pragma: no cover - runtime protocol
        """Prevent the callback from running if it has not run yet."""


class Scheduler(Protocol):
    """Anything able to run ``callback`` once after ``delay`` seconds."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:  # pragma: no cover - runtime protocol
        ...


class _TimerTask:
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingScheduler:
    """Runs callbacks on daemon :class:`threading.Timer` threads."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        timer = threading.Timer(max(delay, 0.0), callback)
        timer.daemon = True
        timer.start()
        return _TimerTask(timer)


class _DeferredTask:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class DeferredScheduler:
    """Holds callbacks until :meth:`run_pending` is called, ignoring the delay.

    Suits prompt loops where time only passes between one answer and the next.
    """

    def __init__(self) -> None:
        self._tasks: List[_DeferredTask] = []

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = _DeferredTask(callback)
        self._tasks.append(task)
        return task

    def run_pending(self) -> int:
        tasks, self._tasks = self._tasks, []
        ran = 0
        for task in tasks:
            if not task.cancelled:
                task.callback()
                ran += 1
        return ran


class TaskGroup:
    """Tracks scheduled tasks belonging to one session so they can be cancelled together."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._lock = threading.Lock()
        self._tokens: Dict[str, object] = {}
        self._handles: Dict[str, ScheduledTask] = {}

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        """Schedule ``callback`` under ``key``, replacing any pending task with that key."""

        self.cancel(key)
        token = object()
        with self._lock:
            self._tokens[key] = token

        def run() -> None:
            with self._lock:
                if self._tokens.get(key) is not token:
                    LOGGER.debug("Skipping cancelled task %s", key)
                    return
                del self._tokens[key]
                self._handles.pop(key, None)
            callback()

        handle = self._scheduler.schedule(delay, run)
        with self._lock:
            if self._tokens.get(key) is token:
                self._handles[key] = handle

    def cancel(self, key: str) -> None:
        with self._lock:
            self._tokens.pop(key, None)
            handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for key in self.pending():
            self.cancel(key)

    def pending(self) -> List[str]:
        with self._lock:
            return list(self._tokens)

"""
Deferred execution for publish.

A scheduler is anything exposing ``schedule(task)`` where ``task`` is a
zero-argument callable to run on a later turn. The bus schedules exactly
one task per publish. Three implementations:

 - AsyncioScheduler  → loop.call_soon (default; worker thread when no loop runs)
 - ManualScheduler   → queued until run_pending() (tests, game loops)
 - ThreadScheduler   → one daemon worker thread, FIFO

Plain callables are accepted by the bus as schedulers too.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Type

from topicbus.core.errors import ConfigError, SchedulerUnavailable

log = logging.getLogger(__name__)

Task = Callable[[], None]


class AsyncioScheduler:
    """
    Runs tasks via the event loop's ready queue.

    With an explicit loop, tasks are handed over thread-safely; otherwise
    the loop running at schedule time is used. With no loop running the
    task goes to ``fallback`` (any scheduler or callable); without a
    fallback SchedulerUnavailable is raised.
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        fallback: Any = None,
    ) -> None:
        self._loop = loop
        self.fallback = fallback

    def schedule(self, task: Task) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(task)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            if self.fallback is None:
                raise SchedulerUnavailable("no running event loop to deliver on") from exc
            getattr(self.fallback, "schedule", self.fallback)(task)
            return
        loop.call_soon(task)


class ManualScheduler:
    """Holds tasks until the owner calls run_pending()."""

    def __init__(self) -> None:
        self._tasks: Deque[Task] = deque()

    def schedule(self, task: Task) -> None:
        self._tasks.append(task)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def run_pending(self) -> int:
        """Run queued tasks in FIFO order, including ones queued meanwhile."""
        ran = 0
        while self._tasks:
            task = self._tasks.popleft()
            task()
            ran += 1
        return ran


_STOP = object()


class ThreadScheduler:
    """
    Single background worker draining a FIFO queue.

    The worker starts on first schedule(). A task that raises is logged
    and the worker moves on to the next one. Each worker owns its queue:
    close() hands the stop marker to the current worker's queue and gives
    later schedule() calls a fresh one, so a restarted worker never sees it.
    """

    def __init__(self, name: str = "topicbus-dispatch") -> None:
        self.name = name
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def schedule(self, task: Task) -> None:
        with self._lock:
            self._ensure_worker()
            self._queue.put(task)

    def _ensure_worker(self) -> None:
        # caller holds _lock
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, args=(self._queue,), name=self.name, daemon=True)
        self._thread.start()

    def _run(self, tasks: "queue.Queue[object]") -> None:
        while True:
            task = tasks.get()
            try:
                if task is _STOP:
                    return
                task()  # type: ignore[operator]
            except Exception:
                log.exception("scheduled task failed")
            finally:
                tasks.task_done()

    def join(self) -> None:
        """Block until every task scheduled so far has run."""
        with self._lock:
            tasks = self._queue
        tasks.join()

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop the worker after the tasks already queued have run."""
        with self._lock:
            thread, tasks = self._thread, self._queue
            self._thread = None
            self._queue = queue.Queue()
            tasks.put(_STOP)
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout)


SCHEDULERS: Dict[str, Type] = {
    "asyncio": AsyncioScheduler,
    "manual": ManualScheduler,
    "thread": ThreadScheduler,
}


def default_scheduler() -> AsyncioScheduler:
    """Event loop when one is running, a background worker otherwise."""
    return AsyncioScheduler(fallback=ThreadScheduler())


def build_scheduler(name: str):
    key = str(name).strip().lower()
    if key not in SCHEDULERS:
        raise ConfigError(f"unknown scheduler {name!r}; expected one of {sorted(SCHEDULERS)}")
    if key == "asyncio":
        return default_scheduler()
    return SCHEDULERS[key]()

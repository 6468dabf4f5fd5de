"""Schedulers: delayed callbacks and deferred work on the event loop."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Any, Awaitable, Callable, Protocol

from loguru import logger


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], Any]) -> None:
        ...

    def spawn(self, work: Awaitable[Any]) -> None:
        ...


class AsyncioScheduler:
    """Runs callbacks on the running asyncio loop.

    Outside a running loop (plain scripts) delayed callbacks run
    immediately and spawned coroutines run to completion.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback()
            return
        loop.call_later(delay, callback)

    def spawn(self, work: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(_await(work))
            return
        task = loop.create_task(_await(work))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error("Spawned task failed")


class ManualScheduler:
    """Deterministic clock: callbacks fire only when ``advance`` passes them.

    Spawned coroutines run to completion immediately.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, Callable[[], Any]]] = []
        self._counter = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return len(self._queue)

    def call_later(self, delay: float, callback: Callable[[], Any]) -> None:
        heapq.heappush(self._queue, (self._now + delay, next(self._counter), callback))

    def spawn(self, work: Awaitable[Any]) -> None:
        asyncio.run(_await(work))

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, callback = heapq.heappop(self._queue)
            self._now = when
            callback()
        self._now = target

    def run_all(self) -> None:
        while self._queue:
            self.advance(self._queue[0][0] - self._now)


async def _await(work: Awaitable[Any]) -> Any:
    return await work

"""Serial, rate-limited execution of asynchronous callbacks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, Tuple, TypeVar

from ..logging import get_logger

T = TypeVar("T")

TaskCallback = Callable[[], Awaitable[Any]]


@dataclass
class TaskResult(Generic[T]):
    """Outcome of one scheduled callback; the scheduler never raises task errors."""

    success: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    ABORTED = "aborted"
    DRAINED = "drained"


class RateLimitedScheduler:
    """Runs scheduled callbacks one at a time, in submission order.

    After each *successful* callback the consumer sleeps ``delay_ms`` before
    starting the next one. Failed callbacks do not incur the delay.
    Setting ``abort_event`` (or calling :meth:`abort`) stops the consumer from
    starting further callbacks; the one in flight is allowed to finish and
    anything still queued is never resolved.
    """

    def __init__(self, delay_ms: float = 0, abort_event: Optional[asyncio.Event] = None) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.delay = delay_ms / 1000.0
        self._abort_event = abort_event
        self._aborted = False
        self._queue: Optional[asyncio.Queue[Tuple[TaskCallback, asyncio.Future]]] = None
        self._consumer: Optional[asyncio.Task] = None
        self.state = SchedulerState.IDLE
        self.logger = get_logger("generation.scheduler")

    @property
    def aborted(self) -> bool:
        if not self._aborted and self._abort_event is not None and self._abort_event.is_set():
            self._aborted = True
        return self._aborted

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def abort(self) -> None:
        self._aborted = True
        self.state = SchedulerState.ABORTED
        self.logger.debug("Scheduler aborted with %d task(s) still queued", self.pending)

    async def schedule(self, callback: TaskCallback) -> TaskResult:
        """Queue ``callback`` and wait for its :class:`TaskResult`.

        After an abort the callback is still queued but never run, so the
        returned awaitable does not resolve.
        """
        loop = asyncio.get_running_loop()
        if self._queue is None:
            self._queue = asyncio.Queue()
        future: asyncio.Future = loop.create_future()
        self._queue.put_nowait((callback, future))
        self._ensure_consumer(self._queue)
        return await future

    async def join(self) -> None:
        """Wait until the queue has been fully consumed (or the scheduler aborted)."""
        if self._consumer is not None:
            await self._consumer

    # ------------------------------------------------------------------
    # Internal helpers

    def _ensure_consumer(self, queue: asyncio.Queue) -> None:
        if self.aborted:
            self.state = SchedulerState.ABORTED
            return
        if self._consumer is None or self._consumer.done():
            self.state = SchedulerState.RUNNING
            self._consumer = asyncio.ensure_future(self._consume(queue))

    async def _consume(self, queue: asyncio.Queue) -> None:
        while not queue.empty():
            if self.aborted:
                self.state = SchedulerState.ABORTED
                return
            callback, future = queue.get_nowait()
            try:
                value = await callback()
            except Exception as exc:  # noqa: BLE001 - reported through TaskResult
                self.logger.debug("Scheduled task failed: %s", exc)
                _resolve(future, TaskResult(success=False, error=exc))
                continue
            _resolve(future, TaskResult(success=True, value=value))
            if self.delay:
                await asyncio.sleep(self.delay)
        self.state = SchedulerState.ABORTED if self.aborted else SchedulerState.DRAINED


def _resolve(future: asyncio.Future, result: TaskResult) -> None:
    if not future.done():
        future.set_result(result)


__all__ = ["RateLimitedScheduler", "SchedulerState", "TaskCallback", "TaskResult"]

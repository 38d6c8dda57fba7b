"""Wall-clock timers for the cognition layer.

Conversation turns and background thoughts are spaced in seconds, not ticks.
Instead of scattering ``asyncio.sleep`` calls, every delayed action goes
through a :class:`TimerQueue` bound to a :class:`Clock`. Production code uses
:class:`SystemClock` and calls :meth:`TimerQueue.run_due` from the tick loop;
tests use :class:`ManualClock` and step time explicitly.

Actions may be plain callables or return a coroutine. Coroutines become
tracked tasks so the queue can wait for them to settle.
"""

from __future__ import annotations

import asyncio
import heapq
import inspect
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol, Set

from ..logging_utils import LOG_TAG_ERROR, log_error


class Clock(Protocol):
    def now(self) -> float: ...


class SystemClock:
    """Monotonic seconds."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, value: float) -> None:
        if value < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = float(value)


TimerAction = Callable[[], Any]


@dataclass(order=True)
class TimerHandle:
    """A scheduled action. Ordered by ``(fire_at, seq)``."""

    fire_at: float
    seq: int
    action: TimerAction = field(compare=False)
    label: str = field(default="", compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class TimerQueue:
    """Min-heap of delayed actions driven by an injected clock."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock: Clock = clock or SystemClock()
        self._heap: List[TimerHandle] = []
        self._seq = itertools.count()
        self._tasks: Set[asyncio.Task] = set()

    # -- scheduling ------------------------------------------------------
    def call_later(self, delay: float, action: TimerAction, *, label: str = "") -> TimerHandle:
        handle = TimerHandle(
            fire_at=self.clock.now() + max(0.0, delay),
            seq=next(self._seq),
            action=action,
            label=label,
        )
        heapq.heappush(self._heap, handle)
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        handle.cancel()

    def cancel_all(self) -> None:
        for handle in self._heap:
            handle.cancel()
        self._heap.clear()
        for task in list(self._tasks):
            task.cancel()

    def pending(self) -> int:
        return sum(1 for handle in self._heap if not handle.cancelled)

    def next_due(self) -> Optional[float]:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0].fire_at if self._heap else None

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # -- firing ----------------------------------------------------------
    async def run_due(self) -> int:
        """Fire every timer due by ``clock.now()``; returns how many ran.

        Timers scheduled by a firing action with a zero delay run in the same
        pass.
        """
        fired = 0
        now = self.clock.now()
        while self._heap and self._heap[0].fire_at <= now:
            handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            fired += 1
            self._fire(handle)
        return fired

    def _fire(self, handle: TimerHandle) -> None:
        try:
            result = handle.action()
        except Exception as exc:
            log_error(f"  {LOG_TAG_ERROR} [Timer] {handle.label or 'action'} failed: {exc}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done(handle.label))

    def _task_done(self, label: str) -> Callable[[asyncio.Task], None]:
        def callback(task: asyncio.Task) -> None:
            self._tasks.discard(task)
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                log_error(f"  {LOG_TAG_ERROR} [Timer] {label or 'task'} failed: {exc}")

        return callback

    async def wait_idle(self) -> None:
        """Wait until every task spawned by fired timers has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- manual time -----------------------------------------------------
    def _manual_clock(self) -> ManualClock:
        if not isinstance(self.clock, ManualClock):
            raise TypeError("Stepping time requires a ManualClock")
        return self.clock

    async def advance(self, seconds: float) -> int:
        """Move a manual clock forward, firing timers in order along the way.

        Each due timer runs with the clock set to its own fire time, and its
        tasks settle before the next timer is considered.
        """
        clock = self._manual_clock()
        target = clock.now() + seconds
        fired = 0
        await self.wait_idle()
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            clock.set(max(due, clock.now()))
            fired += await self.run_due()
            await self.wait_idle()
        clock.set(target)
        return fired

    async def drain(self, max_steps: int = 1000) -> int:
        """Jump a manual clock timer to timer until nothing is scheduled."""
        clock = self._manual_clock()
        fired = 0
        await self.wait_idle()
        for _ in range(max_steps):
            due = self.next_due()
            if due is None:
                break
            clock.set(max(due, clock.now()))
            fired += await self.run_due()
            await self.wait_idle()
        return fired


__all__ = [
    "Clock",
    "SystemClock",
    "ManualClock",
    "TimerAction",
    "TimerHandle",
    "TimerQueue",
]

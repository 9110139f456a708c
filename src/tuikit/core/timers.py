"""
Interval timers behind widget refresh ticks.

Widgets never talk to an event loop directly. They ask a Scheduler for a
repeating callback and keep the returned handle inside an IntervalTimer,
whose ``cancel_if_present()`` is the one place a timer is ever cancelled.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)


TickCallback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def active(self) -> bool: ...


class Scheduler(Protocol):
    def call_every(self, interval_ms: float, callback: TickCallback) -> TimerHandle: ...

    def monotonic(self) -> float: ...


class _ManualHandle:
    def __init__(self, scheduler: 'ManualScheduler', interval_ms: float, callback: TickCallback):
        self._scheduler = scheduler
        self.interval_ms = interval_ms
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._scheduler._discard(self)


class ManualScheduler:
    """Scheduler driven by a virtual clock.

    Nothing fires until ``advance()`` moves the clock; due ticks then run in
    time order, each to completion before the next starts.
    """

    def __init__(self, start: float = 0.0):
        self._now_ms = start * 1000.0
        self._queue: List[Tuple[float, int, _ManualHandle]] = []
        self._seq = itertools.count()
        self._handles: List[_ManualHandle] = []

    def call_every(self, interval_ms: float, callback: TickCallback) -> _ManualHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        handle = _ManualHandle(self, interval_ms, callback)
        self._handles.append(handle)
        heapq.heappush(self._queue, (self._now_ms + interval_ms, next(self._seq), handle))
        return handle

    def monotonic(self) -> float:
        return self._now_ms / 1000.0

    @property
    def now_ms(self) -> float:
        return self._now_ms

    @property
    def active_count(self) -> int:
        return len(self._handles)

    def advance(self, ms: float) -> int:
        """Move the clock forward, running every tick that falls due. Returns tick count."""
        target = self._now_ms + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self._now_ms = due
            try:
                handle.callback()
            except Exception as e:
                logger.error(f"Timer callback failed: {e}")
            fired += 1
            if handle.active:
                heapq.heappush(self._queue, (due + handle.interval_ms, next(self._seq), handle))
        self._now_ms = target
        return fired

    def _discard(self, handle: _ManualHandle) -> None:
        if handle in self._handles:
            self._handles.remove(handle)


class _AsyncioHandle:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval_ms: float, callback: TickCallback):
        self._loop = loop
        self._interval = interval_ms / 1000.0
        self._callback = callback
        self._timer: Optional[asyncio.TimerHandle] = loop.call_later(self._interval, self._fire)

    @property
    def active(self) -> bool:
        return self._timer is not None

    def _fire(self) -> None:
        if self._timer is None:
            return
        try:
            self._callback()
        except Exception as e:
            logger.error(f"Timer callback failed: {e}")
        if self._timer is not None:
            self._timer = self._loop.call_later(self._interval, self._fire)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class _InertHandle:
    active = False

    def cancel(self) -> None:
        pass


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def call_every(self, interval_ms: float, callback: TickCallback):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        loop = self._get_loop()
        if loop is None:
            logger.warning("No event loop available, periodic refresh disabled")
            return _InertHandle()
        return _AsyncioHandle(loop, interval_ms, callback)

    def monotonic(self) -> float:
        loop = self._get_loop()
        return loop.time() if loop is not None else time.monotonic()


class IntervalTimer:
    """Owns at most one repeating timer handle."""

    def __init__(self, scheduler: Scheduler, name: str = "timer"):
        self._scheduler = scheduler
        self.name = name
        self._handle: Optional[TimerHandle] = None
        self.interval_ms: Optional[float] = None

    @property
    def active(self) -> bool:
        return self._handle is not None and self._handle.active

    def start(self, interval_ms: float, callback: TickCallback) -> None:
        self.cancel_if_present()
        self._handle = self._scheduler.call_every(interval_ms, callback)
        self.interval_ms = interval_ms

    def cancel_if_present(self) -> bool:
        """Cancel the current handle if there is one; returns whether one was cancelled."""
        handle, self._handle = self._handle, None
        self.interval_ms = None
        if handle is None:
            return False
        handle.cancel()
        return True

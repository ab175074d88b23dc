"""
Single-shot timers and the two rate limiting policies built on them.

``Throttle`` arms a timer on the first request and ignores further requests
until it fires, so a burst produces exactly one trailing call.
``Debounce`` restarts its timer on every request, so the call happens once
the requests have been quiet for the whole window.
"""
import heapq
import itertools
import logging
import threading
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class TimerScheduler:
    """Runs callbacks on daemon ``threading.Timer`` threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class _ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler driven by its owner instead of a clock.

    Hosts with their own event loop call ``advance()`` or ``run_pending()``
    to fire the timers that are due. Callbacks run on the caller's thread.
    """

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, _ManualHandle, Callable[[], None]]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._counter), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward and run every timer due by then. Returns the number of calls."""
        self.now += seconds
        calls = 0
        while self._queue and self._queue[0][0] <= self.now:
            _, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            callback()
            calls += 1
        return calls

    def run_pending(self) -> int:
        """Run every timer, including the ones armed while running, regardless of their delay."""
        calls = 0
        while self._queue:
            due = self._queue[0][0]
            if due > self.now:
                self.now = due
            calls += self.advance()
        return calls


def _run_safely(name: str, callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Scheduled action '%s' failed", name)


class Throttle:
    """Collapse a burst of requests into one call at the end of a fixed window."""

    def __init__(self, scheduler: Scheduler, delay: float, callback: Callable[[], None], name: str = ''):
        self._scheduler = scheduler
        self._delay = delay
        self._callback = callback
        self._name = name or getattr(callback, '__name__', 'throttle')
        self._lock = threading.Lock()
        self._handle: Optional[TimerHandle] = None

    @property
    def waiting(self) -> bool:
        return self._handle is not None

    def __call__(self) -> None:
        with self._lock:
            if self._handle is not None:
                return
            self._handle = self._scheduler.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        with self._lock:
            self._handle = None
        _run_safely(self._name, self._callback)

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None


class Debounce:
    """Call once the requests stopped for a whole window; every request restarts it."""

    def __init__(self, scheduler: Scheduler, delay: float, callback: Callable[[], None], name: str = ''):
        self._scheduler = scheduler
        self._delay = delay
        self._callback = callback
        self._name = name or getattr(callback, '__name__', 'debounce')
        self._lock = threading.Lock()
        self._handle: Optional[TimerHandle] = None

    @property
    def waiting(self) -> bool:
        return self._handle is not None

    def __call__(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = self._scheduler.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        with self._lock:
            self._handle = None
        _run_safely(self._name, self._callback)

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None

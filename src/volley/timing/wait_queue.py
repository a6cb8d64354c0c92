"""DeferredExecutionQueue: many timeouts, one sweeping thread.

Registrations are bucketed by their exact deadline. A single daemon
thread wakes every ``interval`` seconds, pops every bucket whose deadline
has passed (in ascending deadline order) and fires its callbacks. The
precision of a timeout is therefore bounded by the sweep interval, which
is fine when there are many waiters and nobody needs sub-interval
accuracy.

Registrations cannot be withdrawn once enqueued.
"""

from __future__ import annotations

import asyncio
import heapq
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

DEFAULT_INITIAL_DELAY = 0.5
DEFAULT_INTERVAL = 0.05

logger = structlog.get_logger(__name__)


@dataclass
class TimeoutRegistration:
    """A callback to fire once ``deadline`` (monotonic seconds) has passed."""

    deadline: float
    on_timeout: Callable[[], None]

    def fire(self) -> None:
        self.on_timeout()


class DeferredExecutionQueue:
    """Timestamp-bucketed timeout queue swept by one background thread.

    Args:
        clock: Monotonic clock in seconds. Deadlines are expressed on it.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: dict[float, list[TimeoutRegistration]] = {}
        self._deadlines: list[float] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def has_pending(self) -> bool:
        """True while any bucket is waiting to be swept."""
        with self._lock:
            return bool(self._buckets)

    @property
    def pending_count(self) -> int:
        """Number of registrations not yet fired."""
        with self._lock:
            return sum(len(bucket) for bucket in self._buckets.values())

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(
        self,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        interval: float = DEFAULT_INTERVAL,
    ) -> None:
        """Start the sweeping thread.

        Args:
            initial_delay: Seconds before the first sweep.
            interval: Seconds between sweeps.
        """
        if interval <= 0:
            raise ValueError("interval must be > 0")
        if self.is_running:
            raise RuntimeError("DeferredExecutionQueue is already running")

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(max(0.0, initial_delay), interval, self._stop_event),
            name="volley-deferred-queue",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = 1.0) -> None:
        """Stop the sweeping thread. Pending registrations stay queued."""
        thread = self._thread
        self._thread = None
        self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def enqueue(self, deadline: float, on_timeout: Callable[[], None]) -> TimeoutRegistration:
        """Register ``on_timeout`` to fire once ``deadline`` has passed."""
        registration = TimeoutRegistration(deadline=deadline, on_timeout=on_timeout)
        self.enqueue_registration(registration)
        return registration

    def enqueue_registration(self, registration: TimeoutRegistration) -> None:
        with self._lock:
            bucket = self._buckets.get(registration.deadline)
            if bucket is None:
                self._buckets[registration.deadline] = [registration]
                heapq.heappush(self._deadlines, registration.deadline)
            else:
                bucket.append(registration)
        logger.debug("deferred_queue.enqueued", deadline=registration.deadline)

    def schedule(self, delay: float, on_timeout: Callable[[], None]) -> TimeoutRegistration:
        """Register ``on_timeout`` to fire ``delay`` seconds from now."""
        return self.enqueue(self._clock() + delay, on_timeout)

    def wait_handle(self, delay: float) -> threading.Event:
        """Return an event that is set ``delay`` seconds from now."""
        event = threading.Event()
        self.schedule(delay, event.set)
        return event

    async def sleep(self, delay: float) -> None:
        """Suspend the current task for about ``delay`` seconds.

        Resolution is bounded by the sweep interval; the queue must be
        started for this to ever return.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[None] = loop.create_future()

        def wake() -> None:
            if not future.done():
                future.set_result(None)

        self.schedule(delay, lambda: loop.call_soon_threadsafe(wake))
        await future

    def sweep(self, now: float | None = None) -> int:
        """Fire every bucket whose deadline is <= ``now``.

        Buckets are removed before their callbacks run, so a bucket is
        never fired twice. A raising callback is logged and the rest of
        the sweep continues.

        Returns:
            Number of callbacks fired.
        """
        current = self._clock() if now is None else now
        due: list[TimeoutRegistration] = []

        with self._lock:
            while self._deadlines and self._deadlines[0] <= current:
                deadline = heapq.heappop(self._deadlines)
                due.extend(self._buckets.pop(deadline))

        for registration in due:
            try:
                registration.fire()
            except Exception:
                logger.exception(
                    "deferred_queue.callback_failed",
                    deadline=registration.deadline,
                )
        return len(due)

    def _run(self, initial_delay: float, interval: float, stop_event: threading.Event) -> None:
        if stop_event.wait(initial_delay):
            return
        while not stop_event.is_set():
            self.sweep()
            stop_event.wait(interval)

"""Event loop and work queue that drive the reconciler.

The runner lists every Application, then watches for changes and feeds the
identities it sees into a :class:`WorkQueue`. Worker threads take identities off
the queue and run one reconcile cycle each. Failed cycles are re-queued with a
per-identity exponential backoff.

Queue rules:
- an identity is queued at most once, however many events arrive for it
- an identity is never processed by two workers at the same time
- an identity that changes while being processed is queued again afterwards
"""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from argocdsyncer.domain.errors import StoreError, WatchExpiredError

if TYPE_CHECKING:
    from collections.abc import Callable

    from argocdsyncer.domain.model import NamespacedName
    from argocdsyncer.domain.ports.events import ApplicationEvent, ApplicationEventSource
    from argocdsyncer.domain.reconciliation import ApplicationReconciler

log = getLogger(__name__)

DEFAULT_BASE_DELAY_SECONDS: Final[float] = 0.005
DEFAULT_MAX_DELAY_SECONDS: Final[float] = 1000.0
DEFAULT_RELIST_DELAY_SECONDS: Final[float] = 1.0
_POLL_INTERVAL_SECONDS: Final[float] = 0.5


@dataclass(slots=True)
class ExponentialBackoff:
    """Per-identity delays: ``base``, ``2 * base``, ``4 * base`` ... capped at ``maximum``."""

    base_seconds: float = DEFAULT_BASE_DELAY_SECONDS
    max_seconds: float = DEFAULT_MAX_DELAY_SECONDS
    _failures: dict[NamespacedName, int] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def next_delay(self, key: NamespacedName) -> float:
        with self._lock:
            failures = self._failures.get(key, 0)
            self._failures[key] = failures + 1
        return min(self.base_seconds * (2**failures), self.max_seconds)

    def failures(self, key: NamespacedName) -> int:
        with self._lock:
            return self._failures.get(key, 0)

    def forget(self, key: NamespacedName) -> None:
        with self._lock:
            self._failures.pop(key, None)


class WorkQueue:
    """Thread-safe coalescing queue of Application identities."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._cond = threading.Condition()
        self._queue: deque[NamespacedName] = deque()
        self._dirty: set[NamespacedName] = set()
        self._processing: set[NamespacedName] = set()
        self._delayed: list[tuple[float, int, NamespacedName]] = []
        self._sequence = itertools.count()
        self._shutting_down = False

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    @property
    def shutting_down(self) -> bool:
        with self._cond:
            return self._shutting_down

    def add(self, key: NamespacedName) -> None:
        with self._cond:
            self._add_locked(key)

    def add_after(self, key: NamespacedName, delay_seconds: float) -> None:
        if delay_seconds <= 0:
            self.add(key)
            return
        with self._cond:
            if self._shutting_down:
                return
            due = self._clock() + delay_seconds
            heapq.heappush(self._delayed, (due, next(self._sequence), key))
            self._cond.notify()

    def get(self, timeout: float | None = None) -> NamespacedName | None:
        """Block until an identity is ready; ``None`` on shutdown or timeout."""

        deadline = None if timeout is None else self._clock() + timeout
        with self._cond:
            while True:
                self._promote_due_locked()
                if self._queue:
                    key = self._queue.popleft()
                    self._processing.add(key)
                    self._dirty.discard(key)
                    return key
                if self._shutting_down:
                    return None
                wait = self._next_wait_locked(deadline)
                if wait is not None and wait <= 0:
                    return None
                self._cond.wait(wait)

    def done(self, key: NamespacedName) -> None:
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._queue.append(key)
                self._cond.notify()

    def shut_down(self) -> None:
        with self._cond:
            self._shutting_down = True
            self._cond.notify_all()

    def _add_locked(self, key: NamespacedName) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._cond.notify()

    def _promote_due_locked(self) -> None:
        now = self._clock()
        while self._delayed and self._delayed[0][0] <= now:
            _due, _seq, key = heapq.heappop(self._delayed)
            self._add_locked(key)

    def _next_wait_locked(self, deadline: float | None) -> float | None:
        now = self._clock()
        waits: list[float] = []
        if self._delayed:
            waits.append(self._delayed[0][0] - now)
        if deadline is not None:
            if deadline <= now:
                return 0.0
            waits.append(deadline - now)
        if not waits:
            return None
        return max(min(waits), 0.001)


class ControllerRunner:
    """Run ``reconciler`` for every Application reported by ``events``."""

    def __init__(
        self,
        *,
        reconciler: ApplicationReconciler,
        events: ApplicationEventSource,
        workers: int = 1,
        queue: WorkQueue | None = None,
        backoff: ExponentialBackoff | None = None,
        relist_delay_seconds: float = DEFAULT_RELIST_DELAY_SECONDS,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._reconciler = reconciler
        self._events = events
        self._workers = workers
        self.queue = queue or WorkQueue()
        self.backoff = backoff or ExponentialBackoff()
        self._relist_delay_seconds = relist_delay_seconds
        self._stop = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        log.info("Stopping controller")
        self._stop.set()
        self.queue.shut_down()

    def run(self) -> None:
        """Block until :meth:`stop` is called."""

        log.info("Starting controller with %s worker(s)", self._workers)
        watcher = threading.Thread(target=self.watch_loop, name="application-watch", daemon=True)
        watcher.start()
        workers = [
            threading.Thread(target=self._work, name=f"reconcile-worker-{index}")
            for index in range(self._workers)
        ]
        for worker in workers:
            worker.start()
        self._stop.wait()
        self.queue.shut_down()
        for worker in workers:
            worker.join()
        log.info("Controller stopped")

    def enqueue(self, event: ApplicationEvent) -> None:
        log.debug(
            "%s event for Application %s at version %s",
            event.type,
            event.key,
            event.resource_version,
        )
        self.queue.add(event.key)

    def process_next(self, timeout: float | None = None) -> bool:
        """Run one reconcile cycle; return ``False`` when nothing was dequeued."""

        key = self.queue.get(timeout)
        if key is None:
            return False
        try:
            outcome = self._reconciler.reconcile(key)
        except StoreError as exc:
            delay = self._requeue(key)
            log.warning(
                "Failed to reconcile Application %s, retrying in %.3fs: %s", key, delay, exc
            )
        except Exception:
            delay = self._requeue(key)
            log.exception(
                "Unexpected error while reconciling Application %s, retrying in %.3fs", key, delay
            )
        else:
            self.backoff.forget(key)
            log.debug("Reconciled Application %s: %s", key, outcome)
        finally:
            self.queue.done(key)
        return True

    def watch_loop(self) -> None:
        """List, then watch until the stream can no longer resume; repeat until stopped."""

        while not self._stop.is_set():
            try:
                keys, resource_version = self._events.list_keys()
                log.info("Listed %s Application(s)", len(keys))
                for key in keys:
                    self.queue.add(key)
                while not self._stop.is_set():
                    resource_version = self._events.watch(
                        resource_version,
                        self.enqueue,
                        should_stop=self._stop.is_set,
                    )
            except WatchExpiredError as exc:
                log.info("Watch expired, listing again: %s", exc)
            except StoreError as exc:
                log.warning("Watch failed, listing again: %s", exc)
                self._stop.wait(self._relist_delay_seconds)
            except Exception:
                log.exception("Unexpected error while watching Applications")
                self._stop.wait(self._relist_delay_seconds)

    def _work(self) -> None:
        while not self._stop.is_set() or len(self.queue):
            if not self.process_next(timeout=_POLL_INTERVAL_SECONDS) and self.queue.shutting_down:
                return

    def _requeue(self, key: NamespacedName) -> float:
        delay = self.backoff.next_delay(key)
        self.queue.add_after(key, delay)
        return delay

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

import pytest

from argocdsyncer.domain.errors import StoreUnavailableError, WatchExpiredError
from argocdsyncer.domain.model import NamespacedName
from argocdsyncer.domain.ports.events import ApplicationEvent, EventType
from argocdsyncer.domain.reconciliation import ApplicationReconciler, ReconcileOutcome
from argocdsyncer.runner import ControllerRunner, ExponentialBackoff, WorkQueue
from tests.support.applications import TARGET_NAMESPACE, InMemoryApplicationStore, make_application

if TYPE_CHECKING:
    from collections.abc import Callable

FOO = NamespacedName(namespace="team-a", name="foo")
BAR = NamespacedName(namespace="team-b", name="bar")


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class ScriptedEventSource:
    """Event source that replays a fixed list of watch results."""

    def __init__(
        self,
        keys: list[NamespacedName],
        watches: list[list[ApplicationEvent] | Exception],
        *,
        on_exhausted: Callable[[], None],
    ) -> None:
        self.keys = keys
        self.watches = watches
        self.on_exhausted = on_exhausted
        self.list_calls = 0
        self.watch_versions: list[str | None] = []

    def list_keys(self) -> tuple[list[NamespacedName], str | None]:
        self.list_calls += 1
        return list(self.keys), f"list-{self.list_calls}"

    def watch(
        self,
        resource_version: str | None,
        handler: Callable[[ApplicationEvent], None],
        *,
        should_stop: Callable[[], bool],
    ) -> str | None:
        self.watch_versions.append(resource_version)
        if not self.watches:
            self.on_exhausted()
            return resource_version
        step = self.watches.pop(0)
        if isinstance(step, Exception):
            raise step
        for event in step:
            if should_stop():
                break
            handler(event)
        return step[-1].resource_version if step else resource_version


class IdleEventSource:
    def __init__(self, keys: list[NamespacedName]) -> None:
        self.keys = keys

    def list_keys(self) -> tuple[list[NamespacedName], str | None]:
        return list(self.keys), "1"

    def watch(
        self,
        resource_version: str | None,
        handler: Callable[[ApplicationEvent], None],  # noqa: ARG002
        *,
        should_stop: Callable[[], bool],
    ) -> str | None:
        while not should_stop():
            time.sleep(0.01)
        return resource_version


class FailingReconciler:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls: list[NamespacedName] = []

    def reconcile(self, key: NamespacedName) -> ReconcileOutcome:
        self.calls.append(key)
        raise self.error


def _runner(
    reconciler: object,
    events: object | None = None,
    *,
    clock: FakeClock | None = None,
) -> ControllerRunner:
    return ControllerRunner(
        reconciler=reconciler,  # type: ignore[arg-type]
        events=events or IdleEventSource([]),  # type: ignore[arg-type]
        queue=WorkQueue(clock=clock or FakeClock()),
        relist_delay_seconds=0,
    )


# WorkQueue ------------------------------------------------------------------------


def test_queue_coalesces_pending_keys() -> None:
    queue = WorkQueue()

    queue.add(FOO)
    queue.add(FOO)
    queue.add(BAR)

    assert len(queue) == 2
    assert queue.get(timeout=0) == FOO
    assert queue.get(timeout=0) == BAR
    assert queue.get(timeout=0) is None


def test_queue_defers_key_that_changes_while_processing() -> None:
    queue = WorkQueue()
    queue.add(FOO)
    key = queue.get(timeout=0)

    queue.add(FOO)

    assert len(queue) == 0
    assert queue.get(timeout=0) is None
    assert key is not None
    queue.done(key)
    assert queue.get(timeout=0) == FOO


def test_queue_done_without_changes_does_not_requeue() -> None:
    queue = WorkQueue()
    queue.add(FOO)
    key = queue.get(timeout=0)
    assert key is not None

    queue.done(key)

    assert len(queue) == 0


def test_queue_releases_delayed_keys_when_due() -> None:
    clock = FakeClock()
    queue = WorkQueue(clock=clock)

    queue.add_after(FOO, 5.0)

    assert queue.get(timeout=0) is None
    clock.now += 5.0
    assert queue.get(timeout=0) == FOO


def test_queue_delayed_key_coalesces_with_pending_one() -> None:
    clock = FakeClock()
    queue = WorkQueue(clock=clock)
    queue.add(FOO)
    queue.add_after(FOO, 1.0)
    clock.now += 1.0

    assert queue.get(timeout=0) == FOO
    assert queue.get(timeout=0) is None


def test_queue_shutdown_drains_then_stops() -> None:
    queue = WorkQueue()
    queue.add(FOO)

    queue.shut_down()
    queue.add(BAR)

    assert queue.shutting_down
    assert queue.get() == FOO
    assert queue.get() is None


def test_queue_get_wakes_up_on_add() -> None:
    queue = WorkQueue()
    result: list[NamespacedName | None] = []
    consumer = threading.Thread(target=lambda: result.append(queue.get(timeout=5)))
    consumer.start()

    queue.add(FOO)
    consumer.join(timeout=5)

    assert result == [FOO]


# ExponentialBackoff ---------------------------------------------------------------


def test_backoff_doubles_per_key_and_caps() -> None:
    backoff = ExponentialBackoff(base_seconds=0.005, max_seconds=0.02)

    delays = [backoff.next_delay(FOO) for _ in range(4)]

    assert delays == [0.005, 0.01, 0.02, 0.02]
    assert backoff.next_delay(BAR) == 0.005
    assert backoff.failures(FOO) == 4


def test_backoff_forget_resets_key() -> None:
    backoff = ExponentialBackoff()
    backoff.next_delay(FOO)
    backoff.next_delay(FOO)

    backoff.forget(FOO)

    assert backoff.failures(FOO) == 0
    assert backoff.next_delay(FOO) == pytest.approx(0.005)


# ControllerRunner -----------------------------------------------------------------


def test_process_next_reconciles_and_forgets_failures(store: InMemoryApplicationStore) -> None:
    store.put(make_application())
    runner = _runner(ApplicationReconciler(store=store, target_namespace=TARGET_NAMESPACE))
    runner.backoff.next_delay(FOO)
    runner.queue.add(FOO)

    assert runner.process_next(timeout=0) is True

    assert runner.backoff.failures(FOO) == 0
    source = store.stored(FOO)
    assert source is not None
    assert source.finalizers == ["argoproj.io/finalizer"]


def test_process_next_requeues_store_failures_with_backoff(
    store: InMemoryApplicationStore,
) -> None:
    clock = FakeClock()
    store.put(make_application())
    store.fail_next("get", StoreUnavailableError("connection refused"))
    runner = _runner(
        ApplicationReconciler(store=store, target_namespace=TARGET_NAMESPACE),
        clock=clock,
    )
    runner.queue.add(FOO)

    assert runner.process_next(timeout=0) is True

    assert runner.backoff.failures(FOO) == 1
    assert runner.queue.get(timeout=0) is None
    clock.now += 0.005
    assert runner.process_next(timeout=0) is True
    assert runner.backoff.failures(FOO) == 0


def test_store_failure_is_logged_once_without_traceback(
    store: InMemoryApplicationStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    store.put(make_application())
    store.fail_next("get", StoreUnavailableError("connection refused"))
    runner = _runner(ApplicationReconciler(store=store, target_namespace=TARGET_NAMESPACE))
    runner.queue.add(FOO)

    with caplog.at_level(logging.DEBUG, logger="argocdsyncer"):
        runner.process_next(timeout=0)

    failures = [record for record in caplog.records if record.levelno >= logging.WARNING]
    assert len(failures) == 1
    assert failures[0].name == "argocdsyncer.runner"
    assert "connection refused" in failures[0].getMessage()
    assert failures[0].exc_info is None


def test_unexpected_error_is_logged_once_with_traceback(
    caplog: pytest.LogCaptureFixture,
) -> None:
    runner = _runner(FailingReconciler(KeyError("spec")))
    runner.queue.add(FOO)

    with caplog.at_level(logging.DEBUG, logger="argocdsyncer"):
        runner.process_next(timeout=0)

    failures = [record for record in caplog.records if record.levelno >= logging.WARNING]
    assert len(failures) == 1
    assert failures[0].exc_info is not None


def test_process_next_requeues_unexpected_errors() -> None:
    clock = FakeClock()
    reconciler = FailingReconciler(KeyError("spec"))
    runner = _runner(reconciler, clock=clock)
    runner.queue.add(FOO)

    runner.process_next(timeout=0)
    clock.now += 1.0
    runner.process_next(timeout=0)

    assert reconciler.calls == [FOO, FOO]
    assert runner.backoff.failures(FOO) == 2


def test_process_next_returns_false_when_idle() -> None:
    runner = _runner(FailingReconciler(RuntimeError("unused")))

    assert runner.process_next(timeout=0) is False


def test_enqueue_coalesces_events_by_key_regardless_of_type() -> None:
    runner = _runner(FailingReconciler(KeyError("unused")))

    runner.enqueue(ApplicationEvent(type=EventType.ADDED, key=FOO, resource_version="1"))
    runner.enqueue(ApplicationEvent(type=EventType.MODIFIED, key=FOO, resource_version="2"))
    runner.enqueue(ApplicationEvent(type=EventType.DELETED, key=FOO))

    assert len(runner.queue) == 1
    assert runner.queue.get(timeout=0) == FOO


def test_watch_loop_lists_then_enqueues_events() -> None:
    runner: ControllerRunner
    events = ScriptedEventSource(
        [FOO],
        [[ApplicationEvent(type=EventType.MODIFIED, key=BAR, resource_version="7")]],
        on_exhausted=lambda: runner.stop(),
    )
    runner = _runner(FailingReconciler(RuntimeError("unused")), events)

    runner.watch_loop()

    assert events.list_calls == 1
    assert events.watch_versions == ["list-1", "7"]
    assert runner.queue.get() == FOO
    assert runner.queue.get() == BAR


def test_watch_loop_lists_again_after_expiry_and_failures() -> None:
    runner: ControllerRunner
    events = ScriptedEventSource(
        [FOO],
        [
            WatchExpiredError("too old resource version", status_code=410),
            StoreUnavailableError("connection reset"),
        ],
        on_exhausted=lambda: runner.stop(),
    )
    runner = _runner(FailingReconciler(RuntimeError("unused")), events)

    runner.watch_loop()

    assert events.list_calls == 3
    assert events.watch_versions == ["list-1", "list-2", "list-3"]


def test_runner_rejects_zero_workers() -> None:
    with pytest.raises(ValueError, match="workers"):
        ControllerRunner(
            reconciler=FailingReconciler(RuntimeError("unused")),  # type: ignore[arg-type]
            events=IdleEventSource([]),
            workers=0,
        )


def test_run_mirrors_listed_applications_until_stopped(
    store: InMemoryApplicationStore,
) -> None:
    store.put(make_application())
    runner = ControllerRunner(
        reconciler=ApplicationReconciler(store=store, target_namespace=TARGET_NAMESPACE),
        events=IdleEventSource([FOO]),
        workers=2,
    )
    thread = threading.Thread(target=runner.run)
    thread.start()

    mirror_key = NamespacedName(namespace=TARGET_NAMESPACE, name="foo")
    deadline = time.monotonic() + 5
    while store.stored(mirror_key) is None and time.monotonic() < deadline:
        # the first cycle only adds the finalizer; nudge a second one
        runner.queue.add(FOO)
        time.sleep(0.01)
    runner.stop()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert runner.stopped
    assert store.stored(mirror_key) is not None

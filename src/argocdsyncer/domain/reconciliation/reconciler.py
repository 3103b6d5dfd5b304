"""Reconcile entry point for tenant Applications.

One call handles one Application identity from scratch:

1) skip identities inside the target namespace (the controller's own output)
2) fetch the source; a missing source means deletion already completed
3) deleting source: delete the mirror, then release finalizers
4) live source without the controller finalizer: add it and stop
5) validate, then create or update the mirror

Every step is safe to repeat, so the caller may retry a failed cycle at any
point. Store failures propagate as :class:`StoreError` unlogged; the caller
reports them once when it schedules the retry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from argocdsyncer.domain.errors import InvalidApplicationError

from .finalizers import FinalizerManager
from .mirror import MirrorSynchronizer, SyncAction
from .validation import validate_application

if TYPE_CHECKING:
    from argocdsyncer.domain.model import NamespacedName
    from argocdsyncer.domain.ports.store import ApplicationStore

log = getLogger(__name__)


class ReconcileOutcome(StrEnum):
    NOT_FOUND = "not_found"
    IGNORED = "ignored"
    FINALIZED = "finalized"
    FINALIZER_ADDED = "finalizer_added"
    INVALID = "invalid"
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


_OUTCOME_BY_SYNC_ACTION = {
    SyncAction.CREATED: ReconcileOutcome.CREATED,
    SyncAction.UPDATED: ReconcileOutcome.UPDATED,
    SyncAction.UNCHANGED: ReconcileOutcome.UNCHANGED,
}


@dataclass(slots=True)
class ApplicationReconciler:
    """Mirror tenant Applications into ``target_namespace``."""

    store: ApplicationStore
    target_namespace: str
    finalizers: FinalizerManager = field(init=False)
    mirrors: MirrorSynchronizer = field(init=False)

    def __post_init__(self) -> None:
        if not self.target_namespace:
            raise ValueError("target_namespace must not be empty")
        self.finalizers = FinalizerManager(store=self.store)
        self.mirrors = MirrorSynchronizer(store=self.store, target_namespace=self.target_namespace)

    def reconcile(self, key: NamespacedName) -> ReconcileOutcome:
        """Run one reconcile cycle for ``key`` and report what it did."""

        if key.namespace == self.target_namespace:
            log.debug("Ignoring Application %s in namespace %s", key, self.target_namespace)
            return ReconcileOutcome.IGNORED

        source = self.store.get(key)
        if source is None:
            log.debug("Application %s was already deleted", key)
            return ReconcileOutcome.NOT_FOUND

        log.info("> Reconciling Application %s", key)

        if source.is_deleting:
            self.finalizers.finalize(source, self.mirrors.remove)
            return ReconcileOutcome.FINALIZED

        if not self.finalizers.has_finalizer(source):
            self.finalizers.ensure(source)
            return ReconcileOutcome.FINALIZER_ADDED

        try:
            validate_application(source)
        except InvalidApplicationError as exc:
            log.error("Application %s is not mirrored: %s", key, exc)  # noqa: TRY400
            return ReconcileOutcome.INVALID

        return _OUTCOME_BY_SYNC_ACTION[self.mirrors.sync(source)]

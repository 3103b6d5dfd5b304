"""Projection of source Applications into the Argo CD namespace."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from argocdsyncer.domain.model import ARGOCD_FINALIZER, Application, NamespacedName

if TYPE_CHECKING:
    from argocdsyncer.domain.ports.store import ApplicationStore

log = getLogger(__name__)


class SyncAction(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def build_mirror(source: Application, target_namespace: str) -> Application:
    """Return the mirror ``source`` should have in ``target_namespace``.

    Spec, labels and annotations are deep-copied so the mirror never shares
    mutable state with the source. The Argo CD finalizer is carried over when the
    source has it.
    """

    mirror = Application(
        name=source.name,
        namespace=target_namespace,
        spec=copy.deepcopy(source.spec),
        labels=dict(source.labels),
        annotations=dict(source.annotations),
        api_version=source.api_version,
        kind=source.kind,
    )
    if source.has_finalizer(ARGOCD_FINALIZER):
        mirror.add_finalizer(ARGOCD_FINALIZER)
    return mirror


@dataclass(slots=True)
class MirrorSynchronizer:
    """Create, update and delete mirrors in ``target_namespace``."""

    store: ApplicationStore
    target_namespace: str

    def mirror_key(self, source: Application) -> NamespacedName:
        return NamespacedName(namespace=self.target_namespace, name=source.name)

    def sync(self, source: Application) -> SyncAction:
        desired = build_mirror(source, self.target_namespace)
        existing = self.store.get(desired.key)

        if existing is None:
            log.info("Mirror %s does not exist, creating it", desired.key)
            self.store.create(desired)
            log.info("Created mirror %s", desired.key)
            return SyncAction.CREATED

        if existing.spec == desired.spec:
            log.debug("Mirror %s is up to date", desired.key)
            return SyncAction.UNCHANGED

        desired.resource_version = existing.resource_version
        # Only .spec is owned here; finalizers on the live mirror stay as they are.
        desired.finalizers = list(existing.finalizers)
        desired.passthrough = copy.deepcopy(existing.passthrough)
        log.info("Mirror %s differs from its source, updating it", desired.key)
        self.store.update(desired)
        log.info("Updated mirror %s", desired.key)
        return SyncAction.UPDATED

    def remove(self, source: Application) -> None:
        key = self.mirror_key(source)
        log.info("Deleting mirror %s", key)
        self.store.delete(key)
        log.info("Deleted mirror %s", key)

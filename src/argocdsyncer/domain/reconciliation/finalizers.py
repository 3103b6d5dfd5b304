"""Finalizer lifecycle of source Applications.

The controller finalizer is added to every live source before anything is
mirrored, and removed only after the mirror is gone. Removal happens in a fixed
order:

1) run the cleanup callback (delete the mirror)
2) drop the controller finalizer and persist
3) drop the Argo CD finalizer, if present, and persist again

A crash between any two steps leaves the controller finalizer in place until
step 2 succeeds, so the next delivery of the deletion event resumes at step 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from argocdsyncer.domain.model import ARGOCD_FINALIZER, CONTROLLER_FINALIZER

if TYPE_CHECKING:
    from collections.abc import Callable

    from argocdsyncer.domain.model import Application
    from argocdsyncer.domain.ports.store import ApplicationStore

log = getLogger(__name__)


@dataclass(slots=True)
class FinalizerManager:
    """Add and release finalizers on source Applications through ``store``."""

    store: ApplicationStore
    finalizer: str = CONTROLLER_FINALIZER
    external_finalizer: str = ARGOCD_FINALIZER

    def has_finalizer(self, application: Application) -> bool:
        return application.has_finalizer(self.finalizer)

    def ensure(self, application: Application) -> Application | None:
        """Persist the controller finalizer on ``application`` if it is missing.

        Returns the stored object when a write happened and ``None`` otherwise.
        """

        if self.has_finalizer(application):
            return None
        updated = application.clone()
        updated.add_finalizer(self.finalizer)
        stored = self.store.update(updated)
        log.info("Added finalizer %s to Application %s", self.finalizer, application.key)
        return stored

    def finalize(
        self,
        application: Application,
        cleanup: Callable[[Application], None],
    ) -> bool:
        """Run ``cleanup`` and release the finalizers of a deleting ``application``.

        Returns ``False`` without touching the store when the controller finalizer
        is already gone, which happens when a deletion event is delivered again
        after a completed teardown.
        """

        if not self.has_finalizer(application):
            log.info("Application %s is already finalized", application.key)
            return False

        cleanup(application)

        released = application.clone()
        released.remove_finalizer(self.finalizer)
        current = self.store.update(released)
        log.info("Removed finalizer %s from Application %s", self.finalizer, application.key)

        if current.has_finalizer(self.external_finalizer):
            released = current.clone()
            released.remove_finalizer(self.external_finalizer)
            self.store.update(released)
            log.info(
                "Removed finalizer %s from Application %s",
                self.external_finalizer,
                application.key,
            )

        log.info("Finalized Application %s", application.key)
        return True

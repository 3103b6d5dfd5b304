"""Port for observing changes to Application resources."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

    from argocdsyncer.domain.model import NamespacedName


class EventType(StrEnum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass(frozen=True, slots=True)
class ApplicationEvent:
    """Notification that the Application at ``key`` changed.

    Only ``key`` drives work: the reconciler always reads the current state
    itself, so events can be coalesced freely. ``type`` and ``resource_version``
    are informational and only show up in logs.
    """

    type: EventType
    key: NamespacedName
    resource_version: str | None = None


@runtime_checkable
class ApplicationEventSource(Protocol):
    """List-then-watch contract used to feed the reconcile queue."""

    def list_keys(self) -> tuple[list[NamespacedName], str | None]:
        """Return every Application identity and the resource version of the listing."""
        ...

    def watch(
        self,
        resource_version: str | None,
        handler: Callable[[ApplicationEvent], None],
        *,
        should_stop: Callable[[], bool],
    ) -> str | None:
        """Deliver events newer than ``resource_version`` until the stream ends.

        Returns the last resource version observed so the caller can resume.
        Raises :class:`~argocdsyncer.domain.errors.WatchExpiredError` when the
        caller has to list again.
        """
        ...


__all__ = ["ApplicationEvent", "ApplicationEventSource", "EventType"]

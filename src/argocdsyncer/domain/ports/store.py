"""Port for reading and writing Application resources."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from argocdsyncer.domain.model import Application, NamespacedName


@runtime_checkable
class ApplicationStore(Protocol):
    """Blocking CRUD contract over namespaced Application resources.

    Implementations raise :class:`~argocdsyncer.domain.errors.StoreError` for any
    failure other than a missing object. Writes honour the resource version carried
    by the given application and raise
    :class:`~argocdsyncer.domain.errors.StoreConflictError` when it is stale.
    """

    def get(self, key: NamespacedName) -> Application | None: ...

    def create(self, application: Application) -> Application: ...

    def update(self, application: Application) -> Application: ...

    def delete(self, key: NamespacedName) -> None: ...


__all__ = ["ApplicationStore"]

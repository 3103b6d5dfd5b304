"""Domain representation of Argo CD ``Application`` resources."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003
from typing import Any, Final, TypeAlias

APPLICATION_API_VERSION: Final[str] = "argoproj.io/v1alpha1"
APPLICATION_KIND: Final[str] = "Application"

# Finalizer owned by this controller; guards mirror cleanup on the source.
CONTROLLER_FINALIZER: Final[str] = "argoproj.io/finalizer"
# Finalizer owned by Argo CD; makes Argo CD prune the deployed resources.
ARGOCD_FINALIZER: Final[str] = "resources-finalizer.argocd.argoproj.io"

ApplicationSpec: TypeAlias = dict[str, Any]


@dataclass(frozen=True, slots=True, order=True)
class NamespacedName:
    """Identity of a namespaced resource."""

    namespace: str
    name: str

    @classmethod
    def parse(cls, value: str) -> NamespacedName:
        """Parse ``namespace/name`` as printed by :meth:`__str__`."""

        namespace, sep, name = value.strip().partition("/")
        if not sep or not namespace or not name or "/" in name:
            raise ValueError(f"Expected NAMESPACE/NAME, got: {value!r}")
        return cls(namespace=namespace, name=name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(kw_only=True)
class Application:
    """An ``Application`` custom resource as seen by the controller.

    ``spec`` is kept as the JSON-shaped mapping read from the API server so that
    fields this controller does not know about survive a mirror round-trip.
    ``passthrough`` holds the rest of the stored object (status, uid, owner
    references, ...) so that a full-object update does not drop it.
    """

    name: str
    namespace: str
    spec: ApplicationSpec = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    resource_version: str | None = None
    deletion_timestamp: datetime | None = None
    api_version: str = APPLICATION_API_VERSION
    kind: str = APPLICATION_KIND
    passthrough: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def key(self) -> NamespacedName:
        return NamespacedName(namespace=self.namespace, name=self.name)

    @property
    def is_deleting(self) -> bool:
        return self.deletion_timestamp is not None

    @property
    def destination_namespace(self) -> str | None:
        destination = self.spec.get("destination")
        if not isinstance(destination, dict):
            return None
        namespace = destination.get("namespace")
        return namespace if isinstance(namespace, str) else None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers

    def add_finalizer(self, finalizer: str) -> bool:
        """Add ``finalizer``; return ``True`` when the set changed."""

        if finalizer in self.finalizers:
            return False
        self.finalizers.append(finalizer)
        return True

    def remove_finalizer(self, finalizer: str) -> bool:
        """Remove every occurrence of ``finalizer``; return ``True`` when the set changed."""

        if finalizer not in self.finalizers:
            return False
        self.finalizers = [value for value in self.finalizers if value != finalizer]
        return True

    def clone(self) -> Application:
        return copy.deepcopy(self)

"""Errors raised by the reconciliation core and its ports."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import NamespacedName


class StoreError(RuntimeError):
    """Raised when the resource store fails to serve a request.

    Store errors are transient from the core's point of view: the reconcile cycle
    is abandoned and the caller is expected to retry it.
    """

    def __init__(
        self,
        message: str,
        *,
        key: NamespacedName | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.status_code = status_code


class StoreConflictError(StoreError):
    """Raised when a write carries a stale resource version or the object already exists."""


class StoreUnavailableError(StoreError):
    """Raised when the store cannot be reached or answers with an unexpected error."""


class InvalidApplicationError(ValueError):
    """Raised when an Application must not be mirrored as written."""

    def __init__(self, message: str, *, key: NamespacedName) -> None:
        super().__init__(message)
        self.key = key


class WatchExpiredError(StoreError):
    """Raised when a watch can no longer resume from its resource version."""

"""Admission rules an Application must satisfy before it is mirrored."""

from __future__ import annotations

from typing import TYPE_CHECKING

from argocdsyncer.domain.errors import InvalidApplicationError

if TYPE_CHECKING:
    from argocdsyncer.domain.model import Application


def validate_application(application: Application) -> None:
    """Raise :class:`InvalidApplicationError` when ``application`` may not be mirrored.

    A tenant may only deploy into its own namespace: the Application's
    ``spec.destination.namespace`` must equal the namespace it lives in.
    """

    destination = application.destination_namespace
    if destination != application.namespace:
        raise InvalidApplicationError(
            f"destination namespace {destination!r} does not match "
            f"Application namespace {application.namespace!r}",
            key=application.key,
        )

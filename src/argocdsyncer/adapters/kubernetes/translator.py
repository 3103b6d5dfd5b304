"""Translate between Kubernetes JSON objects and domain Applications."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from argocdsyncer.domain.model import Application

from .schema import ApplicationPayload, ObjectMetaPayload

if TYPE_CHECKING:
    from collections.abc import Mapping


def parse_application(payload: Mapping[str, Any]) -> Application:
    """Build a domain Application from an API object, keeping unmanaged fields aside."""

    model = ApplicationPayload.model_validate(payload)
    return Application(
        name=model.metadata.name,
        namespace=model.metadata.namespace,
        spec=copy.deepcopy(model.spec),
        labels=dict(model.metadata.labels or {}),
        annotations=dict(model.metadata.annotations or {}),
        finalizers=list(model.metadata.finalizers or []),
        resource_version=model.metadata.resource_version,
        deletion_timestamp=model.metadata.deletion_timestamp,
        api_version=model.api_version,
        kind=model.kind,
        passthrough=_unmanaged_fields(payload),
    )


def application_to_payload(application: Application) -> dict[str, Any]:
    """Render ``application`` as a full API object suitable for POST or PUT."""

    payload = copy.deepcopy(application.passthrough)
    metadata: dict[str, Any] = payload.pop("metadata", {})
    metadata.update(
        {
            "name": application.name,
            "namespace": application.namespace,
            "labels": dict(application.labels),
            "annotations": dict(application.annotations),
            "finalizers": list(application.finalizers),
        }
    )
    if application.resource_version is not None:
        metadata["resourceVersion"] = application.resource_version
    payload.update(
        {
            "apiVersion": application.api_version,
            "kind": application.kind,
            "metadata": metadata,
            "spec": copy.deepcopy(application.spec),
        }
    )
    return payload


def _unmanaged_fields(payload: Mapping[str, Any]) -> dict[str, Any]:
    unmanaged = {
        key: copy.deepcopy(value)
        for key, value in payload.items()
        if key not in ApplicationPayload.MANAGED_KEYS
    }
    raw_metadata = payload.get("metadata")
    if isinstance(raw_metadata, dict):
        metadata = {
            key: copy.deepcopy(value)
            for key, value in raw_metadata.items()
            if key not in ObjectMetaPayload.MANAGED_KEYS
        }
        if metadata:
            unmanaged["metadata"] = metadata
    return unmanaged

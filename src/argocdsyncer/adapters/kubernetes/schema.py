"""Kubernetes API payload schemas for Argo CD Applications."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import Any, ClassVar, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from argocdsyncer.domain.model import APPLICATION_API_VERSION, APPLICATION_KIND


WatchEventType: TypeAlias = Literal["ADDED", "MODIFIED", "DELETED", "BOOKMARK", "ERROR"]


class KubernetesBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ObjectMetaPayload(KubernetesBaseModel):
    """Fields of ``metadata`` the controller reads or writes."""

    MANAGED_KEYS: ClassVar[frozenset[str]] = frozenset(
        {
            "name",
            "namespace",
            "labels",
            "annotations",
            "finalizers",
            "resourceVersion",
            "deletionTimestamp",
        }
    )

    name: str
    namespace: str
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    finalizers: list[str] | None = None
    resource_version: str | None = Field(default=None, alias="resourceVersion")
    deletion_timestamp: datetime | None = Field(default=None, alias="deletionTimestamp")


class ApplicationPayload(KubernetesBaseModel):
    MANAGED_KEYS: ClassVar[frozenset[str]] = frozenset({"apiVersion", "kind", "metadata", "spec"})

    api_version: str = Field(default=APPLICATION_API_VERSION, alias="apiVersion")
    kind: str = APPLICATION_KIND
    metadata: ObjectMetaPayload
    spec: dict[str, Any] = Field(default_factory=dict)


class ListMetaPayload(KubernetesBaseModel):
    resource_version: str | None = Field(default=None, alias="resourceVersion")
    continue_token: str | None = Field(default=None, alias="continue")


class ApplicationListPayload(KubernetesBaseModel):
    metadata: ListMetaPayload = Field(default_factory=ListMetaPayload)
    items: list[dict[str, Any]] = Field(default_factory=list)


class StatusPayload(KubernetesBaseModel):
    """``Status`` object returned by the API server on failures."""

    kind: str = "Status"
    status: str | None = None
    message: str | None = None
    reason: str | None = None
    code: int | None = None


class WatchEventPayload(KubernetesBaseModel):
    type: WatchEventType
    object: dict[str, Any] = Field(default_factory=dict)

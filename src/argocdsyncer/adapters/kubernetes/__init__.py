"""Kubernetes API adapter."""

from __future__ import annotations

from .client import KubernetesApplicationStore, store_error
from .connection import RequestThrottle, build_retry, load_api_client
from .schema import (
    ApplicationListPayload,
    ApplicationPayload,
    ObjectMetaPayload,
    StatusPayload,
    WatchEventPayload,
)
from .translator import application_to_payload, parse_application

__all__ = [
    "ApplicationListPayload",
    "ApplicationPayload",
    "KubernetesApplicationStore",
    "ObjectMetaPayload",
    "RequestThrottle",
    "StatusPayload",
    "WatchEventPayload",
    "application_to_payload",
    "build_retry",
    "load_api_client",
    "parse_application",
    "store_error",
]

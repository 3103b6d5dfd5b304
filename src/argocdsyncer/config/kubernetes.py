"""Kubernetes API server connection settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import get_env_int, get_env_var
from .http_resilience import RateLimit, RetryPolicy

KUBECONFIG_ENV: Final[str] = "KUBECONFIG"
KUBE_CONTEXT_ENV: Final[str] = "KUBE_CONTEXT"
KUBE_QPS_ENV: Final[str] = "KUBE_QPS"
KUBE_REQUEST_TIMEOUT_ENV: Final[str] = "KUBE_REQUEST_TIMEOUT_SECONDS"
KUBE_WATCH_TIMEOUT_ENV: Final[str] = "KUBE_WATCH_TIMEOUT_SECONDS"

DEFAULT_QPS: Final[int] = 20
DEFAULT_REQUEST_TIMEOUT_SECONDS: Final[int] = 30
DEFAULT_WATCH_TIMEOUT_SECONDS: Final[int] = 300


@dataclass(frozen=True, slots=True)
class KubernetesConfig:
    """How to reach the API server.

    Without ``kubeconfig`` the in-cluster service account is tried first and the
    default kubeconfig second. ``ratelimit=None`` disables client-side throttling.
    """

    kubeconfig: str | None = None
    context: str | None = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = field(
        default_factory=lambda: RateLimit(max_calls=DEFAULT_QPS, per_seconds=1.0)
    )
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
    watch_timeout_seconds: int = DEFAULT_WATCH_TIMEOUT_SECONDS


def get_kubernetes_config() -> KubernetesConfig:
    """Build API server settings from ``KUBECONFIG`` and the ``KUBE_*`` variables.

    ``KUBE_QPS=0`` turns client-side throttling off.
    """

    kubeconfig = get_env_var(KUBECONFIG_ENV, "") or None
    context = get_env_var(KUBE_CONTEXT_ENV, "") or None
    qps = get_env_int(KUBE_QPS_ENV, DEFAULT_QPS, minimum=0)

    return KubernetesConfig(
        kubeconfig=kubeconfig,
        context=context,
        ratelimit=RateLimit(max_calls=qps, per_seconds=1.0) if qps else None,
        request_timeout_seconds=get_env_int(
            KUBE_REQUEST_TIMEOUT_ENV, DEFAULT_REQUEST_TIMEOUT_SECONDS, minimum=1
        ),
        watch_timeout_seconds=get_env_int(
            KUBE_WATCH_TIMEOUT_ENV, DEFAULT_WATCH_TIMEOUT_SECONDS, minimum=1
        ),
    )

"""API client construction and client-side throttling."""

from __future__ import annotations

import asyncio
import threading
from logging import getLogger
from typing import TYPE_CHECKING

from aiolimiter import AsyncLimiter
from kubernetes import client
from kubernetes import config as kube_config
from urllib3.util.retry import Retry

from argocdsyncer.config import ConfigurationError

if TYPE_CHECKING:
    from argocdsyncer.config import KubernetesConfig, RateLimit, RetryPolicy

log = getLogger(__name__)


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        backoff_max=policy.max_backoff_wait,
        backoff_jitter=policy.backoff_jitter,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=frozenset(policy.allowed_methods),
        status_forcelist=frozenset(policy.status_forcelist),
        # Hand the last response back so the API error surfaces with its status.
        raise_on_status=False,
    )


def load_api_client(config: KubernetesConfig) -> client.ApiClient:
    """Load credentials and return an :class:`ApiClient` with the configured retries.

    An explicit kubeconfig wins. Otherwise the in-cluster service account is
    used, whose token the client re-reads when it is rotated, and the default
    kubeconfig is the fallback for running outside a cluster.
    """

    configuration = client.Configuration()
    try:
        if config.kubeconfig is None:
            try:
                kube_config.load_incluster_config(client_configuration=configuration)
                log.info("Using in-cluster service account")
            except kube_config.ConfigException:
                log.info("No in-cluster service account, loading kubeconfig")
                kube_config.load_kube_config(
                    context=config.context, client_configuration=configuration
                )
        else:
            kube_config.load_kube_config(
                config_file=config.kubeconfig,
                context=config.context,
                client_configuration=configuration,
            )
    except kube_config.ConfigException as exc:
        raise ConfigurationError(f"Cannot load Kubernetes credentials: {exc}") from exc

    configuration.retries = build_retry(config.retry)
    return client.ApiClient(configuration)


class RequestThrottle:
    """Shares one :class:`AsyncLimiter` between every thread that calls the API.

    The limiter lives on a private event loop; :meth:`acquire` blocks the
    calling thread until the limiter grants a slot.
    """

    def __init__(self, ratelimit: RateLimit) -> None:
        self.ratelimit = ratelimit
        self._limiter = AsyncLimiter(ratelimit.max_calls, ratelimit.per_seconds)
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever,
            name="kubernetes-throttle",
            daemon=True,
        )
        self._thread.start()

    def acquire(self) -> None:
        asyncio.run_coroutine_threadsafe(self._limiter.acquire(), self._loop).result()

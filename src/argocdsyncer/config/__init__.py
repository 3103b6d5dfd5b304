"""Application configuration helpers."""

from __future__ import annotations

from .controller import (
    DEFAULT_APPLICATION_NAMESPACE,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    ControllerConfig,
    get_controller_config,
)
from .env import get_env_int, get_env_var
from .errors import ConfigurationError
from .http_resilience import RateLimit, RetryPolicy
from .kubernetes import KubernetesConfig, get_kubernetes_config

__all__ = [
    "DEFAULT_APPLICATION_NAMESPACE",
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_LOG_LEVEL",
    "ConfigurationError",
    "ControllerConfig",
    "KubernetesConfig",
    "RateLimit",
    "RetryPolicy",
    "get_controller_config",
    "get_env_int",
    "get_env_var",
    "get_kubernetes_config",
]

"""Controller settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import get_env_int, get_env_var

APPLICATION_NAMESPACE_ENV: Final[str] = "APP_APPLICATION_NAMESPACE"
LOG_LEVEL_ENV: Final[str] = "APP_LOG_LEVEL"
LOG_FORMAT_ENV: Final[str] = "APP_LOG_FORMAT"
MAX_CONCURRENT_RECONCILES_ENV: Final[str] = "APP_MAX_CONCURRENT_RECONCILES"

DEFAULT_APPLICATION_NAMESPACE: Final[str] = "argocd"
DEFAULT_LOG_LEVEL: Final[str] = "info"
DEFAULT_LOG_FORMAT: Final[str] = "nested"


@dataclass(frozen=True, slots=True)
class ControllerConfig:
    """Settings shared by the reconciler and the runner.

    ``log_level`` and ``log_format`` are kept verbatim; unknown values are
    reported and replaced by :func:`argocdsyncer.common.logging.configure_logging`.
    """

    application_namespace: str = DEFAULT_APPLICATION_NAMESPACE
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT
    max_concurrent_reconciles: int = 1


def get_controller_config() -> ControllerConfig:
    return ControllerConfig(
        application_namespace=get_env_var(
            APPLICATION_NAMESPACE_ENV, DEFAULT_APPLICATION_NAMESPACE
        ),
        log_level=get_env_var(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL),
        log_format=get_env_var(LOG_FORMAT_ENV, DEFAULT_LOG_FORMAT),
        max_concurrent_reconciles=get_env_int(MAX_CONCURRENT_RECONCILES_ENV, 1, minimum=1),
    )

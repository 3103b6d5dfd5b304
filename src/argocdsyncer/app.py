"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from argocdsyncer.adapters.kubernetes import KubernetesApplicationStore
from argocdsyncer.config import get_controller_config, get_kubernetes_config
from argocdsyncer.domain.reconciliation import ApplicationReconciler
from argocdsyncer.runner import ControllerRunner

if TYPE_CHECKING:
    from argocdsyncer.config import ControllerConfig, KubernetesConfig
    from argocdsyncer.domain.model import NamespacedName
    from argocdsyncer.domain.ports import ApplicationEventSource, ApplicationStore
    from argocdsyncer.domain.reconciliation import ReconcileOutcome


log = getLogger(__name__)


def build_store(config: KubernetesConfig | None = None) -> KubernetesApplicationStore:
    return KubernetesApplicationStore(config=config or get_kubernetes_config())


def build_reconciler(
    *,
    store: ApplicationStore,
    config: ControllerConfig | None = None,
) -> ApplicationReconciler:
    effective_config = config or get_controller_config()
    return ApplicationReconciler(
        store=store,
        target_namespace=effective_config.application_namespace,
    )


def build_runner(
    *,
    config: ControllerConfig | None = None,
    store: ApplicationStore | None = None,
    events: ApplicationEventSource | None = None,
) -> ControllerRunner:
    """Wire the reconciler and event source into a runner using the configured adapters."""

    effective_config = config or get_controller_config()
    kubernetes_store: KubernetesApplicationStore | None = None
    if store is None or events is None:
        kubernetes_store = build_store()
    effective_store = store or kubernetes_store
    effective_events = events or kubernetes_store
    if effective_store is None or effective_events is None:
        raise RuntimeError("No Application store configured")

    log.info(
        "Mirroring Applications into namespace %s with %s worker(s)",
        effective_config.application_namespace,
        effective_config.max_concurrent_reconciles,
    )
    return ControllerRunner(
        reconciler=build_reconciler(store=effective_store, config=effective_config),
        events=effective_events,
        workers=effective_config.max_concurrent_reconciles,
    )


def reconcile_application(
    key: NamespacedName,
    *,
    config: ControllerConfig | None = None,
    store: ApplicationStore | None = None,
) -> ReconcileOutcome:
    """Run a single reconcile cycle for ``key``."""

    reconciler = build_reconciler(store=store or build_store(), config=config)
    outcome = reconciler.reconcile(key)
    log.info("Reconciled Application %s: %s", key, outcome)
    return outcome

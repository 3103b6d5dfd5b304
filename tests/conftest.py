from __future__ import annotations

import pytest

from argocdsyncer.domain.reconciliation import ApplicationReconciler
from tests.support.applications import TARGET_NAMESPACE, InMemoryApplicationStore


@pytest.fixture
def store() -> InMemoryApplicationStore:
    return InMemoryApplicationStore()


@pytest.fixture
def reconciler(store: InMemoryApplicationStore) -> ApplicationReconciler:
    return ApplicationReconciler(store=store, target_namespace=TARGET_NAMESPACE)

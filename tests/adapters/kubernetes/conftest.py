from __future__ import annotations

from typing import Any

import pytest


@pytest.fixture
def application_payload() -> dict[str, Any]:
    return {
        "apiVersion": "argoproj.io/v1alpha1",
        "kind": "Application",
        "metadata": {
            "name": "foo",
            "namespace": "team-a",
            "uid": "7b1f1f0e-2c1a-4c4e-9a53-1e0f3b1c9d21",
            "resourceVersion": "1042",
            "generation": 3,
            "labels": {"team": "team-a"},
            "annotations": {"notifications.argoproj.io/subscribe": "slack"},
            "finalizers": ["argoproj.io/finalizer"],
            "managedFields": [{"manager": "kubectl", "operation": "Apply"}],
        },
        "spec": {
            "project": "default",
            "source": {
                "repoURL": "https://git.example.com/platform/apps.git",
                "path": "apps/foo",
                "targetRevision": "HEAD",
                "helm": {"valueFiles": ["values.yaml"]},
            },
            "destination": {
                "server": "https://kubernetes.default.svc",
                "namespace": "team-a",
            },
        },
        "status": {"sync": {"status": "Synced"}, "health": {"status": "Healthy"}},
    }

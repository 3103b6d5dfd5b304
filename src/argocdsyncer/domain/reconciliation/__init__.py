"""Reconciliation core mirroring tenant Applications into the Argo CD namespace."""

from __future__ import annotations

from .finalizers import FinalizerManager
from .mirror import MirrorSynchronizer, SyncAction, build_mirror
from .reconciler import ApplicationReconciler, ReconcileOutcome
from .validation import validate_application

__all__ = [
    "ApplicationReconciler",
    "FinalizerManager",
    "MirrorSynchronizer",
    "ReconcileOutcome",
    "SyncAction",
    "build_mirror",
    "validate_application",
]

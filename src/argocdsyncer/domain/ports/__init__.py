"""Domain port definitions for adapters."""

from __future__ import annotations

from .events import ApplicationEvent, ApplicationEventSource, EventType
from .store import ApplicationStore

__all__ = [
    "ApplicationEvent",
    "ApplicationEventSource",
    "ApplicationStore",
    "EventType",
]

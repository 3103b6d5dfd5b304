"""Retry and rate limit settings for the API server client."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retries for idempotent API calls.

    A resourceVersion conflict (409) is never in ``status_forcelist``: the
    reconcile cycle has to re-read the object instead.
    """

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    # POST is left out: a retried create may hit the object the first attempt made.
    allowed_methods: frozenset[str] = field(
        default_factory=lambda: frozenset({"DELETE", "GET", "HEAD", "PUT"})
    )
    status_forcelist: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )
    backoff_jitter: float = 1.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    """At most ``max_calls`` API requests per ``per_seconds``, shared by all workers."""

    max_calls: int
    per_seconds: float

"""Settings for the rate-limited httpx clients the upstream adapters share."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Arguments for ``httpx_retries.Retry``; ``total=0`` turns retrying off."""

    total: int = 0
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = field(default_factory=lambda: frozenset({"GET"}))
    status_forcelist: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 502, 503, 504})
    )
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
    )
    backoff_jitter: float = 1.0


# Upstream failures end the invocation; the operator decides when to try again.
NO_RETRY = RetryPolicy()


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    """One upstream's client settings. ``name`` prefixes the client's log lines."""

    name: str
    base_url: str | None = None
    timeout_seconds: float = 15.0
    retry: RetryPolicy = NO_RETRY
    ratelimit: RateLimit | None = None
    default_headers: Mapping[str, str] | None = None

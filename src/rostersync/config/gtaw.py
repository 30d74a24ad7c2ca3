"""GTA:World UCP API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_var
from .http_resilience import NO_RETRY, RateLimit, ResilienceConfig

GTAW_BASE_URL = "https://ucp.gta.world/api/"
GTAW_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class GtawConfig:
    """Holds the roster API endpoint and the caller's bearer credential."""

    access_token: str
    resilience: ResilienceConfig

    @property
    def base_url(self) -> str:
        return self.resilience.base_url or GTAW_BASE_URL


def _default_resilience(base_url: str) -> ResilienceConfig:
    return ResilienceConfig(
        name="gtaw",
        base_url=base_url,
        timeout_seconds=GTAW_TIMEOUT_SECONDS,
        retry=NO_RETRY,
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        default_headers={"Accept": "application/json"},
    )


def get_gtaw_config(
    *,
    access_token: str | None = None,
    resilience: ResilienceConfig | None = None,
) -> GtawConfig:
    token = access_token or require_env_var("GTAW_ACCESS_TOKEN")
    base_url = optional_env_var("GTAW_API_BASE_URL") or GTAW_BASE_URL
    return GtawConfig(
        access_token=token,
        resilience=resilience or _default_resilience(base_url),
    )

"""phpBB forum API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import MissingConfigurationError
from .http_resilience import NO_RETRY, RateLimit, ResilienceConfig

FORUM_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class ForumConfig:
    """Per-faction forum endpoint and API key."""

    base_url: str
    api_key: str
    resilience: ResilienceConfig


def _normalize_base_url(url: str) -> str:
    stripped = url.strip()
    return stripped if stripped.endswith("/") else f"{stripped}/"


def get_forum_config(
    *,
    api_url: str | None,
    api_key: str | None,
    resilience: ResilienceConfig | None = None,
) -> ForumConfig:
    if not api_url or not api_url.strip() or not api_key or not api_key.strip():
        raise MissingConfigurationError("Missing configuration for: phpbb_api_url, phpbb_api_key")

    base_url = _normalize_base_url(api_url)
    return ForumConfig(
        base_url=base_url,
        api_key=api_key.strip(),
        resilience=resilience
        or ResilienceConfig(
            name="phpbb",
            base_url=base_url,
            timeout_seconds=FORUM_TIMEOUT_SECONDS,
            retry=NO_RETRY,
            ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
        ),
    )

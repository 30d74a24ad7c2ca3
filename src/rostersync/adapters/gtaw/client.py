"""HTTP client for the GTA:World UCP faction API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from rostersync.adapters.http_resilience import ResilientClient
from rostersync.config.gtaw import GtawConfig, get_gtaw_config
from rostersync.domain.errors import (
    MalformedUpstreamPayload,
    UpstreamAuthExpired,
    UpstreamUnavailable,
)
from rostersync.domain.ports.fetching import RosterFetcher

from .schema import AbasResponse, FactionResponse
from .translator import parse_abas, parse_member

if TYPE_CHECKING:
    from collections.abc import Callable

    from pydantic import BaseModel

    from rostersync.config.http_resilience import ResilienceConfig
    from rostersync.domain.model import AbasEntry, CharacterRecord

log = getLogger(__name__)

SOURCE = "GTA:World"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class GtawRosterFetcher:
    """Fetches a faction's roster and activity scores with the caller's bearer token."""

    config: GtawConfig = field(default_factory=get_gtaw_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def fetch_members(self, faction_id: int) -> list[CharacterRecord]:
        response = asyncio.run(self._fetch(f"faction/{faction_id}", FactionResponse))
        members = [parse_member(member) for member in response.data.members]
        log.info(f"Fetched {len(members)} members of faction {faction_id} from {SOURCE}")
        return members

    def fetch_abas(self, faction_id: int) -> list[AbasEntry]:
        response = asyncio.run(self._fetch(f"faction/{faction_id}/abas", AbasResponse))
        entries = [parse_abas(entry) for entry in response.data]
        log.info(f"Fetched {len(entries)} ABAS entries of faction {faction_id} from {SOURCE}")
        return entries

    async def _fetch[TModel: BaseModel](self, path: str, model: type[TModel]) -> TModel:
        url = f"{self.config.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.config.access_token}"}
        async with self.client_factory(self.config.resilience) as client:
            try:
                response = await client.get(url, headers=headers)
            except httpx.HTTPError as exc:
                log.warning(f"{SOURCE} request to {path} failed: {exc}")
                raise UpstreamUnavailable(SOURCE, detail=str(exc)) from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise UpstreamAuthExpired(SOURCE)
        if not response.is_success:
            log.warning(f"{SOURCE} answered {response.status_code} for {path}")
            raise UpstreamUnavailable(SOURCE, status_code=response.status_code)

        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise MalformedUpstreamPayload(SOURCE, f"{path}: {exc.error_count()} errors") from exc


if TYPE_CHECKING:
    _fetcher_check: RosterFetcher = GtawRosterFetcher()

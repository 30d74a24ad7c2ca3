"""HTTP client for the booskit phpBB group API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from rostersync.adapters.http_resilience import ResilientClient
from rostersync.config.forum import ForumConfig, get_forum_config
from rostersync.domain.errors import (
    MalformedUpstreamPayload,
    NoActiveConfiguration,
    UpstreamAuthExpired,
    UpstreamUnavailable,
)
from rostersync.domain.model import ForumGroupRoster, ForumGroupSummary, ForumUser
from rostersync.domain.ports.fetching import ForumFetcherFactory, ForumGroupFetcher

from .schema import GroupPayload, GroupResponse, GroupsResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from pydantic import BaseModel

    from rostersync.config.http_resilience import ResilienceConfig
    from rostersync.domain.model import ForumIntegration

log = getLogger(__name__)

SOURCE = "phpBB"
API_PREFIX = "app.php/booskit/phpbbapi/"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def merge_group_users(group: GroupPayload) -> tuple[ForumUser, ...]:
    """Members in listed order, then leaders not already listed; leaders are flagged."""

    leader_names = {leader.username for leader in group.leaders}
    users: dict[str, ForumUser] = {}
    for payload in [*group.members, *group.leaders]:
        users.setdefault(
            payload.username,
            ForumUser(username=payload.username, leader=payload.username in leader_names),
        )
    return tuple(users.values())


@dataclass(slots=True)
class PhpbbForumFetcher:
    config: ForumConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def fetch_group(self, group_id: int) -> ForumGroupRoster:
        response = asyncio.run(self._fetch(f"group/{group_id}", GroupResponse))
        roster = ForumGroupRoster(group_id=group_id, members=merge_group_users(response.group))
        log.info(f"Fetched {len(roster.members)} users of forum group {group_id}")
        return roster

    def list_groups(self) -> list[ForumGroupSummary]:
        response = asyncio.run(self._fetch("groups", GroupsResponse))
        return [
            ForumGroupSummary(group_id=group.id, name=group.name) for group in response.groups
        ]

    async def _fetch[TModel: BaseModel](self, path: str, model: type[TModel]) -> TModel:
        url = f"{self.config.base_url}{API_PREFIX}{path}"
        async with self.client_factory(self.config.resilience) as client:
            try:
                response = await client.get(url, params={"key": self.config.api_key})
            except httpx.HTTPError as exc:
                log.warning(f"{SOURCE} request to {path} failed: {exc}")
                raise UpstreamUnavailable(SOURCE, detail=str(exc)) from exc

        if response.status_code in {httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN}:
            raise UpstreamAuthExpired(SOURCE)
        if not response.is_success:
            log.warning(f"{SOURCE} answered {response.status_code} for {path}")
            raise UpstreamUnavailable(SOURCE, status_code=response.status_code)

        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise MalformedUpstreamPayload(SOURCE, f"{path}: {exc.error_count()} errors") from exc


def build_phpbb_fetcher(integration: ForumIntegration | None) -> PhpbbForumFetcher:
    """Fetcher for the faction's forum; raises :class:`NoActiveConfiguration` when unset."""

    if integration is None or not integration.enabled:
        raise NoActiveConfiguration(integration.faction_id if integration is not None else None)
    config = get_forum_config(
        api_url=integration.phpbb_api_url,
        api_key=integration.phpbb_api_key,
    )
    return PhpbbForumFetcher(config=config)


if TYPE_CHECKING:
    _fetcher_check: ForumGroupFetcher = PhpbbForumFetcher(
        config=get_forum_config(api_url="https://forum.example/", api_key="key")
    )
    _factory_check: ForumFetcherFactory = build_phpbb_fetcher

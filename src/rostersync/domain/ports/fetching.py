"""Ports for fetching live roster and forum data."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

    from rostersync.domain.model import (
        AbasEntry,
        CharacterRecord,
        ForumGroupRoster,
        ForumGroupSummary,
        ForumIntegration,
    )


@runtime_checkable
class RosterFetcher(Protocol):
    """Read-only access to the game roster API."""

    def fetch_members(self, faction_id: int) -> list[CharacterRecord]: ...

    def fetch_abas(self, faction_id: int) -> list[AbasEntry]: ...


@runtime_checkable
class ForumGroupFetcher(Protocol):
    """Read-only access to one faction's forum group API."""

    def fetch_group(self, group_id: int) -> ForumGroupRoster: ...

    def list_groups(self) -> list[ForumGroupSummary]: ...


type ForumFetcherFactory = Callable[[ForumIntegration | None], ForumGroupFetcher]
"""Builds a fetcher for a faction's forum; raises ``NoActiveConfiguration`` when unset."""


__all__ = ["ForumFetcherFactory", "ForumGroupFetcher", "RosterFetcher"]

"""Forum integration entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class ForumIntegration:
    """Per-faction phpBB settings. Forum features are inert unless both values are set."""

    faction_id: int
    name: str
    phpbb_api_url: str | None = None
    phpbb_api_key: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.phpbb_api_url and self.phpbb_api_key)


@dataclass(eq=False, kw_only=True)
class SyncableForumGroup:
    faction_id: int
    group_id: int
    name: str


@dataclass(frozen=True, slots=True, kw_only=True)
class ForumUser:
    username: str
    leader: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class ForumGroupRoster:
    """Live member list of one forum group. Leaders are flagged, not listed twice."""

    group_id: int
    members: tuple[ForumUser, ...] = ()

    @property
    def usernames(self) -> tuple[str, ...]:
        return tuple(user.username for user in self.members)


@dataclass(eq=False, kw_only=True)
class ForumGroupCache:
    """Cached copy of a forum group, keyed by ``(faction_id, group_id)``."""

    faction_id: int
    group_id: int
    members: list[ForumUser] = field(default_factory=list["ForumUser"])
    last_sync_timestamp: datetime | None = None

    @property
    def usernames(self) -> tuple[str, ...]:
        return tuple(user.username for user in self.members)


@dataclass(frozen=True, slots=True, kw_only=True)
class ForumGroupSummary:
    """Group listed by the forum API, independent of whether it is selected for sync."""

    group_id: int
    name: str

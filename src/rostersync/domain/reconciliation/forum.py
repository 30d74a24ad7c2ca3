"""Diff of live forum group rosters against their cached copies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rostersync.domain.reconciliation.diff import Diff, diff_records

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rostersync.domain.model import (
        ForumGroupCache,
        ForumGroupRoster,
        ForumUser,
        SyncableForumGroup,
    )


type ForumUserDiff = Diff[str, ForumUser, ForumUser]


@dataclass(slots=True, kw_only=True)
class ForumGroupDiff:
    group_id: int
    name: str
    diff: ForumUserDiff

    @property
    def members(self) -> list[ForumUser]:
        return self.diff.source_data


def forum_group_diff(
    group: SyncableForumGroup,
    roster: ForumGroupRoster,
    cache: ForumGroupCache | None,
    *,
    compared_fields: Sequence[str] = ("leader",),
) -> ForumGroupDiff:
    """Diff one group keyed by username; a missing cache reports every member as added."""

    cached = cache.members if cache is not None else []
    diff: ForumUserDiff = diff_records(
        roster.members,
        cached,
        key=_username,
        compared_fields=compared_fields,
    )
    return ForumGroupDiff(group_id=group.group_id, name=group.name, diff=diff)


def _username(user: ForumUser) -> str:
    return user.username

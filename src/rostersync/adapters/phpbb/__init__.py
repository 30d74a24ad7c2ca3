"""Public interface for the phpBB forum adapter."""

from __future__ import annotations

from .client import PhpbbForumFetcher, build_phpbb_fetcher, merge_group_users
from .schema import GroupPayload, GroupResponse, GroupsResponse, UserPayload

__all__ = [
    "GroupPayload",
    "GroupResponse",
    "GroupsResponse",
    "PhpbbForumFetcher",
    "UserPayload",
    "build_phpbb_fetcher",
    "merge_group_users",
]

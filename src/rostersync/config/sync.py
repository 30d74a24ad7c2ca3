"""Reconciliation defaults shared by preview and commit services."""

from __future__ import annotations

from dataclasses import dataclass

MEMBER_COMPARED_FIELDS: tuple[str, ...] = ("character_name", "rank", "rank_name")
ABAS_COMPARED_FIELDS: tuple[str, ...] = ("abas",)
FORUM_MEMBER_COMPARED_FIELDS: tuple[str, ...] = ("leader",)

DEFAULT_FORUM_NAME_SEPARATOR = "_"
DEFAULT_AUDIT_LOG_LIMIT = 100


@dataclass(frozen=True, slots=True)
class SyncConfig:
    member_compared_fields: tuple[str, ...] = MEMBER_COMPARED_FIELDS
    abas_compared_fields: tuple[str, ...] = ABAS_COMPARED_FIELDS
    forum_member_compared_fields: tuple[str, ...] = FORUM_MEMBER_COMPARED_FIELDS
    forum_name_separator: str = DEFAULT_FORUM_NAME_SEPARATOR
    include_forum_leaders: bool = True
    audit_log_limit: int = DEFAULT_AUDIT_LOG_LIMIT


def get_sync_config() -> SyncConfig:
    return SyncConfig()

"""SQLAlchemy mapping metadata for the rostersync domain model."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)
from sqlalchemy.orm import configure_mappers

from rostersync.domain.model import (
    AbasRecord,
    AlternateCharacterEntry,
    AuditAction,
    AuditCategory,
    AuditEntry,
    CharacterRecord,
    ForumGroupCache,
    ForumIntegration,
    ForumUser,
    MembershipType,
    OrganizationMembership,
    OrganizationUnit,
    RosterSnapshot,
    SyncableForumGroup,
    SyncExclusion,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_iso(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _load_list(value: str | None) -> list[dict[str, Any]]:
    if value is None:
        return []
    loaded = json.loads(value)
    if not isinstance(loaded, list):
        return []
    return [item for item in cast(list[Any], loaded) if isinstance(item, dict)]


class CharacterListType(TypeDecorator[list[CharacterRecord]]):
    """Stores a list of character records as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: list[CharacterRecord] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = [
            {
                "character_id": record.character_id,
                "character_name": record.character_name,
                "user_id": record.user_id,
                "rank": record.rank,
                "rank_name": record.rank_name,
                "last_online": _isoformat(record.last_online),
                "last_duty": _isoformat(record.last_duty),
            }
            for record in value
        ]
        return json.dumps(payload)

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[CharacterRecord]:
        _ = dialect
        return [
            CharacterRecord(
                character_id=item["character_id"],
                character_name=item["character_name"],
                user_id=item["user_id"],
                rank=item["rank"],
                rank_name=item["rank_name"],
                last_online=_parse_iso(item.get("last_online")),
                last_duty=_parse_iso(item.get("last_duty")),
            )
            for item in _load_list(value)
        ]


class ForumUserListType(TypeDecorator[list[ForumUser]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[ForumUser] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps([{"username": user.username, "leader": user.leader} for user in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[ForumUser]:
        _ = dialect
        return [
            ForumUser(username=item["username"], leader=bool(item.get("leader", False)))
            for item in _load_list(value)
        ]


class JSONDictType(TypeDecorator[dict[str, Any]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, default=str)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any]:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        return cast(dict[str, Any], loaded) if isinstance(loaded, dict) else {}


def _str_enum(enum_cls: type[StrEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Upstream caches ---------------------------------------------------------------

roster_snapshot_table = Table(
    "roster_snapshot",
    mapper_registry.metadata,
    Column("faction_id", Integer, primary_key=True, autoincrement=False),
    Column("members", CharacterListType, nullable=False),
    Column("last_sync_timestamp", UTCDateTime, nullable=True),
)

abas_cache_table = Table(
    "abas_cache",
    mapper_registry.metadata,
    Column("character_id", Integer, primary_key=True, autoincrement=False),
    Column("faction_id", Integer, primary_key=True, autoincrement=False),
    Column("abas", String, nullable=True),
    Column("last_sync_timestamp", UTCDateTime, nullable=True),
)

alternate_character_table = Table(
    "alternate_character",
    mapper_registry.metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=False),
    Column("faction_id", Integer, primary_key=True, autoincrement=False),
    Column("character_id", Integer, nullable=False),
    Column("character_name", String, nullable=False),
    Column("rank", Integer, nullable=False),
    Column("manually_set", Boolean, nullable=False, default=False),
    Column("alternative_characters", CharacterListType, nullable=False),
)

forum_group_cache_table = Table(
    "forum_group_cache",
    mapper_registry.metadata,
    Column("faction_id", Integer, primary_key=True, autoincrement=False),
    Column("group_id", Integer, primary_key=True, autoincrement=False),
    Column("members", ForumUserListType, nullable=False),
    Column("last_sync_timestamp", UTCDateTime, nullable=True),
)

# Administrator data --------------------------------------------------------------

faction_table = Table(
    "faction",
    mapper_registry.metadata,
    Column("faction_id", Integer, primary_key=True, autoincrement=False),
    Column("name", String, nullable=False),
    Column("phpbb_api_url", String, nullable=True),
    Column("phpbb_api_key", String, nullable=True),
)

syncable_forum_group_table = Table(
    "syncable_forum_group",
    mapper_registry.metadata,
    Column("faction_id", Integer, primary_key=True, autoincrement=False),
    Column("group_id", Integer, primary_key=True, autoincrement=False),
    Column("name", String, nullable=False),
)

organization_unit_table = Table(
    "organization_unit",
    mapper_registry.metadata,
    Column("type", _str_enum(MembershipType, "membership_type"), primary_key=True),
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("faction_id", Integer, nullable=False, index=True),
    Column("name", String, nullable=False),
    Column("forum_group_id", Integer, nullable=True),
    Column("secondary", Boolean, nullable=False, default=False),
    Column("default_title", String, nullable=True),
)

organization_membership_table = Table(
    "organization_membership",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("type", _str_enum(MembershipType, "membership_type"), nullable=False),
    Column("category_id", Integer, nullable=False),
    Column("character_id", Integer, nullable=False),
    Column("manual", Boolean, nullable=False, default=False),
    Column("title", String, nullable=True),
    Column("secondary", Boolean, nullable=False, default=False),
    Column("created_by", Integer, nullable=True),
    Column("created_at", UTCDateTime, nullable=True),
    UniqueConstraint("type", "category_id", "character_id"),
    Index("ix_organization_membership_unit", "type", "category_id"),
)

sync_exclusion_table = Table(
    "sync_exclusion",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("type", _str_enum(MembershipType, "membership_type"), nullable=False),
    Column("category_id", Integer, nullable=False),
    Column("character_name", String, nullable=False),
    UniqueConstraint("type", "category_id", "character_name"),
)

audit_log_table = Table(
    "audit_log",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("faction_id", Integer, nullable=False, index=True),
    Column("actor_id", Integer, nullable=True),
    Column("category", _str_enum(AuditCategory, "audit_category"), nullable=False),
    Column("action", _str_enum(AuditAction, "audit_action"), nullable=False),
    Column("details", JSONDictType, nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(RosterSnapshot, roster_snapshot_table)
    mapper_registry.map_imperatively(AbasRecord, abas_cache_table)
    mapper_registry.map_imperatively(AlternateCharacterEntry, alternate_character_table)
    mapper_registry.map_imperatively(ForumGroupCache, forum_group_cache_table)
    mapper_registry.map_imperatively(ForumIntegration, faction_table)
    mapper_registry.map_imperatively(SyncableForumGroup, syncable_forum_group_table)
    mapper_registry.map_imperatively(OrganizationUnit, organization_unit_table)
    mapper_registry.map_imperatively(OrganizationMembership, organization_membership_table)
    mapper_registry.map_imperatively(SyncExclusion, sync_exclusion_table)
    mapper_registry.map_imperatively(AuditEntry, audit_log_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)

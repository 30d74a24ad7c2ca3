"""Repository implementations backed by SQLAlchemy sessions.

Upserts load the stored row by primary key and copy the new values onto it, so the
session never holds two instances with the same identity.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import and_, not_, select

from rostersync.adapters.sqlalchemy.mappings import (
    abas_cache_table,
    alternate_character_table,
    audit_log_table,
    forum_group_cache_table,
    organization_membership_table,
    organization_unit_table,
    syncable_forum_group_table,
    sync_exclusion_table,
)
from rostersync.domain.model import (
    AbasRecord,
    AlternateCharacterEntry,
    AuditEntry,
    ForumGroupCache,
    ForumIntegration,
    OrganizationMembership,
    OrganizationUnit,
    RosterSnapshot,
    SyncableForumGroup,
    SyncExclusion,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.orm import Session

    from rostersync.domain.model import MembershipType


class _SessionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _delete_all(self, entities: Sequence[object]) -> int:
        for entity in entities:
            self.session.delete(entity)
        return len(entities)


class SqlAlchemyRosterSnapshotRepository(_SessionRepository):
    def get(self, faction_id: int) -> RosterSnapshot | None:
        return self.session.get(RosterSnapshot, faction_id)

    def replace(self, snapshot: RosterSnapshot) -> None:
        existing = self.session.get(RosterSnapshot, snapshot.faction_id)
        if existing is None:
            self.session.add(snapshot)
            return
        existing.members = list(snapshot.members)
        existing.last_sync_timestamp = snapshot.last_sync_timestamp

    def delete(self, faction_id: int) -> int:
        existing = self.session.get(RosterSnapshot, faction_id)
        return self._delete_all([existing] if existing is not None else [])


class SqlAlchemyAbasRepository(_SessionRepository):
    def list_for_faction(self, faction_id: int) -> list[AbasRecord]:
        stmt = (
            select(AbasRecord)
            .where(abas_cache_table.c.faction_id == faction_id)
            .order_by(abas_cache_table.c.character_id)
        )
        return list(self.session.scalars(stmt))

    def upsert(self, record: AbasRecord) -> None:
        existing = self.session.get(AbasRecord, (record.character_id, record.faction_id))
        if existing is None:
            self.session.add(record)
            return
        existing.abas = record.abas
        existing.last_sync_timestamp = record.last_sync_timestamp

    def delete_for_faction(self, faction_id: int) -> int:
        return self._delete_all(self.list_for_faction(faction_id))


class SqlAlchemyAlternateCharacterRepository(_SessionRepository):
    def get(self, user_id: int, faction_id: int) -> AlternateCharacterEntry | None:
        return self.session.get(AlternateCharacterEntry, (user_id, faction_id))

    def list_for_faction(self, faction_id: int) -> list[AlternateCharacterEntry]:
        stmt = (
            select(AlternateCharacterEntry)
            .where(alternate_character_table.c.faction_id == faction_id)
            .order_by(alternate_character_table.c.user_id)
        )
        return list(self.session.scalars(stmt))

    def upsert(self, entry: AlternateCharacterEntry) -> None:
        existing = self.get(entry.user_id, entry.faction_id)
        if existing is None:
            self.session.add(entry)
            return
        existing.character_id = entry.character_id
        existing.character_name = entry.character_name
        existing.rank = entry.rank
        existing.manually_set = entry.manually_set
        existing.alternative_characters = list(entry.alternative_characters)

    def delete(self, user_id: int, faction_id: int) -> None:
        existing = self.get(user_id, faction_id)
        if existing is not None:
            self.session.delete(existing)

    def delete_for_faction(self, faction_id: int) -> int:
        return self._delete_all(self.list_for_faction(faction_id))


class SqlAlchemyOrganizationUnitRepository(_SessionRepository):
    def get(self, unit_type: MembershipType, category_id: int) -> OrganizationUnit | None:
        return self.session.get(OrganizationUnit, (unit_type, category_id))

    def list_linked(self, faction_id: int) -> list[OrganizationUnit]:
        stmt = (
            select(OrganizationUnit)
            .where(organization_unit_table.c.faction_id == faction_id)
            .where(organization_unit_table.c.forum_group_id.is_not(None))
            .order_by(organization_unit_table.c.type, organization_unit_table.c.id)
        )
        return list(self.session.scalars(stmt))

    def add(self, unit: OrganizationUnit) -> None:
        self.session.add(unit)


class SqlAlchemyMembershipRepository(_SessionRepository):
    def list_for_unit(
        self, unit_type: MembershipType, category_id: int
    ) -> list[OrganizationMembership]:
        stmt = (
            select(OrganizationMembership)
            .where(organization_membership_table.c.type == unit_type)
            .where(organization_membership_table.c.category_id == category_id)
            .order_by(organization_membership_table.c.id)
        )
        return list(self.session.scalars(stmt))

    def primary_character_ids_outside(
        self, unit_type: MembershipType, category_id: int
    ) -> set[int]:
        table = organization_membership_table
        stmt = (
            select(table.c.character_id)
            .where(table.c.secondary.is_(False))
            .where(not_(and_(table.c.type == unit_type, table.c.category_id == category_id)))
            .distinct()
        )
        return set(self.session.scalars(stmt))

    def add(self, membership: OrganizationMembership) -> None:
        self.session.add(membership)

    def delete_automatic(
        self, unit_type: MembershipType, category_id: int, character_ids: Iterable[int]
    ) -> int:
        targets = set(character_ids)
        if not targets:
            return 0
        stmt = (
            select(OrganizationMembership)
            .where(organization_membership_table.c.type == unit_type)
            .where(organization_membership_table.c.category_id == category_id)
            .where(organization_membership_table.c.manual.is_(False))
            .where(organization_membership_table.c.character_id.in_(targets))
        )
        deleted = self._delete_all(list(self.session.scalars(stmt)))
        self.session.flush()
        return deleted


class SqlAlchemySyncExclusionRepository(_SessionRepository):
    def list_for_unit(self, unit_type: MembershipType, category_id: int) -> list[SyncExclusion]:
        stmt = (
            select(SyncExclusion)
            .where(sync_exclusion_table.c.type == unit_type)
            .where(sync_exclusion_table.c.category_id == category_id)
            .order_by(sync_exclusion_table.c.id)
        )
        return list(self.session.scalars(stmt))

    def replace(
        self, unit_type: MembershipType, category_id: int, character_names: Iterable[str]
    ) -> list[SyncExclusion]:
        self._delete_all(self.list_for_unit(unit_type, category_id))
        self.session.flush()
        exclusions = [
            SyncExclusion(type=unit_type, category_id=category_id, character_name=name)
            for name in dict.fromkeys(character_names)
        ]
        self.session.add_all(exclusions)
        return exclusions


class SqlAlchemyForumRepository(_SessionRepository):
    def get_integration(self, faction_id: int) -> ForumIntegration | None:
        return self.session.get(ForumIntegration, faction_id)

    def save_integration(self, integration: ForumIntegration) -> None:
        existing = self.get_integration(integration.faction_id)
        if existing is None:
            self.session.add(integration)
            return
        existing.name = integration.name
        existing.phpbb_api_url = integration.phpbb_api_url
        existing.phpbb_api_key = integration.phpbb_api_key

    def list_syncable_groups(self, faction_id: int) -> list[SyncableForumGroup]:
        stmt = (
            select(SyncableForumGroup)
            .where(syncable_forum_group_table.c.faction_id == faction_id)
            .order_by(syncable_forum_group_table.c.group_id)
        )
        return list(self.session.scalars(stmt))

    def replace_syncable_groups(
        self, faction_id: int, groups: Iterable[SyncableForumGroup]
    ) -> None:
        self._delete_all(self.list_syncable_groups(faction_id))
        self.session.flush()
        self.session.add_all(groups)

    def get_group_cache(self, faction_id: int, group_id: int) -> ForumGroupCache | None:
        return self.session.get(ForumGroupCache, (faction_id, group_id))

    def list_group_caches(self, faction_id: int) -> list[ForumGroupCache]:
        stmt = (
            select(ForumGroupCache)
            .where(forum_group_cache_table.c.faction_id == faction_id)
            .order_by(forum_group_cache_table.c.group_id)
        )
        return list(self.session.scalars(stmt))

    def replace_group_cache(self, cache: ForumGroupCache) -> None:
        existing = self.get_group_cache(cache.faction_id, cache.group_id)
        if existing is None:
            self.session.add(cache)
            return
        existing.members = list(cache.members)
        existing.last_sync_timestamp = cache.last_sync_timestamp

    def delete_group_caches(self, faction_id: int) -> int:
        return self._delete_all(self.list_group_caches(faction_id))


class SqlAlchemyAuditRepository(_SessionRepository):
    def add(self, entry: AuditEntry) -> None:
        self.session.add(entry)

    def list_recent(self, faction_id: int, *, limit: int) -> list[AuditEntry]:
        stmt = (
            select(AuditEntry)
            .where(audit_log_table.c.faction_id == faction_id)
            .order_by(audit_log_table.c.created_at.desc(), audit_log_table.c.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

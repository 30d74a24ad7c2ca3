"""Ports for persisting sync state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rostersync.domain.model import (
        AbasRecord,
        AlternateCharacterEntry,
        AuditEntry,
        ForumGroupCache,
        ForumIntegration,
        MembershipType,
        OrganizationMembership,
        OrganizationUnit,
        RosterSnapshot,
        SyncableForumGroup,
        SyncExclusion,
    )


@runtime_checkable
class RosterSnapshotRepository(Protocol):
    """One snapshot per faction, replaced wholesale."""

    def get(self, faction_id: int) -> RosterSnapshot | None: ...

    def replace(self, snapshot: RosterSnapshot) -> None: ...

    def delete(self, faction_id: int) -> int: ...


@runtime_checkable
class AbasRepository(Protocol):
    """Activity score cache keyed by ``(character_id, faction_id)``."""

    def list_for_faction(self, faction_id: int) -> list[AbasRecord]: ...

    def upsert(self, record: AbasRecord) -> None: ...

    def delete_for_faction(self, faction_id: int) -> int: ...


@runtime_checkable
class AlternateCharacterRepository(Protocol):
    """Alternate-character cache keyed by ``(user_id, faction_id)``."""

    def get(self, user_id: int, faction_id: int) -> AlternateCharacterEntry | None: ...

    def list_for_faction(self, faction_id: int) -> list[AlternateCharacterEntry]: ...

    def upsert(self, entry: AlternateCharacterEntry) -> None: ...

    def delete(self, user_id: int, faction_id: int) -> None: ...

    def delete_for_faction(self, faction_id: int) -> int: ...


@runtime_checkable
class OrganizationUnitRepository(Protocol):
    def get(self, unit_type: MembershipType, category_id: int) -> OrganizationUnit | None: ...

    def list_linked(self, faction_id: int) -> list[OrganizationUnit]:
        """Units of the faction that have a forum group configured."""
        ...

    def add(self, unit: OrganizationUnit) -> None: ...


@runtime_checkable
class MembershipRepository(Protocol):
    """Organization membership rows, one per ``(type, category_id, character_id)``."""

    def list_for_unit(
        self, unit_type: MembershipType, category_id: int
    ) -> list[OrganizationMembership]: ...

    def primary_character_ids_outside(
        self, unit_type: MembershipType, category_id: int
    ) -> set[int]:
        """Characters holding a non-secondary membership in any other unit."""
        ...

    def add(self, membership: OrganizationMembership) -> None: ...

    def delete_automatic(
        self, unit_type: MembershipType, category_id: int, character_ids: Iterable[int]
    ) -> int:
        """Delete rows with ``manual=False``; manual rows are never touched."""
        ...


@runtime_checkable
class SyncExclusionRepository(Protocol):
    def list_for_unit(self, unit_type: MembershipType, category_id: int) -> list[SyncExclusion]: ...

    def replace(
        self, unit_type: MembershipType, category_id: int, character_names: Iterable[str]
    ) -> list[SyncExclusion]: ...


@runtime_checkable
class ForumRepository(Protocol):
    """Forum settings, selected groups and cached group rosters."""

    def get_integration(self, faction_id: int) -> ForumIntegration | None: ...

    def save_integration(self, integration: ForumIntegration) -> None: ...

    def list_syncable_groups(self, faction_id: int) -> list[SyncableForumGroup]: ...

    def replace_syncable_groups(
        self, faction_id: int, groups: Iterable[SyncableForumGroup]
    ) -> None: ...

    def get_group_cache(self, faction_id: int, group_id: int) -> ForumGroupCache | None: ...

    def list_group_caches(self, faction_id: int) -> list[ForumGroupCache]: ...

    def replace_group_cache(self, cache: ForumGroupCache) -> None: ...

    def delete_group_caches(self, faction_id: int) -> int: ...


@runtime_checkable
class AuditRepository(Protocol):
    """Append-only audit log."""

    def add(self, entry: AuditEntry) -> None: ...

    def list_recent(self, faction_id: int, *, limit: int) -> list[AuditEntry]: ...


__all__ = [
    "AbasRepository",
    "AlternateCharacterRepository",
    "AuditRepository",
    "ForumRepository",
    "MembershipRepository",
    "OrganizationUnitRepository",
    "RosterSnapshotRepository",
    "SyncExclusionRepository",
]

"""Commit executors: each runs in one unit of work and appends one audit entry.

Nothing is written unless the whole commit succeeds; any exception leaving the unit of
work rolls back the snapshot, caches and audit entry together.
"""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from rostersync.domain.errors import InvalidPinError, UnknownOrganizationUnit
from rostersync.domain.model import (
    AbasRecord,
    AuditAction,
    AuditEntry,
    ForumGroupCache,
    ForumIntegration,
    RosterSnapshot,
    SyncableForumGroup,
)
from rostersync.domain.reconciliation.alternates import pinned_entry, reconcile_alternates
from rostersync.domain.reconciliation.identity import CharacterIndex
from rostersync.domain.reconciliation.organization import (
    UnitReconciliation,
    apply_unit_reconciliation,
    reconcile_unit,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from typing import Any

    from rostersync.domain.model import (
        AbasEntry,
        CharacterRecord,
        ForumGroupSummary,
        MembershipType,
        OrganizationUnit,
        SyncExclusion,
    )
    from rostersync.domain.ports import SyncRepositories, SyncUnitOfWork
    from rostersync.domain.reconciliation.diff import Diff
    from rostersync.domain.reconciliation.forum import ForumGroupDiff
    from rostersync.domain.reconciliation.organization import UnitSyncPayload

    type UnitOfWorkFactory = Callable[[], SyncUnitOfWork]

log = getLogger(__name__)


def commit_members(
    faction_id: int,
    diff: Diff[int, CharacterRecord, CharacterRecord],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> AuditEntry:
    """Replace the roster snapshot with ``diff.source_data`` and refresh alternates."""

    timestamp = now or _utcnow()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        members = list(diff.source_data)
        repositories.snapshots.replace(
            RosterSnapshot(faction_id=faction_id, members=members, last_sync_timestamp=timestamp)
        )
        plan = reconcile_alternates(faction_id, members, repositories.alternates)
        entry = _audit(
            repositories,
            faction_id,
            AuditAction.SYNC_MEMBERS,
            actor_id=actor_id,
            now=timestamp,
            details={
                **diff.counts(),
                "added_ids": [member.character_id for member in diff.added],
                "updated_ids": [record.key for record in diff.updated],
                "removed_ids": [member.character_id for member in diff.removed],
                "total": len(members),
                "alternates_upserted": len(plan.upserts),
                "alternates_deleted": len(plan.deletes),
                "alternates_skipped": plan.skipped,
            },
        )
        uow.commit()
    log.info("Committed %s members for faction %s", len(members), faction_id)
    return entry


def commit_abas(
    faction_id: int,
    entries: Iterable[AbasEntry],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> AuditEntry:
    """Upsert activity scores per character; characters no longer listed keep their row."""

    timestamp = now or _utcnow()
    written: list[int] = []
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        for abas_entry in entries:
            repositories.abas.upsert(
                AbasRecord(
                    character_id=abas_entry.character_id,
                    faction_id=faction_id,
                    abas=abas_entry.abas,
                    last_sync_timestamp=timestamp,
                )
            )
            written.append(abas_entry.character_id)
        entry = _audit(
            repositories,
            faction_id,
            AuditAction.SYNC_ABAS,
            actor_id=actor_id,
            now=timestamp,
            details={"upserted": len(written), "character_ids": written},
        )
        uow.commit()
    log.info("Committed %s activity scores for faction %s", len(written), faction_id)
    return entry


def commit_forum_groups(
    faction_id: int,
    previews: Sequence[ForumGroupDiff],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> AuditEntry:
    """Replace each previewed group's cache with its live member list."""

    timestamp = now or _utcnow()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        for preview in previews:
            repositories.forum.replace_group_cache(
                ForumGroupCache(
                    faction_id=faction_id,
                    group_id=preview.group_id,
                    members=list(preview.members),
                    last_sync_timestamp=timestamp,
                )
            )
        entry = _audit(
            repositories,
            faction_id,
            AuditAction.SYNC_FORUM_GROUPS,
            actor_id=actor_id,
            now=timestamp,
            details={
                "groups": [
                    {
                        "group_id": preview.group_id,
                        "name": preview.name,
                        "members": len(preview.members),
                        **preview.diff.counts(),
                    }
                    for preview in previews
                ]
            },
        )
        uow.commit()
    log.info("Committed %s forum groups for faction %s", len(previews), faction_id)
    return entry


def commit_organization(
    faction_id: int,
    payload: Sequence[UnitSyncPayload],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> AuditEntry:
    """Reconcile every unit in ``payload`` against its current rows, in one transaction."""

    timestamp = now or _utcnow()
    applied: list[UnitReconciliation] = []
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        for item in payload:
            unit = require_unit(
                repositories, item.type, item.category_id, faction_id=faction_id
            )
            reconciliation = reconcile_unit(
                item.type,
                item.category_id,
                item.character_ids,
                repositories.memberships.list_for_unit(item.type, item.category_id),
            )
            apply_unit_reconciliation(
                repositories.memberships,
                reconciliation,
                actor_id=actor_id,
                title=unit.default_title,
                secondary=unit.secondary,
                now=timestamp,
            )
            applied.append(reconciliation)
        entry = _audit(
            repositories,
            faction_id,
            AuditAction.SYNC_ORGANIZATION,
            actor_id=actor_id,
            now=timestamp,
            details={"units": [_reconciliation_details(item) for item in applied]},
        )
        uow.commit()
    log.info("Committed organization sync of %s units for faction %s", len(applied), faction_id)
    return entry


def commit_unit_sync(
    unit_type: MembershipType,
    category_id: int,
    add_ids: Sequence[int],
    remove_ids: Sequence[int],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> AuditEntry:
    """Apply an administrator-confirmed subset of a unit's candidates.

    Ids that already have a row are not inserted again and removal only affects
    automatic rows.
    """

    timestamp = now or _utcnow()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        unit = require_unit(repositories, unit_type, category_id)
        rows = repositories.memberships.list_for_unit(unit_type, category_id)
        present = {row.character_id for row in rows}
        automatic = {row.character_id for row in rows if not row.manual}
        reconciliation = UnitReconciliation(
            unit_type=unit_type,
            category_id=category_id,
            added=tuple(i for i in dict.fromkeys(add_ids) if i not in present),
            removed=tuple(i for i in dict.fromkeys(remove_ids) if i in automatic),
        )
        apply_unit_reconciliation(
            repositories.memberships,
            reconciliation,
            actor_id=actor_id,
            title=unit.default_title,
            secondary=unit.secondary,
            now=timestamp,
        )
        entry = _audit(
            repositories,
            unit.faction_id,
            AuditAction.SYNC_UNIT,
            actor_id=actor_id,
            now=timestamp,
            details=_reconciliation_details(reconciliation),
        )
        uow.commit()
    return entry


def set_sync_exclusions(
    unit_type: MembershipType,
    category_id: int,
    character_names: Iterable[str],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> list[SyncExclusion]:
    """Replace the exclusion list of one unit."""

    names = list(dict.fromkeys(name.strip() for name in character_names if name.strip()))
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        unit = require_unit(repositories, unit_type, category_id)
        exclusions = repositories.exclusions.replace(unit_type, category_id, names)
        _audit(
            repositories,
            unit.faction_id,
            AuditAction.UPDATE_EXCLUSIONS,
            actor_id=actor_id,
            now=now or _utcnow(),
            details={"type": str(unit_type), "category_id": category_id, "names": names},
        )
        uow.commit()
    return exclusions


def pin_primary_character(
    faction_id: int,
    user_id: int,
    character_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> AuditEntry:
    """Pin ``character_id`` as the primary character of ``user_id``.

    The pin holds across member syncs for as long as the character stays in the
    faction.
    """

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        snapshot = repositories.snapshots.get(faction_id)
        if snapshot is None:
            raise InvalidPinError(f"No member snapshot for faction {faction_id}")
        characters = CharacterIndex.from_snapshot(snapshot).characters_of(user_id)
        alternate_entry = pinned_entry(faction_id, user_id, character_id, characters)
        repositories.alternates.upsert(alternate_entry)
        entry = _audit(
            repositories,
            faction_id,
            AuditAction.PIN_PRIMARY,
            actor_id=actor_id,
            now=now or _utcnow(),
            details={
                "user_id": user_id,
                "character_id": character_id,
                "alternative_ids": list(alternate_entry.alternative_ids),
            },
        )
        uow.commit()
    return entry


def configure_forum_integration(
    faction_id: int,
    *,
    name: str,
    phpbb_api_url: str | None,
    phpbb_api_key: str | None,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> AuditEntry:
    """Store the faction's forum endpoint; blank values disable forum features."""

    integration = ForumIntegration(
        faction_id=faction_id,
        name=name,
        phpbb_api_url=(phpbb_api_url or "").strip() or None,
        phpbb_api_key=(phpbb_api_key or "").strip() or None,
    )
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        repositories.forum.save_integration(integration)
        entry = _audit(
            repositories,
            faction_id,
            AuditAction.CONFIGURE_FORUM,
            actor_id=actor_id,
            now=now or _utcnow(),
            details={"phpbb_api_url": integration.phpbb_api_url, "enabled": integration.enabled},
        )
        uow.commit()
    return entry


def set_syncable_forum_groups(
    faction_id: int,
    groups: Iterable[ForumGroupSummary],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> AuditEntry:
    """Replace the set of forum groups selected for sync."""

    selected = [
        SyncableForumGroup(faction_id=faction_id, group_id=group.group_id, name=group.name)
        for group in {group.group_id: group for group in groups}.values()
    ]
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        repositories.forum.replace_syncable_groups(faction_id, selected)
        entry = _audit(
            repositories,
            faction_id,
            AuditAction.SET_FORUM_GROUPS,
            actor_id=actor_id,
            now=now or _utcnow(),
            details={"group_ids": [group.group_id for group in selected]},
        )
        uow.commit()
    return entry


def delete_sync_data(
    faction_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> AuditEntry:
    """Clear every cached upstream dataset of the faction.

    Organization memberships, units and forum settings are administrator data and
    stay in place.
    """

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        details = {
            "snapshots": repositories.snapshots.delete(faction_id),
            "abas": repositories.abas.delete_for_faction(faction_id),
            "forum_groups": repositories.forum.delete_group_caches(faction_id),
            "alternates": repositories.alternates.delete_for_faction(faction_id),
        }
        entry = _audit(
            repositories,
            faction_id,
            AuditAction.DELETE_DATA,
            actor_id=actor_id,
            now=now or _utcnow(),
            details=details,
        )
        uow.commit()
    log.info("Deleted sync data for faction %s: %s", faction_id, details)
    return entry


def require_unit(
    repositories: SyncRepositories,
    unit_type: MembershipType,
    category_id: int,
    *,
    faction_id: int | None = None,
) -> OrganizationUnit:
    """Load a unit, treating one owned by another faction as unknown."""

    unit = repositories.units.get(unit_type, category_id)
    if unit is None or (faction_id is not None and unit.faction_id != faction_id):
        raise UnknownOrganizationUnit(unit_type, category_id)
    return unit


def _reconciliation_details(reconciliation: UnitReconciliation) -> dict[str, Any]:
    return {
        "type": str(reconciliation.unit_type),
        "category_id": reconciliation.category_id,
        "added_ids": list(reconciliation.added),
        "removed_ids": list(reconciliation.removed),
    }


def _audit(
    repositories: SyncRepositories,
    faction_id: int,
    action: AuditAction,
    *,
    actor_id: int | None,
    now: datetime,
    details: dict[str, Any],
) -> AuditEntry:
    entry = AuditEntry(
        faction_id=faction_id,
        action=action,
        actor_id=actor_id,
        details=details,
        created_at=now,
    )
    repositories.audit.add(entry)
    return entry


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)

"""Read-only preview services for the sync management flow.

Previews fetch live data, compare it with what is stored and return the differences.
They never write; the matching ``commit_*`` executors in
``rostersync.domain.reconciliation.apply`` replay a preview's ``source_data``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING

from rostersync.config.sync import SyncConfig
from rostersync.domain.errors import (
    ForumGroupCacheMissing,
    NoActiveConfiguration,
    RosterSnapshotMissing,
    UnitNotLinked,
)
from rostersync.domain.reconciliation.apply import require_unit
from rostersync.domain.reconciliation.diff import diff_records
from rostersync.domain.reconciliation.forum import forum_group_diff
from rostersync.domain.reconciliation.identity import CharacterIndex
from rostersync.domain.reconciliation.organization import (
    desired_character_ids,
    reconcile_unit,
    unit_candidates,
    unit_preview,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from rostersync.domain.model import (
        AbasEntry,
        AbasRecord,
        AuditEntry,
        CharacterRecord,
        ForumGroupCache,
        ForumGroupSummary,
        MembershipType,
        OrganizationUnit,
    )
    from rostersync.domain.ports import (
        ForumFetcherFactory,
        RosterFetcher,
        SyncRepositories,
        SyncUnitOfWork,
    )
    from rostersync.domain.reconciliation.diff import Diff
    from rostersync.domain.reconciliation.forum import ForumGroupDiff
    from rostersync.domain.reconciliation.organization import UnitCandidates, UnitSyncPreview

    type UnitOfWorkFactory = Callable[[], SyncUnitOfWork]

log = getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class SyncStatus:
    """Last sync times of each cached dataset of a faction."""

    faction_id: int
    members_last_sync: datetime | None
    member_count: int
    abas_last_sync: datetime | None
    forum_last_sync: datetime | None
    forum_enabled: bool


def preview_members_diff(
    faction_id: int,
    *,
    fetcher: RosterFetcher,
    unit_of_work_factory: UnitOfWorkFactory,
    config: SyncConfig | None = None,
) -> Diff[int, CharacterRecord, CharacterRecord]:
    """Diff the live roster against the stored snapshot, keyed by character id."""

    effective = config or SyncConfig()
    live = fetcher.fetch_members(faction_id)
    with unit_of_work_factory() as uow:
        snapshot = uow.repositories.snapshots.get(faction_id)
    cached = snapshot.members if snapshot is not None else []
    diff: Diff[int, CharacterRecord, CharacterRecord] = diff_records(
        live,
        cached,
        key=_character_id,
        compared_fields=effective.member_compared_fields,
    )
    log.info(
        "Members preview for faction %s: live=%s, cached=%s, %s",
        faction_id,
        len(live),
        len(cached),
        diff.counts(),
    )
    return diff


def preview_abas_diff(
    faction_id: int,
    *,
    fetcher: RosterFetcher,
    unit_of_work_factory: UnitOfWorkFactory,
    config: SyncConfig | None = None,
) -> Diff[int, AbasEntry, AbasRecord]:
    """Diff live activity scores against the cache.

    The cache is only ever upserted, so nothing is reported as removed. Entries are
    named through the stored roster snapshot, falling back to ``Character #<id>``.
    """

    effective = config or SyncConfig()
    live = fetcher.fetch_abas(faction_id)
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        cached = repositories.abas.list_for_faction(faction_id)
        index = CharacterIndex.from_snapshot(repositories.snapshots.get(faction_id))

    named = [_named_abas(entry, index) for entry in live]
    diff: Diff[int, AbasEntry, AbasRecord] = diff_records(
        named,
        cached,
        key=_character_id,
        compared_fields=effective.abas_compared_fields,
        track_removed=False,
    )
    log.info("ABAS preview for faction %s: %s", faction_id, diff.counts())
    return diff


def preview_forum_group_diff(
    faction_id: int,
    *,
    forum_fetcher_factory: ForumFetcherFactory,
    unit_of_work_factory: UnitOfWorkFactory,
    config: SyncConfig | None = None,
) -> list[ForumGroupDiff]:
    """Diff every selected forum group against its cache.

    Returns an empty list when the faction has no forum integration configured.
    """

    effective = config or SyncConfig()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        integration = repositories.forum.get_integration(faction_id)
        groups = repositories.forum.list_syncable_groups(faction_id)
        caches = {
            cache.group_id: cache for cache in repositories.forum.list_group_caches(faction_id)
        }

    try:
        fetcher = forum_fetcher_factory(integration)
    except NoActiveConfiguration:
        log.info("Forum integration not configured for faction %s; skipping", faction_id)
        return []

    previews: list[ForumGroupDiff] = []
    for group in groups:
        roster = fetcher.fetch_group(group.group_id)
        previews.append(
            forum_group_diff(
                group,
                roster,
                caches.get(group.group_id),
                compared_fields=effective.forum_member_compared_fields,
            )
        )
    log.info("Forum preview for faction %s: %s groups", faction_id, len(previews))
    return previews


def list_forum_groups(
    faction_id: int,
    *,
    forum_fetcher_factory: ForumFetcherFactory,
    unit_of_work_factory: UnitOfWorkFactory,
) -> list[ForumGroupSummary]:
    """All groups the faction's forum exposes, or an empty list without integration."""

    with unit_of_work_factory() as uow:
        integration = uow.repositories.forum.get_integration(faction_id)
    try:
        fetcher = forum_fetcher_factory(integration)
    except NoActiveConfiguration:
        return []
    return fetcher.list_groups()


def preview_organization_diff(
    faction_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    config: SyncConfig | None = None,
) -> list[UnitSyncPreview]:
    """Compare every forum-linked unit with its cached forum group.

    Units whose group has not been synced yet are skipped. Raises
    :class:`RosterSnapshotMissing` when there are linked units but no member snapshot,
    since every automatic row would otherwise look removed.
    """

    effective = config or SyncConfig()
    previews: list[UnitSyncPreview] = []
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        units = repositories.units.list_linked(faction_id)
        if not units:
            return previews
        snapshot = repositories.snapshots.get(faction_id)
        if snapshot is None:
            raise RosterSnapshotMissing(faction_id)
        index = CharacterIndex.from_snapshot(snapshot)

        for unit in units:
            cache = _unit_cache(repositories, unit)
            if cache is None:
                log.debug("No forum cache for %s %s; skipping", unit.type, unit.id)
                continue
            previews.append(
                unit_preview(
                    unit,
                    cache,
                    repositories.memberships.list_for_unit(unit.type, unit.id),
                    index,
                    separator=effective.forum_name_separator,
                    include_leaders=effective.include_forum_leaders,
                )
            )
    return previews


def preview_unit_sync(
    unit_type: MembershipType,
    category_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    config: SyncConfig | None = None,
) -> UnitCandidates:
    """Candidates for one unit's confirm step, flagged for conflicts and exclusions."""

    effective = config or SyncConfig()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        unit = require_unit(repositories, unit_type, category_id)
        if unit.forum_group_id is None:
            raise UnitNotLinked(unit_type, category_id)
        cache = _unit_cache(repositories, unit)
        if cache is None:
            raise ForumGroupCacheMissing(unit.faction_id, unit.forum_group_id)
        snapshot = repositories.snapshots.get(unit.faction_id)
        if snapshot is None:
            raise RosterSnapshotMissing(unit.faction_id)
        index = CharacterIndex.from_snapshot(snapshot)

        desired = desired_character_ids(
            cache,
            index,
            separator=effective.forum_name_separator,
            include_leaders=effective.include_forum_leaders,
        )
        reconciliation = reconcile_unit(
            unit_type,
            category_id,
            desired,
            repositories.memberships.list_for_unit(unit_type, category_id),
        )
        return unit_candidates(
            unit,
            reconciliation,
            index,
            assigned_elsewhere=repositories.memberships.primary_character_ids_outside(
                unit_type, category_id
            ),
            excluded_names={
                exclusion.character_name
                for exclusion in repositories.exclusions.list_for_unit(unit_type, category_id)
            },
        )


def sync_status(faction_id: int, *, unit_of_work_factory: UnitOfWorkFactory) -> SyncStatus:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        snapshot = repositories.snapshots.get(faction_id)
        abas = repositories.abas.list_for_faction(faction_id)
        caches = repositories.forum.list_group_caches(faction_id)
        integration = repositories.forum.get_integration(faction_id)

    return SyncStatus(
        faction_id=faction_id,
        members_last_sync=snapshot.last_sync_timestamp if snapshot is not None else None,
        member_count=len(snapshot.members) if snapshot is not None else 0,
        abas_last_sync=_latest(record.last_sync_timestamp for record in abas),
        forum_last_sync=_latest(cache.last_sync_timestamp for cache in caches),
        forum_enabled=integration is not None and integration.enabled,
    )


def recent_audit_entries(
    faction_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    config: SyncConfig | None = None,
) -> list[AuditEntry]:
    effective = config or SyncConfig()
    with unit_of_work_factory() as uow:
        return uow.repositories.audit.list_recent(faction_id, limit=effective.audit_log_limit)


def _unit_cache(repositories: SyncRepositories, unit: OrganizationUnit) -> ForumGroupCache | None:
    if unit.forum_group_id is None:
        return None
    return repositories.forum.get_group_cache(unit.faction_id, unit.forum_group_id)


def _named_abas(entry: AbasEntry, index: CharacterIndex) -> AbasEntry:
    record = index.get(entry.character_id)
    name = record.character_name if record is not None else f"Character #{entry.character_id}"
    return replace(entry, character_name=name)


def _character_id(entity: CharacterRecord | AbasEntry | AbasRecord) -> int:
    return entity.character_id


def _latest(timestamps: Iterable[datetime | None]) -> datetime | None:
    present = [timestamp for timestamp in timestamps if timestamp is not None]
    return max(present) if present else None

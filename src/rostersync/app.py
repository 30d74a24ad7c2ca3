"""Application entry points wiring the default adapters into the sync services."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from rostersync.adapters.gtaw import GtawRosterFetcher
from rostersync.adapters.phpbb import build_phpbb_fetcher
from rostersync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from rostersync.config.sync import get_sync_config
from rostersync.domain import data_integration
from rostersync.domain.reconciliation import apply

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from rostersync.config.sync import SyncConfig
    from rostersync.domain.data_integration import SyncStatus
    from rostersync.domain.model import (
        AbasEntry,
        AbasRecord,
        AuditEntry,
        CharacterRecord,
        ForumGroupSummary,
        MembershipType,
        SyncExclusion,
    )
    from rostersync.domain.ports.fetching import ForumFetcherFactory, RosterFetcher
    from rostersync.domain.ports.unit_of_work import SyncUnitOfWork
    from rostersync.domain.reconciliation import (
        Diff,
        ForumGroupDiff,
        UnitCandidates,
        UnitSyncPayload,
        UnitSyncPreview,
    )

    type UnitOfWorkFactory = Callable[[], SyncUnitOfWork]

log = getLogger(__name__)


def _unit_of_work_factory(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyUnitOfWork


def _config(config: SyncConfig | None) -> SyncConfig:
    return config or get_sync_config()


# Previews --------------------------------------------------------------------------


def preview_members_diff(
    faction_id: int,
    *,
    fetcher: RosterFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: SyncConfig | None = None,
) -> Diff[int, CharacterRecord, CharacterRecord]:
    return data_integration.preview_members_diff(
        faction_id,
        fetcher=fetcher or GtawRosterFetcher(),
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        config=_config(config),
    )


def preview_abas_diff(
    faction_id: int,
    *,
    fetcher: RosterFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: SyncConfig | None = None,
) -> Diff[int, AbasEntry, AbasRecord]:
    return data_integration.preview_abas_diff(
        faction_id,
        fetcher=fetcher or GtawRosterFetcher(),
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        config=_config(config),
    )


def preview_forum_group_diff(
    faction_id: int,
    *,
    forum_fetcher_factory: ForumFetcherFactory | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: SyncConfig | None = None,
) -> list[ForumGroupDiff]:
    return data_integration.preview_forum_group_diff(
        faction_id,
        forum_fetcher_factory=forum_fetcher_factory or build_phpbb_fetcher,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        config=_config(config),
    )


def preview_organization_diff(
    faction_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: SyncConfig | None = None,
) -> list[UnitSyncPreview]:
    return data_integration.preview_organization_diff(
        faction_id,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        config=_config(config),
    )


def preview_unit_sync(
    unit_type: MembershipType,
    category_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: SyncConfig | None = None,
) -> UnitCandidates:
    return data_integration.preview_unit_sync(
        unit_type,
        category_id,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        config=_config(config),
    )


def list_forum_groups(
    faction_id: int,
    *,
    forum_fetcher_factory: ForumFetcherFactory | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[ForumGroupSummary]:
    return data_integration.list_forum_groups(
        faction_id,
        forum_fetcher_factory=forum_fetcher_factory or build_phpbb_fetcher,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
    )


def sync_status(
    faction_id: int, *, unit_of_work_factory: UnitOfWorkFactory | None = None
) -> SyncStatus:
    return data_integration.sync_status(
        faction_id, unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory)
    )


def recent_audit_entries(
    faction_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: SyncConfig | None = None,
) -> list[AuditEntry]:
    return data_integration.recent_audit_entries(
        faction_id,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        config=_config(config),
    )


# Commits ---------------------------------------------------------------------------


def commit_members(
    faction_id: int,
    diff: Diff[int, CharacterRecord, CharacterRecord],
    *,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AuditEntry:
    log.info(f"Committing members sync for faction {faction_id}: {diff.counts()}")
    return apply.commit_members(
        faction_id,
        diff,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )


def commit_abas(
    faction_id: int,
    entries: Iterable[AbasEntry],
    *,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AuditEntry:
    return apply.commit_abas(
        faction_id,
        entries,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )


def commit_forum_groups(
    faction_id: int,
    previews: Sequence[ForumGroupDiff],
    *,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AuditEntry:
    return apply.commit_forum_groups(
        faction_id,
        previews,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )


def commit_organization(
    faction_id: int,
    payload: Sequence[UnitSyncPayload],
    *,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AuditEntry:
    return apply.commit_organization(
        faction_id,
        payload,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )


def commit_unit_sync(
    unit_type: MembershipType,
    category_id: int,
    add_ids: Sequence[int],
    remove_ids: Sequence[int],
    *,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AuditEntry:
    return apply.commit_unit_sync(
        unit_type,
        category_id,
        add_ids,
        remove_ids,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )


def set_sync_exclusions(
    unit_type: MembershipType,
    category_id: int,
    character_names: Iterable[str],
    *,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[SyncExclusion]:
    return apply.set_sync_exclusions(
        unit_type,
        category_id,
        character_names,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )


def pin_primary_character(
    faction_id: int,
    user_id: int,
    character_id: int,
    *,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AuditEntry:
    return apply.pin_primary_character(
        faction_id,
        user_id,
        character_id,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )


def configure_forum_integration(
    faction_id: int,
    *,
    name: str,
    phpbb_api_url: str | None,
    phpbb_api_key: str | None,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AuditEntry:
    return apply.configure_forum_integration(
        faction_id,
        name=name,
        phpbb_api_url=phpbb_api_url,
        phpbb_api_key=phpbb_api_key,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )


def set_syncable_forum_groups(
    faction_id: int,
    groups: Iterable[ForumGroupSummary],
    *,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AuditEntry:
    return apply.set_syncable_forum_groups(
        faction_id,
        groups,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )


def delete_sync_data(
    faction_id: int,
    *,
    actor_id: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AuditEntry:
    log.warning(f"Deleting all cached sync data for faction {faction_id}")
    return apply.delete_sync_data(
        faction_id,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        actor_id=actor_id,
    )

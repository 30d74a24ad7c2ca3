from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from rostersync.domain.data_integration import (
    preview_forum_group_diff,
    preview_members_diff,
    preview_organization_diff,
    recent_audit_entries,
)
from rostersync.domain.errors import InvalidPinError, UnknownOrganizationUnit
from rostersync.domain.model import (
    AbasEntry,
    AbasRecord,
    AuditAction,
    ForumGroupSummary,
    MembershipType,
)
from rostersync.domain.reconciliation import apply
from rostersync.domain.reconciliation.organization import UnitSyncPayload
from tests.helpers.roster import (
    FACTION_ID,
    FakeForumFetcher,
    FakeRosterFetcher,
    forum_factory,
    forum_users,
    make_character,
    seed_forum,
    seed_membership,
    seed_snapshot,
    seed_unit,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from rostersync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from rostersync.domain.model import CharacterRecord

    UowFactory = Callable[[], SqlAlchemyUnitOfWork]

ROSTER = [
    make_character(1, "John Doe", user_id=100, rank=2, rank_name="Officer"),
    make_character(2, "Johnny Doe", user_id=100, rank=5, rank_name="Sergeant"),
    make_character(3, "Jane Roe", user_id=200, rank=1, rank_name="Cadet"),
]


def _sync_members(
    unit_of_work_factory: UowFactory, members: list[CharacterRecord], *, actor_id: int = 1
) -> None:
    fetcher = FakeRosterFetcher(members=members)
    diff = preview_members_diff(
        FACTION_ID, fetcher=fetcher, unit_of_work_factory=unit_of_work_factory
    )
    apply.commit_members(
        FACTION_ID, diff, unit_of_work_factory=unit_of_work_factory, actor_id=actor_id
    )


def _memberships(unit_of_work_factory: UowFactory, category_id: int = 7) -> dict[int, bool]:
    with unit_of_work_factory() as uow:
        rows = uow.repositories.memberships.list_for_unit(MembershipType.UNIT, category_id)
        return {row.character_id: row.manual for row in rows}


def test_commit_members_stores_snapshot_alternates_and_audit(
    sqlite_unit_of_work: UowFactory,
) -> None:
    _sync_members(sqlite_unit_of_work, ROSTER, actor_id=42)

    with sqlite_unit_of_work() as uow:
        repositories = uow.repositories
        snapshot = repositories.snapshots.get(FACTION_ID)
        alternates = repositories.alternates.list_for_faction(FACTION_ID)
        audit = repositories.audit.list_recent(FACTION_ID, limit=10)

    assert snapshot is not None
    assert [member.character_id for member in snapshot.members] == [1, 2, 3]
    assert snapshot.last_sync_timestamp is not None
    assert [(entry.user_id, entry.character_id, entry.alternative_ids) for entry in alternates] == [
        (100, 2, (1,))
    ]
    assert len(audit) == 1
    assert audit[0].action is AuditAction.SYNC_MEMBERS
    assert audit[0].actor_id == 42
    assert audit[0].details["added"] == 3
    assert audit[0].details["alternates_upserted"] == 1


def test_second_members_sync_is_a_no_op(sqlite_unit_of_work: UowFactory) -> None:
    _sync_members(sqlite_unit_of_work, ROSTER)

    diff = preview_members_diff(
        FACTION_ID,
        fetcher=FakeRosterFetcher(members=ROSTER),
        unit_of_work_factory=sqlite_unit_of_work,
    )
    _sync_members(sqlite_unit_of_work, ROSTER)

    assert not diff.has_changes
    with sqlite_unit_of_work() as uow:
        alternates = uow.repositories.alternates.list_for_faction(FACTION_ID)
    assert [(entry.character_id, entry.alternative_ids) for entry in alternates] == [(2, (1,))]


def test_commit_members_is_atomic(
    sqlite_unit_of_work: UowFactory, monkeypatch: pytest.MonkeyPatch
) -> None:
    _sync_members(sqlite_unit_of_work, ROSTER)
    changed = [*ROSTER, make_character(4, "New Hire", user_id=400)]
    diff = preview_members_diff(
        FACTION_ID,
        fetcher=FakeRosterFetcher(members=changed),
        unit_of_work_factory=sqlite_unit_of_work,
    )

    def explode(*_: object, **__: object) -> None:
        raise RuntimeError("classifier failed")

    monkeypatch.setattr(apply, "reconcile_alternates", explode)

    with pytest.raises(RuntimeError, match="classifier failed"):
        apply.commit_members(FACTION_ID, diff, unit_of_work_factory=sqlite_unit_of_work)

    with sqlite_unit_of_work() as uow:
        snapshot = uow.repositories.snapshots.get(FACTION_ID)
        audit = uow.repositories.audit.list_recent(FACTION_ID, limit=10)
    assert snapshot is not None
    assert [member.character_id for member in snapshot.members] == [1, 2, 3]
    assert len(audit) == 1


def test_pin_survives_member_sync_until_character_leaves(sqlite_unit_of_work: UowFactory) -> None:
    _sync_members(sqlite_unit_of_work, ROSTER)

    entry = apply.pin_primary_character(
        FACTION_ID, 100, 1, unit_of_work_factory=sqlite_unit_of_work, actor_id=9
    )
    assert entry.action is AuditAction.PIN_PRIMARY

    _sync_members(sqlite_unit_of_work, ROSTER)
    with sqlite_unit_of_work() as uow:
        pinned = uow.repositories.alternates.get(100, FACTION_ID)
        assert pinned is not None
        assert (pinned.character_id, pinned.manually_set) == (1, True)

    _sync_members(
        sqlite_unit_of_work,
        [*ROSTER[1:], make_character(5, "Another Doe", user_id=100, rank=3)],
    )
    with sqlite_unit_of_work() as uow:
        reverted = uow.repositories.alternates.get(100, FACTION_ID)
        assert reverted is not None
        assert (reverted.character_id, reverted.manually_set) == (2, False)
        assert reverted.alternative_ids == (5,)


def test_invalid_pin_writes_nothing(sqlite_unit_of_work: UowFactory) -> None:
    with pytest.raises(InvalidPinError):
        apply.pin_primary_character(FACTION_ID, 100, 1, unit_of_work_factory=sqlite_unit_of_work)

    _sync_members(sqlite_unit_of_work, ROSTER)
    with pytest.raises(InvalidPinError):
        apply.pin_primary_character(FACTION_ID, 100, 3, unit_of_work_factory=sqlite_unit_of_work)

    assert len(recent_audit_entries(FACTION_ID, unit_of_work_factory=sqlite_unit_of_work)) == 1


def test_commit_abas_upserts_and_keeps_unlisted_rows(sqlite_unit_of_work: UowFactory) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.abas.upsert(AbasRecord(character_id=9, faction_id=FACTION_ID, abas="2"))
        uow.commit()

    apply.commit_abas(
        FACTION_ID,
        [AbasEntry(character_id=1, abas="12.5"), AbasEntry(character_id=9, abas="3.0")],
        unit_of_work_factory=sqlite_unit_of_work,
    )

    with sqlite_unit_of_work() as uow:
        records = uow.repositories.abas.list_for_faction(FACTION_ID)
    assert [(record.character_id, record.abas) for record in records] == [(1, "12.5"), (9, "3.0")]
    assert all(record.last_sync_timestamp is not None for record in records)


def test_commit_forum_groups_replaces_caches(sqlite_unit_of_work: UowFactory) -> None:
    seed_forum(sqlite_unit_of_work, caches={70: forum_users("Old_User")})
    fetcher = FakeForumFetcher(rosters={70: forum_users("John_Doe", leaders=["John_Doe"])})
    factory = forum_factory(fetcher)

    previews = preview_forum_group_diff(
        FACTION_ID, forum_fetcher_factory=factory, unit_of_work_factory=sqlite_unit_of_work
    )
    entry = apply.commit_forum_groups(
        FACTION_ID, previews, unit_of_work_factory=sqlite_unit_of_work
    )

    assert entry.details["groups"][0]["added"] == 1
    assert entry.details["groups"][0]["removed"] == 1
    with sqlite_unit_of_work() as uow:
        cache = uow.repositories.forum.get_group_cache(FACTION_ID, 70)
    assert cache is not None
    assert [(user.username, user.leader) for user in cache.members] == [("John_Doe", True)]
    assert not preview_forum_group_diff(
        FACTION_ID, forum_fetcher_factory=factory, unit_of_work_factory=sqlite_unit_of_work
    )[0].diff.has_changes


def test_commit_organization_respects_manual_rows(sqlite_unit_of_work: UowFactory) -> None:
    seed_snapshot(
        sqlite_unit_of_work,
        [
            make_character(1, "John Doe"),
            make_character(2, "Jane Roe"),
            make_character(3, "Manual Member"),
            make_character(4, "Stale Member"),
        ],
    )
    seed_unit(sqlite_unit_of_work, default_title="Patrol Officer")
    seed_forum(sqlite_unit_of_work, caches={70: forum_users("John_Doe", "Manual_Member")})
    seed_membership(sqlite_unit_of_work, 3, manual=True)
    seed_membership(sqlite_unit_of_work, 4)
    previews = preview_organization_diff(FACTION_ID, unit_of_work_factory=sqlite_unit_of_work)

    apply.commit_organization(
        FACTION_ID,
        [preview.source_data for preview in previews if preview.source_data is not None],
        unit_of_work_factory=sqlite_unit_of_work,
        actor_id=5,
    )

    assert _memberships(sqlite_unit_of_work) == {1: False, 3: True}
    with sqlite_unit_of_work() as uow:
        created = [
            row
            for row in uow.repositories.memberships.list_for_unit(MembershipType.UNIT, 7)
            if row.character_id == 1
        ][0]
    assert created.title == "Patrol Officer"
    assert created.created_by == 5
    assert preview_organization_diff(FACTION_ID, unit_of_work_factory=sqlite_unit_of_work)[
        0
    ].added == []


def test_commit_organization_rolls_back_on_unknown_unit(sqlite_unit_of_work: UowFactory) -> None:
    seed_unit(sqlite_unit_of_work)
    payload = [
        UnitSyncPayload(type=MembershipType.UNIT, category_id=7, character_ids=(1,)),
        UnitSyncPayload(type=MembershipType.DETAIL, category_id=99, character_ids=(2,)),
    ]

    with pytest.raises(UnknownOrganizationUnit):
        apply.commit_organization(FACTION_ID, payload, unit_of_work_factory=sqlite_unit_of_work)

    assert _memberships(sqlite_unit_of_work) == {}


def test_commit_unit_sync_applies_selection_without_duplicates(
    sqlite_unit_of_work: UowFactory,
) -> None:
    seed_unit(sqlite_unit_of_work)
    seed_membership(sqlite_unit_of_work, 1, manual=True)
    seed_membership(sqlite_unit_of_work, 2)

    entry = apply.commit_unit_sync(
        MembershipType.UNIT,
        7,
        add_ids=[1, 3, 3],
        remove_ids=[1, 2],
        unit_of_work_factory=sqlite_unit_of_work,
    )

    assert _memberships(sqlite_unit_of_work) == {1: True, 3: False}
    assert entry.action is AuditAction.SYNC_UNIT
    assert entry.faction_id == FACTION_ID
    assert entry.details["added_ids"] == [3]
    assert entry.details["removed_ids"] == [2]


def test_commit_unit_sync_into_secondary_unit_keeps_flag(
    sqlite_unit_of_work: UowFactory,
) -> None:
    seed_unit(sqlite_unit_of_work)
    seed_unit(sqlite_unit_of_work, category_id=8, secondary=True, name="Air Support")

    apply.commit_unit_sync(
        MembershipType.UNIT,
        8,
        add_ids=[3],
        remove_ids=[],
        unit_of_work_factory=sqlite_unit_of_work,
    )

    with sqlite_unit_of_work() as uow:
        memberships = uow.repositories.memberships
        (row,) = memberships.list_for_unit(MembershipType.UNIT, 8)
        outside_patrol = memberships.primary_character_ids_outside(MembershipType.UNIT, 7)
    assert row.character_id == 3
    assert row.secondary is True
    assert 3 not in outside_patrol


def test_commit_organization_rejects_unit_of_another_faction(
    sqlite_unit_of_work: UowFactory,
) -> None:
    seed_unit(sqlite_unit_of_work, faction_id=FACTION_ID + 1)
    payload = [UnitSyncPayload(type=MembershipType.UNIT, category_id=7, character_ids=(1,))]

    with pytest.raises(UnknownOrganizationUnit):
        apply.commit_organization(FACTION_ID, payload, unit_of_work_factory=sqlite_unit_of_work)

    assert _memberships(sqlite_unit_of_work) == {}
    assert recent_audit_entries(FACTION_ID, unit_of_work_factory=sqlite_unit_of_work) == []


def test_set_sync_exclusions_replaces_the_list(sqlite_unit_of_work: UowFactory) -> None:
    seed_unit(sqlite_unit_of_work)

    apply.set_sync_exclusions(
        MembershipType.UNIT, 7, ["John Doe", "Jane Roe"], unit_of_work_factory=sqlite_unit_of_work
    )
    stored = apply.set_sync_exclusions(
        MembershipType.UNIT,
        7,
        [" Jane Roe ", "Jane Roe", "", "Max Power"],
        unit_of_work_factory=sqlite_unit_of_work,
    )

    assert [exclusion.character_name for exclusion in stored] == ["Jane Roe", "Max Power"]
    with sqlite_unit_of_work() as uow:
        names = [
            exclusion.character_name
            for exclusion in uow.repositories.exclusions.list_for_unit(MembershipType.UNIT, 7)
        ]
    assert names == ["Jane Roe", "Max Power"]


def test_forum_settings_round_trip(sqlite_unit_of_work: UowFactory) -> None:
    apply.configure_forum_integration(
        FACTION_ID,
        name="LSPD",
        phpbb_api_url=" https://forum.example/ ",
        phpbb_api_key="secret",
        unit_of_work_factory=sqlite_unit_of_work,
    )
    apply.set_syncable_forum_groups(
        FACTION_ID,
        [
            ForumGroupSummary(group_id=71, name="Detectives"),
            ForumGroupSummary(group_id=70, name="Patrol"),
            ForumGroupSummary(group_id=71, name="Detectives"),
        ],
        unit_of_work_factory=sqlite_unit_of_work,
    )
    disabled = apply.configure_forum_integration(
        FACTION_ID + 1,
        name="LSFD",
        phpbb_api_url="",
        phpbb_api_key=None,
        unit_of_work_factory=sqlite_unit_of_work,
    )

    with sqlite_unit_of_work() as uow:
        integration = uow.repositories.forum.get_integration(FACTION_ID)
        groups = uow.repositories.forum.list_syncable_groups(FACTION_ID)
    assert integration is not None
    assert integration.enabled
    assert integration.phpbb_api_url == "https://forum.example/"
    assert [(group.group_id, group.name) for group in groups] == [
        (70, "Patrol"),
        (71, "Detectives"),
    ]
    assert disabled.details == {"phpbb_api_url": None, "enabled": False}


def test_delete_sync_data_keeps_administrator_data(sqlite_unit_of_work: UowFactory) -> None:
    _sync_members(sqlite_unit_of_work, ROSTER)
    seed_unit(sqlite_unit_of_work)
    seed_membership(sqlite_unit_of_work, 1)
    seed_forum(sqlite_unit_of_work, caches={70: forum_users("John_Doe")})
    apply.commit_abas(
        FACTION_ID, [AbasEntry(character_id=1, abas="1")], unit_of_work_factory=sqlite_unit_of_work
    )

    entry = apply.delete_sync_data(FACTION_ID, unit_of_work_factory=sqlite_unit_of_work)

    assert entry.details == {"snapshots": 1, "abas": 1, "forum_groups": 1, "alternates": 1}
    with sqlite_unit_of_work() as uow:
        repositories = uow.repositories
        assert repositories.snapshots.get(FACTION_ID) is None
        assert repositories.abas.list_for_faction(FACTION_ID) == []
        assert repositories.forum.list_group_caches(FACTION_ID) == []
        assert repositories.alternates.list_for_faction(FACTION_ID) == []
        assert repositories.forum.get_integration(FACTION_ID) is not None
        assert repositories.units.get(MembershipType.UNIT, 7) is not None
    assert _memberships(sqlite_unit_of_work) == {1: False}


def test_recent_audit_entries_are_newest_first(sqlite_unit_of_work: UowFactory) -> None:
    base = datetime(2025, 1, 1, tzinfo=UTC)
    for offset in range(3):
        apply.commit_abas(
            FACTION_ID,
            [],
            unit_of_work_factory=sqlite_unit_of_work,
            now=base + timedelta(hours=offset),
        )

    entries = recent_audit_entries(FACTION_ID, unit_of_work_factory=sqlite_unit_of_work)

    assert [entry.created_at for entry in entries] == [
        base + timedelta(hours=2),
        base + timedelta(hours=1),
        base,
    ]

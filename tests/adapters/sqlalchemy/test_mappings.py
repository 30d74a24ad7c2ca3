from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING

from sqlalchemy import inspect, select, text

from rostersync.adapters.sqlalchemy import create_all_tables, mapper_registry, start_mappers
from rostersync.adapters.sqlalchemy.mappings import audit_log_table, roster_snapshot_table
from rostersync.domain.model import (
    AuditAction,
    AuditCategory,
    AuditEntry,
    CharacterRecord,
    RosterSnapshot,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session


def test_start_mappers_is_idempotent() -> None:
    # First invocation happens in the sqlite_engine fixture; calling again should be harmless.
    start_mappers()
    start_mappers()


def test_migrations_match_mapped_tables(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)
    table_names = set(inspector.get_table_names())

    assert set(mapper_registry.metadata.tables) <= table_names
    create_all_tables(sqlite_engine)
    assert set(inspect(sqlite_engine).get_table_names()) == table_names


def test_snapshot_members_round_trip_as_json(sqlite_session: Session) -> None:
    seen = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=2)))
    member = CharacterRecord(
        character_id=1,
        character_name="John Doe",
        user_id=100,
        rank=3,
        rank_name="Sergeant",
        last_online=seen,
    )
    sqlite_session.add(RosterSnapshot(faction_id=3, members=[member]))
    sqlite_session.commit()
    sqlite_session.expunge_all()

    raw = sqlite_session.execute(select(roster_snapshot_table.c.members)).scalar_one()
    loaded = sqlite_session.get(RosterSnapshot, 3)

    assert isinstance(raw, list)
    assert loaded is not None
    assert loaded.members[0].character_name == "John Doe"
    assert loaded.members[0].last_online == seen.astimezone(UTC)
    assert loaded.members[0].last_duty is None
    stored = sqlite_session.execute(text("SELECT members FROM roster_snapshot")).scalar_one()
    assert '"rank_name": "Sergeant"' in stored


def test_audit_entries_store_enum_values_and_details(sqlite_session: Session) -> None:
    created = datetime(2025, 1, 1, 8, tzinfo=UTC)
    sqlite_session.add(
        AuditEntry(
            faction_id=3,
            action=AuditAction.SYNC_MEMBERS,
            actor_id=7,
            details={"added": 2, "names": ["John Doe"]},
            created_at=created,
        )
    )
    sqlite_session.commit()
    sqlite_session.expunge_all()

    row = sqlite_session.execute(
        select(audit_log_table.c.action, audit_log_table.c.category)
    ).one()
    entry = sqlite_session.scalars(select(AuditEntry)).one()

    assert tuple(row) == (AuditAction.SYNC_MEMBERS, AuditCategory.SYNC_MANAGEMENT)
    stored_action = sqlite_session.execute(text("SELECT action FROM audit_log")).scalar_one()
    assert stored_action == "sync_members"
    assert entry.details == {"added": 2, "names": ["John Doe"]}
    assert entry.created_at == created
    assert entry.id is not None

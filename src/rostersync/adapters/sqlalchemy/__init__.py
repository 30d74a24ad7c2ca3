"""SQLAlchemy adapter package for rostersync."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAbasRepository,
    SqlAlchemyAlternateCharacterRepository,
    SqlAlchemyAuditRepository,
    SqlAlchemyForumRepository,
    SqlAlchemyMembershipRepository,
    SqlAlchemyOrganizationUnitRepository,
    SqlAlchemyRosterSnapshotRepository,
    SqlAlchemySyncExclusionRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyAbasRepository",
    "SqlAlchemyAlternateCharacterRepository",
    "SqlAlchemyAuditRepository",
    "SqlAlchemyForumRepository",
    "SqlAlchemyMembershipRepository",
    "SqlAlchemyOrganizationUnitRepository",
    "SqlAlchemyRosterSnapshotRepository",
    "SqlAlchemySyncExclusionRepository",
    "SqlAlchemyUnitOfWork",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]

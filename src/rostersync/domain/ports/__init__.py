"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import ForumFetcherFactory, ForumGroupFetcher, RosterFetcher
from .persistence import (
    AbasRepository,
    AlternateCharacterRepository,
    AuditRepository,
    ForumRepository,
    MembershipRepository,
    OrganizationUnitRepository,
    RosterSnapshotRepository,
    SyncExclusionRepository,
)
from .unit_of_work import RepositoryCollection, SyncRepositories, SyncUnitOfWork, UnitOfWork

__all__ = [
    "AbasRepository",
    "AlternateCharacterRepository",
    "AuditRepository",
    "ForumFetcherFactory",
    "ForumGroupFetcher",
    "ForumRepository",
    "MembershipRepository",
    "OrganizationUnitRepository",
    "RepositoryCollection",
    "RosterFetcher",
    "RosterSnapshotRepository",
    "SyncExclusionRepository",
    "SyncRepositories",
    "SyncUnitOfWork",
    "UnitOfWork",
]

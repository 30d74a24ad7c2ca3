"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from rostersync.domain.ports.persistence import (
        AbasRepository,
        AlternateCharacterRepository,
        AuditRepository,
        ForumRepository,
        MembershipRepository,
        OrganizationUnitRepository,
        RosterSnapshotRepository,
        SyncExclusionRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    Leaving the context with an exception rolls back every write made through the
    repositories; writes are only durable after :meth:`commit`.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class SyncRepositories(RepositoryCollection):
    """Repositories touched by previews and commits."""

    snapshots: RosterSnapshotRepository
    abas: AbasRepository
    alternates: AlternateCharacterRepository
    units: OrganizationUnitRepository
    memberships: MembershipRepository
    exclusions: SyncExclusionRepository
    forum: ForumRepository
    audit: AuditRepository


type SyncUnitOfWork = UnitOfWork[SyncRepositories]

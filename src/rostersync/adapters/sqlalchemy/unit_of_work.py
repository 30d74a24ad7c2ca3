"""SQLAlchemy-backed unit of work for sync previews and commits.

The adapter keeps one module-level engine. :func:`startup` configures it, maps the
domain classes and upgrades the schema; every :class:`SqlAlchemyUnitOfWork` then opens
its own session on that engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from rostersync.adapters.sqlalchemy.mappings import start_mappers
from rostersync.adapters.sqlalchemy.migrations import upgrade_head
from rostersync.adapters.sqlalchemy.repositories import (
    SqlAlchemyAbasRepository,
    SqlAlchemyAlternateCharacterRepository,
    SqlAlchemyAuditRepository,
    SqlAlchemyForumRepository,
    SqlAlchemyMembershipRepository,
    SqlAlchemyOrganizationUnitRepository,
    SqlAlchemyRosterSnapshotRepository,
    SqlAlchemySyncExclusionRepository,
)
from rostersync.config.storage import get_database_config
from rostersync.domain.errors import TransactionFailure
from rostersync.domain.ports.unit_of_work import SyncRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the adapter is used before :func:`startup` or configured twice."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or a new engine for the configured database)."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        database = get_database_config()
        engine = create_engine(database_uri or database.uri, echo=database.echo, future=True)
    start_mappers()
    upgrade_head(engine=engine)

    _STATE.engine = engine
    # Entities stay readable after commit; previews return them to the caller.
    _STATE.session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    log.debug(f"SQLAlchemy adapter bound to {engine.url.render_as_string(hide_password=True)}")


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and forget it (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.session_factory = None


class SqlAlchemyUnitOfWork:
    """One session over every sync repository; nothing is written until :meth:`commit`."""

    def __init__(self) -> None:
        if _STATE.session_factory is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call rostersync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        self._session_factory = _STATE.session_factory
        self._session: Session | None = None
        self._repositories: SyncRepositories | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = self._session_factory()
        self._repositories = SyncRepositories(
            snapshots=SqlAlchemyRosterSnapshotRepository(self._session),
            abas=SqlAlchemyAbasRepository(self._session),
            alternates=SqlAlchemyAlternateCharacterRepository(self._session),
            units=SqlAlchemyOrganizationUnitRepository(self._session),
            memberships=SqlAlchemyMembershipRepository(self._session),
            exclusions=SqlAlchemySyncExclusionRepository(self._session),
            forum=SqlAlchemyForumRepository(self._session),
            audit=SqlAlchemyAuditRepository(self._session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        if exc_type is not None:
            session.rollback()
        session.close()
        self._session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            log.exception("Commit rejected by the database; rolling back")
            self.session.rollback()
            raise TransactionFailure(str(exc)) from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @property
    def repositories(self) -> SyncRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories


if TYPE_CHECKING:
    from rostersync.domain.ports.unit_of_work import SyncUnitOfWork

    _uow_check: SyncUnitOfWork = SqlAlchemyUnitOfWork()

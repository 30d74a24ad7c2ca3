from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from rostersync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from rostersync.domain.errors import TransactionFailure
from rostersync.domain.model import MembershipType, OrganizationMembership, RosterSnapshot
from tests.helpers.roster import make_character

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_uncommitted_work_is_rolled_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.snapshots.replace(
            RosterSnapshot(faction_id=3, members=[make_character(1, "Discarded")])
        )

    with pytest.raises(RuntimeError), SqlAlchemyUnitOfWork() as uow:
        uow.repositories.snapshots.replace(
            RosterSnapshot(faction_id=3, members=[make_character(2, "Also Discarded")])
        )
        raise RuntimeError("boom")

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.snapshots.get(3) is None


def test_rejected_commit_raises_transaction_failure(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(TransactionFailure), SqlAlchemyUnitOfWork() as uow:
        for _ in range(2):
            uow.repositories.memberships.add(
                OrganizationMembership(
                    type=MembershipType.UNIT, category_id=7, character_id=1
                )
            )
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.memberships.list_for_unit(MembershipType.UNIT, 7) == []

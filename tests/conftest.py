from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from editionledger.adapters.sqlalchemy import Database, InProcessProductLocks, startup
from editionledger.app import EditionLedger

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from editionledger.adapters.sqlalchemy import SqlAlchemyEditionUnitOfWork


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def database(sqlite_engine: Engine) -> Database:
    return startup(engine=sqlite_engine)


@pytest.fixture
def uow_factory(database: Database) -> Callable[[], SqlAlchemyEditionUnitOfWork]:
    return database.unit_of_work


@pytest.fixture
def locks() -> InProcessProductLocks:
    return InProcessProductLocks(timeout=5.0)


@pytest.fixture
def ledger(database: Database, locks: InProcessProductLocks) -> EditionLedger:
    return EditionLedger(database=database, locks=locks)

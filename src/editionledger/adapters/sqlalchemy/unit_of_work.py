"""SQLAlchemy-backed unit of work and database handle."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, Literal, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from editionledger.adapters.sqlalchemy.mappings import start_mappers
from editionledger.adapters.sqlalchemy.migrations import upgrade_head
from editionledger.adapters.sqlalchemy.repositories import (
    SqlAlchemyEditionEventRepository,
    SqlAlchemyLineItemRepository,
    SqlAlchemyOrderRepository,
    SqlAlchemySyncRunRepository,
    SqlAlchemyWarehouseRecordRepository,
)
from editionledger.config import get_database_config
from editionledger.domain.ports.unit_of_work import EditionRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used outside its ``with`` block."""


@dataclass(slots=True)
class Database:
    """Engine and session factory owned by one application instance."""

    engine: Engine
    session_factory: sessionmaker[Session]

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def unit_of_work(self) -> SqlAlchemyEditionUnitOfWork:
        return SqlAlchemyEditionUnitOfWork(self.session_factory)

    def dispose(self) -> None:
        self.engine.dispose()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    migrate: bool = True,
) -> Database:
    """Create the engine, configure mappers and bring the schema to head."""

    if engine is None:
        settings = get_database_config()
        engine = create_engine(database_uri or settings.uri, echo=settings.echo)
    start_mappers()
    if migrate:
        upgrade_head(engine=engine)
    return Database(
        engine=engine,
        session_factory=sessionmaker(bind=engine, expire_on_commit=False),
    )


TRepositories = TypeVar("TRepositories", bound=RepositoryCollection)


class BaseSqlAlchemyUnitOfWork(ABC, Generic[TRepositories]):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = self.session_factory()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self._session = None
        self._repositories = None
        return False

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session


class SqlAlchemyEditionUnitOfWork(BaseSqlAlchemyUnitOfWork[EditionRepositories]):
    """Unit of work over orders, line items and the edition log."""

    def _build_repositories(self, session: Session) -> EditionRepositories:
        return EditionRepositories(
            orders=SqlAlchemyOrderRepository(session),
            line_items=SqlAlchemyLineItemRepository(session),
            events=SqlAlchemyEditionEventRepository(session),
            warehouse_records=SqlAlchemyWarehouseRecordRepository(session),
            sync_runs=SqlAlchemySyncRunRepository(session),
        )


if TYPE_CHECKING:
    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork

    def _uow_check(factory: sessionmaker[Session]) -> EditionUnitOfWork:
        return SqlAlchemyEditionUnitOfWork(factory)

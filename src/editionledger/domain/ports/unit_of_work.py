"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeAlias, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from editionledger.domain.ports.persistence import (
        EditionEventRepository,
        LineItemRepository,
        OrderRepository,
        SyncRunRepository,
        WarehouseRecordRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


TRepositories = TypeVar("TRepositories", bound=RepositoryCollection)


@runtime_checkable
class UnitOfWork(Protocol[TRepositories]):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def flush(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class EditionRepositories(RepositoryCollection):
    """Repositories for orders, line items and their numbering history."""

    orders: OrderRepository
    line_items: LineItemRepository
    events: EditionEventRepository
    warehouse_records: WarehouseRecordRepository
    sync_runs: SyncRunRepository


EditionUnitOfWork: TypeAlias = UnitOfWork[EditionRepositories]

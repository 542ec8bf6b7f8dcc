"""SQLAlchemy adapter package for the edition ledger."""

from __future__ import annotations

from .locks import AdvisoryProductLocks, InProcessProductLocks, build_product_locks
from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyEditionEventRepository,
    SqlAlchemyLineItemRepository,
    SqlAlchemyOrderRepository,
    SqlAlchemySyncRunRepository,
    SqlAlchemyWarehouseRecordRepository,
)
from .unit_of_work import Database, SqlAlchemyEditionUnitOfWork, StartupError, startup

__all__ = [
    "AdvisoryProductLocks",
    "Database",
    "InProcessProductLocks",
    "SqlAlchemyEditionEventRepository",
    "SqlAlchemyEditionUnitOfWork",
    "SqlAlchemyLineItemRepository",
    "SqlAlchemyOrderRepository",
    "SqlAlchemySyncRunRepository",
    "SqlAlchemyWarehouseRecordRepository",
    "StartupError",
    "build_product_locks",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
    "startup",
]

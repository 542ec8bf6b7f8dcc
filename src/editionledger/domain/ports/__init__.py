"""Domain ports."""

from __future__ import annotations

from .fetching import (
    OrderFetcher,
    PlatformOrderLookup,
    RawLineItem,
    RawOrder,
    RawRefund,
    RawShipment,
    WarehouseWindowLookup,
)
from .locking import ProductLockManager
from .unit_of_work import EditionRepositories, EditionUnitOfWork, RepositoryCollection, UnitOfWork

__all__ = [
    "EditionRepositories",
    "EditionUnitOfWork",
    "OrderFetcher",
    "PlatformOrderLookup",
    "ProductLockManager",
    "RawLineItem",
    "RawOrder",
    "RawRefund",
    "RawShipment",
    "RepositoryCollection",
    "UnitOfWork",
    "WarehouseWindowLookup",
]

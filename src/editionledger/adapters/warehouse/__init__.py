"""Warehouse (ChinaDivision) order-info adapter."""

from __future__ import annotations

from .client import WarehouseAPIError, WarehouseOrderFetcher
from .schema import WarehouseOrderPayload
from .translator import parse_warehouse_order, to_raw_order

__all__ = [
    "WarehouseAPIError",
    "WarehouseOrderFetcher",
    "WarehouseOrderPayload",
    "parse_warehouse_order",
    "to_raw_order",
]

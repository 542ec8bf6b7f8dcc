"""Domain model for the edition ledger."""

from __future__ import annotations

from .audit import EditionEvent, SyncRun
from .enums import (
    ACTIVE_FINANCIAL_STATUSES,
    FULFILLED,
    VOIDED_FINANCIAL_STATUS,
    EditionEventType,
    LineItemStatus,
    OrderSource,
    RemovalReason,
    SyncKind,
)
from .orders import (
    WAREHOUSE_ORDER_PREFIX,
    LineItem,
    Order,
    WarehouseRecord,
    normalize_email,
    normalize_order_number,
)

__all__ = [
    "ACTIVE_FINANCIAL_STATUSES",
    "FULFILLED",
    "VOIDED_FINANCIAL_STATUS",
    "WAREHOUSE_ORDER_PREFIX",
    "EditionEvent",
    "EditionEventType",
    "LineItem",
    "LineItemStatus",
    "Order",
    "OrderSource",
    "RemovalReason",
    "SyncKind",
    "SyncRun",
    "WarehouseRecord",
    "normalize_email",
    "normalize_order_number",
]

"""Canonical orders, their line items and warehouse side records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .enums import (
    ACTIVE_FINANCIAL_STATUSES,
    FULFILLED,
    VOIDED_FINANCIAL_STATUS,
    LineItemStatus,
    OrderSource,
)

if TYPE_CHECKING:
    from datetime import datetime
    from decimal import Decimal

    from .enums import RemovalReason

WAREHOUSE_ORDER_PREFIX = "WH-"


def normalize_order_number(value: str | None) -> str | None:
    """Digits of an order reference: ``#1174`` and ``1174A`` both give ``1174``."""

    if value is None:
        return None
    digits = "".join(ch for ch in value if ch.isdigit())
    return digits or None


def normalize_email(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip().lower()
    return cleaned or None


@dataclass(eq=False, kw_only=True)
class Order:
    """One real-world order as the ledger knows it."""

    id: str
    source: OrderSource
    created_at: datetime
    display_number: str | None = None
    order_number: str | None = None
    financial_status: str | None = None
    fulfillment_status: str | None = None
    total_price: Decimal | None = None
    currency: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    processed_at: datetime | None = None
    cancelled_at: datetime | None = None
    archived: bool = False

    # Platform reference carried by a warehouse-origin placeholder
    external_ref: str | None = None

    shipping_name: str | None = None
    shipping_phone: str | None = None
    shipping_address: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    shipping_source: OrderSource | None = None

    raw_payload: dict[str, Any] | None = field(default=None, repr=False)
    updated_at: datetime | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.source is OrderSource.WAREHOUSE

    @property
    def is_voided(self) -> bool:
        return self.financial_status == VOIDED_FINANCIAL_STATUS

    @property
    def counts_as_paid(self) -> bool:
        return self.financial_status in ACTIVE_FINANCIAL_STATUSES


@dataclass(eq=False, kw_only=True)
class LineItem:
    """A purchased unit that may hold an edition number."""

    line_item_id: str
    order_id: str
    product_id: str
    created_at: datetime
    variant_id: str | None = None
    title: str | None = None
    sku: str | None = None
    quantity: int = 1
    price: Decimal | None = None
    vendor_name: str | None = None
    fulfillment_status: str | None = None
    restocked: bool = False
    status: LineItemStatus = LineItemStatus.INACTIVE

    edition_number: int | None = None
    edition_total: int | None = None

    owner_email: str | None = None
    owner_name: str | None = None
    authenticated_at: datetime | None = None

    # Position in the numbering queue; moves forward on every reactivation
    activated_at: datetime | None = None
    removed_reason: RemovalReason | None = None
    removed_at: datetime | None = None

    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is LineItemStatus.ACTIVE

    @property
    def is_fulfilled(self) -> bool:
        return self.fulfillment_status == FULFILLED

    def numbering_key(self) -> tuple[datetime, datetime, str]:
        return (self.activated_at or self.created_at, self.created_at, self.line_item_id)


@dataclass(eq=False, kw_only=True)
class WarehouseRecord:
    """Shipment data for one warehouse order, kept for enrichment and matching."""

    id: str
    platform_ref: str | None = None
    platform_order_id: str | None = None
    matched_order_id: str | None = None
    ship_email: str | None = None
    ship_name: str | None = None
    ship_phone: str | None = None
    ship_address: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    status_code: str | None = None
    status_name: str | None = None
    raw_payload: dict[str, Any] | None = field(default=None, repr=False)
    updated_at: datetime | None = None

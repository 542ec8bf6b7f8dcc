"""Ports and transfer objects for fetching orders from upstream systems."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from datetime import datetime
    from decimal import Decimal

    from editionledger.domain.model import OrderSource

NO_RESTOCK = "no_restock"


@dataclass(frozen=True, slots=True, kw_only=True)
class RawRefund:
    """A refunded line, as reported by the platform."""

    line_item_id: str
    quantity: int = 0
    restock: bool = False
    restock_type: str | None = None

    @property
    def restocks(self) -> bool:
        return self.restock or self.restock_type not in (None, NO_RESTOCK)


@dataclass(frozen=True, slots=True, kw_only=True)
class RawLineItem:
    line_item_id: str
    product_id: str | None
    variant_id: str | None = None
    title: str | None = None
    sku: str | None = None
    quantity: int = 1
    price: Decimal | None = None
    vendor_name: str | None = None
    fulfillment_status: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RawShipment:
    ship_name: str | None = None
    ship_email: str | None = None
    ship_phone: str | None = None
    ship_address: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    status_code: str | None = None
    status_name: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RawOrder:
    """Source-neutral order record produced by an adapter.

    Warehouse records set ``platform_ref`` (the order reference they were created
    for) and, when known, ``platform_order_id``; platform records leave both unset.
    """

    source: OrderSource
    id: str
    created_at: datetime
    display_number: str | None = None
    financial_status: str | None = None
    fulfillment_status: str | None = None
    total_price: Decimal | None = None
    currency: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    processed_at: datetime | None = None
    cancelled_at: datetime | None = None
    archived: bool = False
    line_items: tuple[RawLineItem, ...] = ()
    refunds: tuple[RawRefund, ...] = ()
    shipment: RawShipment | None = None
    platform_ref: str | None = None
    platform_order_id: str | None = None
    raw_payload: Mapping[str, Any] = field(default_factory=dict[str, Any], repr=False)


@runtime_checkable
class OrderFetcher(Protocol):
    """Lazy, finite stream of orders changed since a cursor.

    A stream cannot resume after a failure; call ``fetch_since`` again instead.
    """

    @property
    def name(self) -> str: ...

    def fetch_since(self, cursor: datetime) -> Iterator[RawOrder]: ...


@runtime_checkable
class PlatformOrderLookup(OrderFetcher, Protocol):
    def fetch_order(self, order_id: str) -> RawOrder | None: ...


@runtime_checkable
class WarehouseWindowLookup(OrderFetcher, Protocol):
    def fetch_window(self, start: datetime, end: datetime) -> Iterator[RawOrder]: ...


__all__ = [
    "OrderFetcher",
    "PlatformOrderLookup",
    "RawLineItem",
    "RawOrder",
    "RawRefund",
    "RawShipment",
    "WarehouseWindowLookup",
]

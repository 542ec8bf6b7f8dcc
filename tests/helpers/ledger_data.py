"""Builders and fakes shared by the ledger tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from editionledger.domain.model import (
    EditionEventType,
    LineItem,
    LineItemStatus,
    Order,
    OrderSource,
)
from editionledger.domain.ports.fetching import RawLineItem, RawOrder, RawRefund, RawShipment

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from editionledger.domain.model import EditionEvent
    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def make_order(
    order_id: str = "1001",
    *,
    source: OrderSource = OrderSource.PLATFORM,
    financial_status: str | None = "paid",
    created_at: datetime = T0,
    **overrides: Any,
) -> Order:
    return Order(
        id=order_id,
        source=source,
        created_at=created_at,
        display_number=overrides.pop("display_number", f"#{order_id}"),
        order_number=overrides.pop("order_number", order_id),
        financial_status=financial_status,
        **overrides,
    )


def make_line_item(
    line_item_id: str,
    *,
    order_id: str = "1001",
    product_id: str = "P",
    created_at: datetime = T0,
    status: LineItemStatus = LineItemStatus.ACTIVE,
    edition_number: int | None = None,
    edition_total: int | None = None,
    **overrides: Any,
) -> LineItem:
    return LineItem(
        line_item_id=line_item_id,
        order_id=order_id,
        product_id=product_id,
        created_at=created_at,
        status=status,
        edition_number=edition_number,
        edition_total=edition_total,
        **overrides,
    )


def seed(unit_of_work_factory: Callable[[], EditionUnitOfWork], *entities: Order | LineItem) -> None:
    with unit_of_work_factory() as uow:
        for entity in entities:
            if isinstance(entity, Order):
                uow.repositories.orders.add(entity)
        uow.flush()
        for entity in entities:
            if isinstance(entity, LineItem):
                uow.repositories.line_items.add(entity)
        uow.commit()


def seed_product(
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    count: int,
    *,
    product_id: str = "P",
    numbered: bool = False,
) -> list[str]:
    """One paid order per item, created a minute apart; returns the line item ids."""

    entities: list[Order | LineItem] = []
    ids: list[str] = []
    for index in range(1, count + 1):
        order_id = str(1000 + index)
        line_item_id = f"{product_id}-L{index}"
        entities.append(make_order(order_id, created_at=at(index)))
        entities.append(
            make_line_item(
                line_item_id,
                order_id=order_id,
                product_id=product_id,
                created_at=at(index),
                activated_at=at(index),
                edition_number=index if numbered else None,
                edition_total=count if numbered else None,
            )
        )
        ids.append(line_item_id)
    seed(unit_of_work_factory, *entities)
    return ids


def numbers(
    unit_of_work_factory: Callable[[], EditionUnitOfWork], product_id: str = "P"
) -> dict[str, tuple[int | None, int | None]]:
    with unit_of_work_factory() as uow:
        return {
            item.line_item_id: (item.edition_number, item.edition_total)
            for item in uow.repositories.line_items.for_product(product_id)
        }


def events_of(
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    line_item_id: str,
    event_type: EditionEventType | None = None,
) -> list[EditionEvent]:
    with unit_of_work_factory() as uow:
        events = uow.repositories.events.for_line_item(line_item_id)
    return [event for event in events if event_type is None or event.event_type is event_type]


def raw_platform_order(
    order_id: str = "1001",
    *,
    display_number: str | None = None,
    email: str | None = "collector@example.com",
    name: str | None = "Ada Collector",
    financial_status: str | None = "paid",
    fulfillment_status: str | None = None,
    created_at: datetime = T0,
    items: Sequence[tuple[str, str | None]] = (("L1", "P"),),
    refunds: Sequence[RawRefund] = (),
    shipment: RawShipment | None = None,
    sku: str | None = "SKU-P",
) -> RawOrder:
    return RawOrder(
        source=OrderSource.PLATFORM,
        id=order_id,
        created_at=created_at,
        display_number=display_number or f"#{order_id}",
        financial_status=financial_status,
        fulfillment_status=fulfillment_status,
        total_price=Decimal("120.00"),
        currency="EUR",
        customer_email=email,
        customer_name=name,
        processed_at=created_at,
        line_items=tuple(
            RawLineItem(
                line_item_id=line_item_id,
                product_id=product_id,
                sku=sku,
                title="Limited print",
                price=Decimal("120.00"),
            )
            for line_item_id, product_id in items
        ),
        refunds=tuple(refunds),
        shipment=shipment,
        raw_payload={"id": order_id, "financial_status": financial_status},
    )


def raw_warehouse_order(
    warehouse_id: str = "CD1",
    *,
    platform_ref: str | None = "#1001",
    platform_order_id: str | None = None,
    email: str | None = "collector@example.com",
    skus: Sequence[str] = ("SKU-P",),
    tracking_number: str | None = "TRACK-1",
    created_at: datetime = T0,
) -> RawOrder:
    shipment = RawShipment(
        ship_name="Ada Collector",
        ship_email=email,
        ship_phone="+44 20 0000",
        ship_address="1 Gallery Road, London",
        tracking_number=tracking_number,
        carrier="DHL",
        status_code="3",
        status_name="Shipped",
    )
    return RawOrder(
        source=OrderSource.WAREHOUSE,
        id=warehouse_id,
        created_at=created_at,
        display_number=platform_ref,
        financial_status="paid",
        fulfillment_status="fulfilled",
        customer_email=email,
        customer_name="Ada Collector",
        processed_at=created_at,
        line_items=tuple(
            RawLineItem(
                line_item_id=f"WH-{warehouse_id}-{sku}",
                product_id=None,
                sku=sku,
                fulfillment_status="fulfilled",
            )
            for sku in skus
        ),
        shipment=shipment,
        platform_ref=platform_ref,
        platform_order_id=platform_order_id,
        raw_payload={"sys_order_id": warehouse_id, "order_id": platform_ref},
    )


@dataclass
class FakeOrderSource:
    """Order source replaying canned orders, optionally failing after them."""

    name: str
    orders: list[RawOrder] = field(default_factory=list[RawOrder])
    error: Exception | None = None
    cursors: list[datetime] = field(default_factory=list[datetime])
    by_id: dict[str, RawOrder] = field(default_factory=dict[str, RawOrder])
    windows: list[tuple[datetime, datetime]] = field(
        default_factory=list[tuple[datetime, datetime]]
    )

    def fetch_since(self, cursor: datetime) -> Iterator[RawOrder]:
        self.cursors.append(cursor)
        yield from self.orders
        if self.error is not None:
            raise self.error

    def fetch_order(self, order_id: str) -> RawOrder | None:
        if self.error is not None:
            raise self.error
        return self.by_id.get(order_id)

    def fetch_window(self, start: datetime, end: datetime) -> Iterator[RawOrder]:
        self.windows.append((start, end))
        yield from self.orders

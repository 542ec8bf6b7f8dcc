"""Translate warehouse order-info payloads into source-neutral raw orders."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from editionledger.domain.model import (
    FULFILLED,
    WAREHOUSE_ORDER_PREFIX,
    OrderSource,
    normalize_email,
)
from editionledger.domain.ports.fetching import RawLineItem, RawOrder, RawShipment

from .schema import ItemPayload, WarehouseOrderPayload

# Orders reach the warehouse only after payment
WAREHOUSE_FINANCIAL_STATUS = "paid"


def _line_item_ids(order_id: str, items: list[ItemPayload]) -> list[str]:
    """Stable ids for warehouse lines: ``WH-<sys id>-<sku>``, indexed when a sku repeats."""

    ids: list[str] = []
    seen: dict[str, int] = {}
    for index, item in enumerate(items, start=1):
        base = f"{WAREHOUSE_ORDER_PREFIX}{order_id}-{item.sku or index}"
        count = seen.get(base, 0)
        seen[base] = count + 1
        ids.append(base if count == 0 else f"{base}-{count + 1}")
    return ids


def to_raw_order(payload: WarehouseOrderPayload, raw: Mapping[str, Any] | None = None) -> RawOrder:
    if payload.created_at is None:
        raise ValueError(f"Warehouse order {payload.sys_order_id} has no created_at")
    line_items = tuple(
        RawLineItem(
            line_item_id=line_item_id,
            product_id=None,
            title=item.product_name,
            sku=item.sku,
            quantity=item.quantity,
            price=item.price,
            vendor_name=item.supplier,
            fulfillment_status=FULFILLED,
        )
        for line_item_id, item in zip(
            _line_item_ids(payload.sys_order_id, payload.info), payload.info, strict=True
        )
    )
    return RawOrder(
        source=OrderSource.WAREHOUSE,
        id=payload.sys_order_id,
        created_at=payload.created_at,
        display_number=payload.order_id,
        financial_status=WAREHOUSE_FINANCIAL_STATUS,
        fulfillment_status=FULFILLED,
        customer_email=normalize_email(payload.ship_email),
        customer_name=payload.ship_name,
        processed_at=payload.created_at,
        line_items=line_items,
        shipment=RawShipment(
            ship_name=payload.ship_name,
            ship_email=normalize_email(payload.ship_email),
            ship_phone=payload.ship_phone,
            ship_address=payload.formatted_address(),
            tracking_number=payload.tracking_number,
            carrier=payload.carrier,
            status_code=payload.status,
            status_name=payload.status_name,
        ),
        platform_ref=payload.order_id,
        platform_order_id=payload.shopify_order_id,
        raw_payload=dict(raw) if raw is not None else payload.model_dump(mode="json"),
    )


def parse_warehouse_order(data: Mapping[str, Any]) -> RawOrder:
    try:
        payload = WarehouseOrderPayload.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid warehouse order payload: {exc}") from exc
    return to_raw_order(payload, data)

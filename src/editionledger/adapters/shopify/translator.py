"""Translate Shopify order payloads into source-neutral raw orders."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from editionledger.domain.model import OrderSource, normalize_email
from editionledger.domain.ports.fetching import RawLineItem, RawOrder, RawRefund, RawShipment

from .schema import AddressPayload, OrderPayload, PersonPayload

ARCHIVED_TAG = "archived"


def is_archived(payload: OrderPayload) -> bool:
    """Closed, cancelled or explicitly tagged orders count as archived."""

    tags = {tag.strip().lower() for tag in (payload.tags or "").split(",")}
    return (
        ARCHIVED_TAG in tags or payload.closed_at is not None or payload.cancel_reason is not None
    )


def customer_name(payload: OrderPayload) -> str | None:
    people: tuple[PersonPayload | None, ...] = (
        payload.customer,
        payload.shipping_address,
        payload.billing_address,
    )
    for person in people:
        if person is not None and person.full_name:
            return person.full_name
    return None


def customer_email(payload: OrderPayload) -> str | None:
    customer = payload.customer.email if payload.customer else None
    return normalize_email(payload.email or payload.contact_email or customer)


def _shipment(payload: OrderPayload) -> RawShipment | None:
    address: AddressPayload | None = payload.shipping_address
    tracked = next((f for f in payload.fulfillments if f.tracking_number), None)
    if address is None and tracked is None:
        return None
    return RawShipment(
        ship_name=(address.name or address.full_name) if address else None,
        ship_phone=address.phone if address else None,
        ship_address=address.formatted() if address else None,
        tracking_number=tracked.tracking_number if tracked else None,
        carrier=tracked.tracking_company if tracked else None,
    )


def to_raw_order(payload: OrderPayload, raw: Mapping[str, Any] | None = None) -> RawOrder:
    line_items = tuple(
        RawLineItem(
            line_item_id=str(item.id),
            product_id=str(item.product_id) if item.product_id is not None else None,
            variant_id=str(item.variant_id) if item.variant_id is not None else None,
            title=item.title,
            sku=item.sku,
            quantity=item.quantity,
            price=item.price,
            vendor_name=item.vendor,
            fulfillment_status=item.fulfillment_status,
        )
        for item in payload.line_items
    )
    refunds = tuple(
        RawRefund(
            line_item_id=str(refund_line.line_item_id),
            quantity=refund_line.quantity,
            restock=bool(refund.restock),
            restock_type=refund_line.restock_type,
        )
        for refund in payload.refunds
        for refund_line in refund.refund_line_items
    )
    return RawOrder(
        source=OrderSource.PLATFORM,
        id=str(payload.id),
        created_at=payload.created_at,
        display_number=payload.name,
        financial_status=payload.financial_status,
        fulfillment_status=payload.fulfillment_status,
        total_price=payload.total_price,
        currency=payload.currency,
        customer_email=customer_email(payload),
        customer_name=customer_name(payload),
        processed_at=payload.processed_at,
        cancelled_at=payload.cancelled_at,
        archived=is_archived(payload),
        line_items=line_items,
        refunds=refunds,
        shipment=_shipment(payload),
        raw_payload=dict(raw) if raw is not None else payload.model_dump(mode="json"),
    )


def parse_order(data: Mapping[str, Any]) -> RawOrder:
    try:
        payload = OrderPayload.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid Shopify order payload: {exc}") from exc
    return to_raw_order(payload, data)

"""Pydantic models describing the Shopify Admin REST order payloads."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class ShopifyBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PersonPayload(ShopifyBaseModel):
    """Name-bearing parts of a customer or an address."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None

    _normalize = field_validator("first_name", "last_name", "email", mode="before")(
        _blank_to_none
    )

    @property
    def full_name(self) -> str | None:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) or None


class AddressPayload(PersonPayload):
    name: str | None = None
    phone: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province: str | None = None
    zip: str | None = None
    country: str | None = None

    def formatted(self) -> str | None:
        parts = (
            self.address1,
            self.address2,
            self.city,
            self.province,
            self.zip,
            self.country,
        )
        return ", ".join(part for part in parts if part) or None


class LineItemPayload(ShopifyBaseModel):
    id: int
    product_id: int | None = None
    variant_id: int | None = None
    title: str | None = None
    sku: str | None = None
    quantity: int = 1
    price: Decimal | None = None
    vendor: str | None = None
    fulfillment_status: str | None = None

    _normalize_sku = field_validator("sku", mode="before")(_blank_to_none)


class RefundLineItemPayload(ShopifyBaseModel):
    line_item_id: int
    quantity: int = 0
    restock_type: str | None = None


class RefundPayload(ShopifyBaseModel):
    id: int
    restock: bool | None = None
    refund_line_items: list[RefundLineItemPayload] = Field(default_factory=list)


class FulfillmentPayload(ShopifyBaseModel):
    status: str | None = None
    tracking_number: str | None = None
    tracking_company: str | None = None


class OrderPayload(ShopifyBaseModel):
    id: int
    name: str | None = None
    order_number: int | None = None
    email: str | None = None
    contact_email: str | None = None
    financial_status: str | None = None
    fulfillment_status: str | None = None
    total_price: Decimal | None = None
    currency: str | None = None
    tags: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    processed_at: datetime | None = None
    cancelled_at: datetime | None = None
    closed_at: datetime | None = None
    cancel_reason: str | None = None
    customer: PersonPayload | None = None
    shipping_address: AddressPayload | None = None
    billing_address: AddressPayload | None = None
    line_items: list[LineItemPayload] = Field(default_factory=list)
    refunds: list[RefundPayload] = Field(default_factory=list)
    fulfillments: list[FulfillmentPayload] = Field(default_factory=list)

    _normalize = field_validator("email", "contact_email", "cancel_reason", mode="before")(
        _blank_to_none
    )


class OrderEnvelope(ShopifyBaseModel):
    order: OrderPayload

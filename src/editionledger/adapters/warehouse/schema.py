"""Pydantic models describing the warehouse order-info payloads."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _id_to_str(value: object) -> object:
    if isinstance(value, int):
        return str(value)
    return _blank_to_none(value)


class WarehouseBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ItemPayload(WarehouseBaseModel):
    sku: str | None = None
    quantity: int = 1
    price: Decimal | None = None
    product_name: str | None = None
    supplier: str | None = None

    _normalize = field_validator("sku", "price", "product_name", "supplier", mode="before")(
        _blank_to_none
    )


class WarehouseOrderPayload(WarehouseBaseModel):
    sys_order_id: str
    order_id: str | None = None
    shopify_order_id: str | None = None
    ship_email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    ship_phone: str | None = None
    ship_address1: str | None = None
    ship_address2: str | None = None
    ship_city: str | None = None
    ship_state: str | None = None
    ship_zip: str | None = None
    ship_country: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    status: str | None = None
    status_name: str | None = None
    created_at: datetime | None = None
    info: list[ItemPayload] = Field(default_factory=list)

    _normalize_ids = field_validator(
        "sys_order_id", "order_id", "shopify_order_id", "status", mode="before"
    )(_id_to_str)
    _normalize_text = field_validator(
        "ship_email",
        "first_name",
        "last_name",
        "ship_phone",
        "ship_address1",
        "ship_address2",
        "ship_city",
        "ship_state",
        "ship_zip",
        "ship_country",
        "tracking_number",
        "carrier",
        "status_name",
        mode="before",
    )(_blank_to_none)

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, value: object) -> object:
        # the API reports "YYYY-MM-DD HH:MM:SS" in UTC without an offset
        if isinstance(value, str):
            cleaned = value.strip()
            if not cleaned:
                return None
            parsed = datetime.fromisoformat(cleaned.replace(" ", "T", 1))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        return value

    @property
    def ship_name(self) -> str | None:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) or None

    def formatted_address(self) -> str | None:
        parts = (
            self.ship_address1,
            self.ship_address2,
            self.ship_city,
            self.ship_state,
            self.ship_zip,
            self.ship_country,
        )
        return ", ".join(part for part in parts if part) or None


class OrdersInfoPage(WarehouseBaseModel):
    orders: list[dict[str, Any]] = Field(default_factory=list, validation_alias="list")
    page: int = 1
    total_page: int = 1


class OrdersInfoResponse(WarehouseBaseModel):
    """Envelope of every API response; ``code`` other than 0 is an application error."""

    code: int
    msg: str | None = None
    data: OrdersInfoPage | list[dict[str, Any]] | None = None

    def page(self) -> OrdersInfoPage:
        if self.data is None:
            return OrdersInfoPage()
        if isinstance(self.data, list):
            return OrdersInfoPage(orders=self.data)
        return self.data

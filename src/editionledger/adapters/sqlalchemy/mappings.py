"""SQLAlchemy mapping metadata for the ledger domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    Uuid,
    orm,
)

from editionledger.domain.model import (
    EditionEvent,
    EditionEventType,
    LineItem,
    LineItemStatus,
    Order,
    OrderSource,
    RemovalReason,
    SyncKind,
    SyncRun,
    WarehouseRecord,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class DecimalText(TypeDecorator[Decimal]):
    """Money amounts stored as their exact decimal string."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> Decimal | None:
        _ = dialect
        if value is None:
            return None
        return Decimal(value)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

order_table = Table(
    "order",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column("source", Enum(OrderSource, native_enum=False), nullable=False),
    Column("display_number", String, nullable=True, index=True),
    Column("order_number", String, nullable=True, index=True),
    Column("financial_status", String, nullable=True),
    Column("fulfillment_status", String, nullable=True),
    Column("total_price", DecimalText(), nullable=True),
    Column("currency", String(3), nullable=True),
    Column("customer_email", String, nullable=True, index=True),
    Column("customer_name", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("processed_at", UTCDateTime(), nullable=True),
    Column("cancelled_at", UTCDateTime(), nullable=True),
    Column("archived", Boolean, nullable=False, default=False),
    Column("external_ref", String, nullable=True, index=True),
    Column("shipping_name", String, nullable=True),
    Column("shipping_phone", String, nullable=True),
    Column("shipping_address", String, nullable=True),
    Column("tracking_number", String, nullable=True),
    Column("carrier", String, nullable=True),
    Column("shipping_source", Enum(OrderSource, native_enum=False), nullable=True),
    Column("raw_payload", JSON, nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
)

line_item_table = Table(
    "line_item",
    mapper_registry.metadata,
    Column("line_item_id", String, primary_key=True),
    Column(
        "order_id",
        String,
        ForeignKey("order.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("product_id", String, nullable=False, index=True),
    Column("variant_id", String, nullable=True),
    Column("title", String, nullable=True),
    Column("sku", String, nullable=True),
    Column("quantity", Integer, nullable=False, default=1),
    Column("price", DecimalText(), nullable=True),
    Column("vendor_name", String, nullable=True),
    Column("fulfillment_status", String, nullable=True),
    Column("restocked", Boolean, nullable=False, default=False),
    Column("status", Enum(LineItemStatus, native_enum=False), nullable=False),
    Column("edition_number", Integer, nullable=True),
    Column("edition_total", Integer, nullable=True),
    Column("owner_email", String, nullable=True, index=True),
    Column("owner_name", String, nullable=True),
    Column("authenticated_at", UTCDateTime(), nullable=True),
    Column("activated_at", UTCDateTime(), nullable=True),
    Column("removed_reason", Enum(RemovalReason, native_enum=False), nullable=True),
    Column("removed_at", UTCDateTime(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    Index("ix_line_item_product_id_edition_number", "product_id", "edition_number"),
)

# No foreign key to line_item: history outlives superseded placeholder items
edition_event_table = Table(
    "edition_event",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("line_item_id", String, nullable=False, index=True),
    Column("product_id", String, nullable=False, index=True),
    Column("event_type", Enum(EditionEventType, native_enum=False), nullable=False),
    Column("edition_number", Integer, nullable=True),
    Column("payload", JSON, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("created_by", String, nullable=True),
)

warehouse_record_table = Table(
    "warehouse_record",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column("platform_ref", String, nullable=True, index=True),
    Column("platform_order_id", String, nullable=True),
    Column(
        "matched_order_id",
        String,
        ForeignKey("order.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    Column("ship_email", String, nullable=True),
    Column("ship_name", String, nullable=True),
    Column("ship_phone", String, nullable=True),
    Column("ship_address", String, nullable=True),
    Column("tracking_number", String, nullable=True),
    Column("carrier", String, nullable=True),
    Column("status_code", String, nullable=True),
    Column("status_name", String, nullable=True),
    Column("raw_payload", JSON, nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
)

sync_run_table = Table(
    "sync_run",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("kind", Enum(SyncKind, native_enum=False), nullable=False),
    Column("started_at", UTCDateTime(), nullable=False),
    Column("finished_at", UTCDateTime(), nullable=True),
    Column("processed", Integer, nullable=False, default=0),
    Column("skipped", Integer, nullable=False, default=0),
    Column("errored", Integer, nullable=False, default=0),
    Column("first_error", String, nullable=True),
    Column("aborted", Boolean, nullable=False, default=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.debug("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Order, order_table)
    mapper_registry.map_imperatively(LineItem, line_item_table)
    mapper_registry.map_imperatively(EditionEvent, edition_event_table)
    mapper_registry.map_imperatively(WarehouseRecord, warehouse_record_table)
    mapper_registry.map_imperatively(SyncRun, sync_run_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)

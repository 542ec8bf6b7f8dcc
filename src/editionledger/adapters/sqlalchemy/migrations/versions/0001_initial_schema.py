"""Initial ledger schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from editionledger.adapters.sqlalchemy.mappings import DecimalText, UTCDateTime

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Non-native enums are stored as their member names
_ENUM = sa.String(32)


def upgrade() -> None:
    op.create_table(
        "order",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("source", _ENUM, nullable=False),
        sa.Column("display_number", sa.String(), nullable=True),
        sa.Column("order_number", sa.String(), nullable=True),
        sa.Column("financial_status", sa.String(), nullable=True),
        sa.Column("fulfillment_status", sa.String(), nullable=True),
        sa.Column("total_price", DecimalText(), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("customer_email", sa.String(), nullable=True),
        sa.Column("customer_name", sa.String(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("processed_at", UTCDateTime(), nullable=True),
        sa.Column("cancelled_at", UTCDateTime(), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False),
        sa.Column("external_ref", sa.String(), nullable=True),
        sa.Column("shipping_name", sa.String(), nullable=True),
        sa.Column("shipping_phone", sa.String(), nullable=True),
        sa.Column("shipping_address", sa.String(), nullable=True),
        sa.Column("tracking_number", sa.String(), nullable=True),
        sa.Column("carrier", sa.String(), nullable=True),
        sa.Column("shipping_source", _ENUM, nullable=True),
        sa.Column("raw_payload", sa.JSON(), nullable=True),
        sa.Column("updated_at", UTCDateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_order")),
    )
    op.create_index(op.f("ix_order_display_number"), "order", ["display_number"])
    op.create_index(op.f("ix_order_order_number"), "order", ["order_number"])
    op.create_index(op.f("ix_order_customer_email"), "order", ["customer_email"])
    op.create_index(op.f("ix_order_external_ref"), "order", ["external_ref"])

    op.create_table(
        "line_item",
        sa.Column("line_item_id", sa.String(), nullable=False),
        sa.Column("order_id", sa.String(), nullable=False),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("variant_id", sa.String(), nullable=True),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("sku", sa.String(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", DecimalText(), nullable=True),
        sa.Column("vendor_name", sa.String(), nullable=True),
        sa.Column("fulfillment_status", sa.String(), nullable=True),
        sa.Column("restocked", sa.Boolean(), nullable=False),
        sa.Column("status", _ENUM, nullable=False),
        sa.Column("edition_number", sa.Integer(), nullable=True),
        sa.Column("edition_total", sa.Integer(), nullable=True),
        sa.Column("owner_email", sa.String(), nullable=True),
        sa.Column("owner_name", sa.String(), nullable=True),
        sa.Column("authenticated_at", UTCDateTime(), nullable=True),
        sa.Column("activated_at", UTCDateTime(), nullable=True),
        sa.Column("removed_reason", _ENUM, nullable=True),
        sa.Column("removed_at", UTCDateTime(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=True),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["order.id"],
            name=op.f("fk_line_item_order_id_order"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("line_item_id", name=op.f("pk_line_item")),
    )
    op.create_index(op.f("ix_line_item_order_id"), "line_item", ["order_id"])
    op.create_index(op.f("ix_line_item_product_id"), "line_item", ["product_id"])
    op.create_index(op.f("ix_line_item_owner_email"), "line_item", ["owner_email"])
    op.create_index(
        "ix_line_item_product_id_edition_number", "line_item", ["product_id", "edition_number"]
    )

    op.create_table(
        "edition_event",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("line_item_id", sa.String(), nullable=False),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("event_type", _ENUM, nullable=False),
        sa.Column("edition_number", sa.Integer(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_edition_event")),
    )
    op.create_index(op.f("ix_edition_event_line_item_id"), "edition_event", ["line_item_id"])
    op.create_index(op.f("ix_edition_event_product_id"), "edition_event", ["product_id"])

    op.create_table(
        "warehouse_record",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("platform_ref", sa.String(), nullable=True),
        sa.Column("platform_order_id", sa.String(), nullable=True),
        sa.Column("matched_order_id", sa.String(), nullable=True),
        sa.Column("ship_email", sa.String(), nullable=True),
        sa.Column("ship_name", sa.String(), nullable=True),
        sa.Column("ship_phone", sa.String(), nullable=True),
        sa.Column("ship_address", sa.String(), nullable=True),
        sa.Column("tracking_number", sa.String(), nullable=True),
        sa.Column("carrier", sa.String(), nullable=True),
        sa.Column("status_code", sa.String(), nullable=True),
        sa.Column("status_name", sa.String(), nullable=True),
        sa.Column("raw_payload", sa.JSON(), nullable=True),
        sa.Column("updated_at", UTCDateTime(), nullable=True),
        sa.ForeignKeyConstraint(
            ["matched_order_id"],
            ["order.id"],
            name=op.f("fk_warehouse_record_matched_order_id_order"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_warehouse_record")),
    )
    op.create_index(op.f("ix_warehouse_record_platform_ref"), "warehouse_record", ["platform_ref"])
    op.create_index(
        op.f("ix_warehouse_record_matched_order_id"), "warehouse_record", ["matched_order_id"]
    )

    op.create_table(
        "sync_run",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("kind", _ENUM, nullable=False),
        sa.Column("started_at", UTCDateTime(), nullable=False),
        sa.Column("finished_at", UTCDateTime(), nullable=True),
        sa.Column("processed", sa.Integer(), nullable=False),
        sa.Column("skipped", sa.Integer(), nullable=False),
        sa.Column("errored", sa.Integer(), nullable=False),
        sa.Column("first_error", sa.String(), nullable=True),
        sa.Column("aborted", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_sync_run")),
    )


def downgrade() -> None:
    op.drop_table("sync_run")
    op.drop_index(op.f("ix_warehouse_record_matched_order_id"), table_name="warehouse_record")
    op.drop_index(op.f("ix_warehouse_record_platform_ref"), table_name="warehouse_record")
    op.drop_table("warehouse_record")
    op.drop_index(op.f("ix_edition_event_product_id"), table_name="edition_event")
    op.drop_index(op.f("ix_edition_event_line_item_id"), table_name="edition_event")
    op.drop_table("edition_event")
    op.drop_index("ix_line_item_product_id_edition_number", table_name="line_item")
    op.drop_index(op.f("ix_line_item_owner_email"), table_name="line_item")
    op.drop_index(op.f("ix_line_item_product_id"), table_name="line_item")
    op.drop_index(op.f("ix_line_item_order_id"), table_name="line_item")
    op.drop_table("line_item")
    op.drop_index(op.f("ix_order_external_ref"), table_name="order")
    op.drop_index(op.f("ix_order_customer_email"), table_name="order")
    op.drop_index(op.f("ix_order_order_number"), table_name="order")
    op.drop_index(op.f("ix_order_display_number"), table_name="order")
    op.drop_table("order")

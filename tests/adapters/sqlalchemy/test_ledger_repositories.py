"""Tests for the SQLAlchemy repositories and unit of work."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from editionledger.adapters.sqlalchemy import (
    SqlAlchemyEditionUnitOfWork,
    StartupError,
    create_all_tables,
)
from editionledger.domain.model import (
    EditionEvent,
    EditionEventType,
    LineItemStatus,
    OrderSource,
    RemovalReason,
    WarehouseRecord,
)
from tests.helpers.ledger_data import T0, at, make_line_item, make_order, seed

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine

    UowFactory = Callable[[], SqlAlchemyEditionUnitOfWork]


def test_order_round_trip_keeps_types(uow_factory: UowFactory) -> None:
    seed(
        uow_factory,
        make_order(
            "1001",
            total_price=Decimal("120.10"),
            currency="EUR",
            raw_payload={"id": 1001, "tags": ["limited"]},
        ),
        make_line_item(
            "L1", price=Decimal("60.05"), removed_reason=RemovalReason.MANUAL, created_at=T0
        ),
    )

    with uow_factory() as uow:
        order = uow.repositories.orders.get("1001")
        item = uow.repositories.line_items.get("L1")

    assert order is not None
    assert order.source is OrderSource.PLATFORM
    assert order.total_price == Decimal("120.10")
    assert order.raw_payload == {"id": 1001, "tags": ["limited"]}
    assert order.created_at == T0
    assert order.created_at.tzinfo is not None
    assert item is not None
    assert item.status is LineItemStatus.ACTIVE
    assert item.removed_reason is RemovalReason.MANUAL
    assert item.price == Decimal("60.05")


def test_order_lookups_filter_by_source(uow_factory: UowFactory) -> None:
    seed(
        uow_factory,
        make_order("1001", display_number="#1001", order_number="1001"),
        make_order(
            "WH-CD1",
            source=OrderSource.WAREHOUSE,
            display_number="#1001",
            order_number="1001",
            external_ref="#1001",
        ),
    )

    with uow_factory() as uow:
        orders = uow.repositories.orders
        by_display = orders.find_by_display_number("#1001")
        platform_only = orders.find_by_display_number("#1001", source=OrderSource.PLATFORM)
        warehouse_numbers = orders.find_by_order_number("1001", source=OrderSource.WAREHOUSE)
        by_ref = orders.find_by_external_ref("#1001")

    assert [order.id for order in by_display] == ["1001", "WH-CD1"]
    assert [order.id for order in platform_only] == ["1001"]
    assert [order.id for order in warehouse_numbers] == ["WH-CD1"]
    assert [order.id for order in by_ref] == ["WH-CD1"]


def test_line_item_queries(uow_factory: UowFactory) -> None:
    seed(
        uow_factory,
        make_order("1001"),
        make_order("WH-CD1", source=OrderSource.WAREHOUSE),
        make_line_item("L2", created_at=at(2), sku="SKU-P", owner_email="ada@example.com"),
        make_line_item("L1", created_at=at(1), sku="SKU-P"),
        make_line_item("Q1", product_id="Q", sku="SKU-Q", owner_email="ada@example.com"),
        make_line_item("WH-1", order_id="WH-CD1", product_id="R", sku="SKU-Q", created_at=at(9)),
    )

    with uow_factory() as uow:
        items = uow.repositories.line_items
        assert [item.line_item_id for item in items.for_product("P")] == ["L1", "L2"]
        assert [item.line_item_id for item in items.for_order("1001")] == ["L1", "L2", "Q1"]
        assert items.product_ids() == ["P", "Q", "R"]
        assert [item.line_item_id for item in items.owned_by("ada@example.com")] == ["L2", "Q1"]
        assert items.product_id_for_sku("SKU-P") == "P"
        # warehouse lines never teach the sku mapping
        assert items.product_id_for_sku("SKU-Q") == "Q"
        assert items.product_id_for_sku("SKU-X") is None


def test_products_needing_numbers(uow_factory: UowFactory) -> None:
    seed(
        uow_factory,
        make_order("1001"),
        make_line_item("P1", edition_number=1, edition_total=1),
        make_line_item("Q1", product_id="Q"),
        make_line_item(
            "R1",
            product_id="R",
            status=LineItemStatus.INACTIVE,
            edition_number=1,
            edition_total=1,
        ),
        make_line_item("S1", product_id="S", status=LineItemStatus.INACTIVE),
    )

    with uow_factory() as uow:
        assert uow.repositories.line_items.products_needing_numbers() == ["Q", "R"]


def test_events_are_listed_in_write_order(uow_factory: UowFactory) -> None:
    seed(uow_factory, make_order("1001"), make_line_item("L1"), make_line_item("L2"))
    with uow_factory() as uow:
        events = uow.repositories.events
        events.add(
            EditionEvent(
                line_item_id="L1",
                product_id="P",
                event_type=EditionEventType.ASSIGNED,
                edition_number=1,
            )
        )
        uow.flush()
        events.add(
            EditionEvent(
                line_item_id="L2",
                product_id="P",
                event_type=EditionEventType.ASSIGNED,
                edition_number=2,
            )
        )
        uow.flush()
        events.add(
            EditionEvent(
                line_item_id="L1",
                product_id="P",
                event_type=EditionEventType.OWNERSHIP_TRANSFER,
                edition_number=1,
                payload={"to_email": "bob@example.com"},
            )
        )
        uow.commit()

    with uow_factory() as uow:
        events = uow.repositories.events
        history = events.for_line_item("L1")
        transfers = events.for_line_item(
            "L1", event_types=(EditionEventType.OWNERSHIP_TRANSFER,)
        )
        product = events.for_product("P")

    assert [event.event_type for event in history] == [
        EditionEventType.ASSIGNED,
        EditionEventType.OWNERSHIP_TRANSFER,
    ]
    assert [event.payload for event in transfers] == [{"to_email": "bob@example.com"}]
    assert [event.line_item_id for event in product] == ["L1", "L2", "L1"]
    assert all(event.id is not None for event in product)


def test_warehouse_records_by_order_and_platform_id(uow_factory: UowFactory) -> None:
    seed(uow_factory, make_order("1001"))
    with uow_factory() as uow:
        records = uow.repositories.warehouse_records
        records.add(WarehouseRecord(id="CD2", platform_order_id="1001", matched_order_id="1001"))
        records.add(WarehouseRecord(id="CD1", platform_order_id="1001"))
        uow.commit()

    with uow_factory() as uow:
        records = uow.repositories.warehouse_records
        assert [record.id for record in records.for_order("1001")] == ["CD2"]
        assert [record.id for record in records.find_by_platform_order_id("1001")] == [
            "CD1",
            "CD2",
        ]


def test_unit_of_work_rolls_back_on_error(uow_factory: UowFactory) -> None:
    with pytest.raises(RuntimeError, match="boom"), uow_factory() as uow:
        uow.repositories.orders.add(make_order("1001"))
        uow.flush()
        raise RuntimeError("boom")

    with uow_factory() as uow:
        assert uow.repositories.orders.get("1001") is None


def test_unit_of_work_without_commit_discards_changes(uow_factory: UowFactory) -> None:
    with uow_factory() as uow:
        uow.repositories.orders.add(make_order("1001"))

    with uow_factory() as uow:
        assert uow.repositories.orders.get("1001") is None


def test_unit_of_work_outside_block_raises(uow_factory: UowFactory) -> None:
    uow = uow_factory()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_delete_removes_placeholder_rows(uow_factory: UowFactory) -> None:
    seed(
        uow_factory,
        make_order("WH-CD1", source=OrderSource.WAREHOUSE),
        make_line_item("WH-CD1-SKU", order_id="WH-CD1"),
    )

    with uow_factory() as uow:
        repos = uow.repositories
        item = repos.line_items.get("WH-CD1-SKU")
        assert item is not None
        repos.line_items.delete(item)
        uow.flush()
        order = repos.orders.get("WH-CD1")
        assert order is not None
        repos.orders.delete(order)
        uow.commit()

    with uow_factory() as uow:
        assert uow.repositories.orders.get("WH-CD1") is None
        assert uow.repositories.line_items.get("WH-CD1-SKU") is None


def test_migrations_match_mapped_metadata(sqlite_engine: Engine, uow_factory: UowFactory) -> None:
    _ = uow_factory  # migrated through the database fixture
    reference = create_engine("sqlite+pysqlite:///:memory:")
    create_all_tables(reference)

    migrated = inspect(sqlite_engine)
    mapped = inspect(reference)
    tables = set(mapped.get_table_names())

    assert tables <= set(migrated.get_table_names())
    for table in tables:
        assert {column["name"] for column in migrated.get_columns(table)} == {
            column["name"] for column in mapped.get_columns(table)
        }, table

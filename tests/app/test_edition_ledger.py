from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from editionledger.adapters.shopify import ShopifyOrderFetcher
from editionledger.adapters.sqlalchemy import InProcessProductLocks
from editionledger.adapters.warehouse import WarehouseOrderFetcher
from editionledger.app import OPERATOR, SourceNotConfiguredError, build_ledger
from editionledger.config import SyncConfig
from editionledger.domain.errors import RevokeOnUnassigned
from editionledger.domain.model import EditionEventType, LineItemStatus, RemovalReason
from tests.helpers.ledger_data import (
    FakeOrderSource,
    at,
    events_of,
    make_line_item,
    make_order,
    numbers,
    raw_platform_order,
    raw_warehouse_order,
    seed,
    seed_product,
)

if TYPE_CHECKING:
    from editionledger.adapters.sqlalchemy import Database
    from editionledger.app import EditionLedger


def test_manual_sync_requires_a_source(ledger: EditionLedger) -> None:
    with pytest.raises(SourceNotConfiguredError):
        ledger.trigger_manual_sync()


def test_single_order_sync_requires_the_platform(ledger: EditionLedger) -> None:
    ledger.warehouse = FakeOrderSource("warehouse")

    with pytest.raises(SourceNotConfiguredError):
        ledger.sync_single_order("1001")


def test_manual_sync_merges_sources_and_numbers_items(ledger: EditionLedger) -> None:
    ledger.platform = FakeOrderSource(
        "shopify",
        [
            raw_platform_order("1001", created_at=at(1), items=(("L1", "P"),)),
            raw_platform_order("1002", created_at=at(2), items=(("L2", "P"),)),
        ],
    )
    ledger.warehouse = FakeOrderSource(
        "warehouse", [raw_warehouse_order("CD1", platform_order_id="1002")]
    )

    result = ledger.trigger_manual_sync()

    assert (result.processed, result.errored, result.aborted) == (3, 0, False)
    factory = ledger.unit_of_work
    assert numbers(factory) == {"L1": (1, 2), "L2": (2, 2)}
    assigned = events_of(factory, "L2", EditionEventType.ASSIGNED)
    assert [event.created_by for event in assigned] == [OPERATOR]
    with factory() as uow:
        merged = uow.repositories.orders.get("1002")
        assert merged is not None
        assert merged.tracking_number == "TRACK-1"
        assert merged.financial_status == "paid"
        assert uow.repositories.orders.get("WH-CD1") is None


def test_scenario_assign_then_revoke(ledger: EditionLedger) -> None:
    first, second, third = seed_product(ledger.unit_of_work, 3)

    assigned = ledger.assign_edition_numbers("P")
    revoked = ledger.revoke_edition(second)

    assert assigned.events_emitted == 3
    assert revoked.revoked_number == 2
    assert numbers(ledger.unit_of_work) == {first: (1, 2), second: (None, None), third: (2, 2)}
    with pytest.raises(RevokeOnUnassigned):
        ledger.revoke_edition(second)


def test_force_sync_recomputes_status_before_numbering(ledger: EditionLedger) -> None:
    seed(
        ledger.unit_of_work,
        make_order("1001"),
        make_order("1002", financial_status="voided"),
        make_line_item("L1", edition_number=1, edition_total=2),
        make_line_item("L2", order_id="1002", edition_number=2, edition_total=2),
    )

    plain = ledger.assign_edition_numbers("P")
    forced = ledger.assign_edition_numbers("P", force_sync=True)

    assert plain.events_emitted == 0
    assert forced.status_changes == 1
    assert numbers(ledger.unit_of_work) == {"L1": (1, 1), "L2": (None, None)}


def test_deactivate_records_reason(ledger: EditionLedger) -> None:
    first, second = seed_product(ledger.unit_of_work, 2)
    ledger.assign_edition_numbers("P")

    result = ledger.deactivate_line_item(first, RemovalReason.REFUNDED, notes="chargeback")

    assert result.previous_number == 1
    assert result.previous_status is LineItemStatus.ACTIVE
    record = ledger.verify_edition(first)
    assert record.status is LineItemStatus.INACTIVE
    assert record.removed_reason is RemovalReason.REFUNDED
    assert ledger.verify_edition(second).edition_number == 1


def test_verification_operations_read_the_ledger(ledger: EditionLedger) -> None:
    (item,) = seed_product(ledger.unit_of_work, 1)
    ledger.assign_edition_numbers("P")
    ledger.transfer_ownership(item, email="bob@example.com", name="Bob")
    ledger.record_authentication(item)

    assert ledger.verify_edition(item).is_authenticated
    assert len(ledger.get_edition_history(item)) == 3
    assert len(ledger.get_ownership_history(item)) == 1
    collected = ledger.get_collector_editions("bob@example.com")
    assert [record.line_item_id for record in collected] == [item]
    snapshot = ledger.list_product_editions("P", include_history=True)
    assert snapshot.history is not None
    assert len(snapshot.history[item]) == 3
    assert ledger.validate_data_integrity().ok


def test_duplicates_are_logged_not_repaired(
    ledger: EditionLedger, caplog: pytest.LogCaptureFixture
) -> None:
    seed(
        ledger.unit_of_work,
        make_order("1001"),
        make_line_item("L1", edition_number=1, edition_total=2),
        make_line_item("L2", edition_number=1, edition_total=2),
    )

    with caplog.at_level(logging.ERROR, logger="editionledger.app"):
        report = ledger.check_duplicates("P")

    assert report.duplicates == {1: ["L1", "L2"]}
    assert "Duplicate edition numbers for P" in caplog.text
    assert numbers(ledger.unit_of_work) == {"L1": (1, 2), "L2": (1, 2)}
    assert not ledger.validate_data_integrity("P").ok


def test_build_ledger_without_sources(database: Database) -> None:
    ledger = build_ledger(with_sources=False, database=database, sync_config=SyncConfig())

    assert ledger.platform is None
    assert ledger.warehouse is None
    assert isinstance(ledger.locks, InProcessProductLocks)


def test_build_ledger_wires_sources_from_environment(
    database: Database, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("SHOPIFY_SHOP_DOMAIN", "gallery.myshopify.com")
    monkeypatch.setenv("SHOPIFY_ADMIN_ACCESS_TOKEN", "shpat-test")
    monkeypatch.setenv("WAREHOUSE_API_KEY", "wh-key")
    monkeypatch.setenv("EDITIONLEDGER_COMPOSITE_MATCH", "false")

    ledger = build_ledger(database=database)

    assert isinstance(ledger.platform, ShopifyOrderFetcher)
    assert isinstance(ledger.warehouse, WarehouseOrderFetcher)
    assert not ledger.sync_config.allow_composite_match

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from editionledger.config import SyncConfig
from editionledger.domain.errors import AuthError, TransientUpstreamError
from editionledger.domain.model import SyncKind, SyncRun
from editionledger.domain.reconciliation import OrderReconciler
from editionledger.domain.sync import sync_cursor, sync_orders, sync_single_order
from tests.helpers.ledger_data import (
    FakeOrderSource,
    at,
    make_order,
    numbers,
    raw_platform_order,
    raw_warehouse_order,
    seed,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from editionledger.adapters.sqlalchemy import InProcessProductLocks, SqlAlchemyEditionUnitOfWork
    from editionledger.domain.ports.fetching import OrderFetcher

    UowFactory = Callable[[], SqlAlchemyEditionUnitOfWork]

CONFIG = SyncConfig()


def test_sync_reconciles_and_numbers_new_orders(
    uow_factory: UowFactory, locks: InProcessProductLocks
) -> None:
    platform = FakeOrderSource(
        "shopify",
        [
            raw_platform_order("1001", created_at=at(1), items=(("L1", "P"),)),
            raw_platform_order("1002", created_at=at(2), items=(("L2", "P"),)),
        ],
    )
    warehouse = FakeOrderSource("warehouse", [raw_warehouse_order(platform_order_id="1001")])

    result = sync_orders(
        fetchers=[platform, warehouse],
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=OrderReconciler(),
        config=CONFIG,
        now=at(60),
    )

    assert result.processed == 3
    assert result.errored == 0
    assert result.first_error is None
    assert result.resequenced_products == ["P"]
    assert numbers(uow_factory) == {"L1": (1, 2), "L2": (2, 2)}
    assert platform.cursors == [at(60) - CONFIG.default_lookback]


def test_unchanged_records_are_counted_as_skipped(
    uow_factory: UowFactory, locks: InProcessProductLocks
) -> None:
    platform = FakeOrderSource("shopify", [raw_platform_order()])
    sync_orders(
        fetchers=[platform],
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=OrderReconciler(),
        config=CONFIG,
        now=at(60),
    )

    again = sync_orders(
        fetchers=[platform],
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=OrderReconciler(),
        config=CONFIG,
        now=at(120),
    )

    assert again.processed == 0
    assert again.skipped == 1
    assert again.resequenced_products == []
    assert platform.cursors[-1] == at(60) - CONFIG.cursor_buffer


def test_sync_cursor_uses_last_completed_manual_run(uow_factory: UowFactory) -> None:
    with uow_factory() as uow:
        runs = uow.repositories.sync_runs
        runs.add(SyncRun(kind=SyncKind.MANUAL, started_at=at(0), finished_at=at(1)))
        runs.add(
            SyncRun(kind=SyncKind.MANUAL, started_at=at(10), finished_at=at(11), aborted=True)
        )
        runs.add(SyncRun(kind=SyncKind.SINGLE_ORDER, started_at=at(20), finished_at=at(21)))
        runs.add(SyncRun(kind=SyncKind.MANUAL, started_at=at(30)))
        uow.commit()

    with uow_factory() as uow:
        cursor = sync_cursor(uow.repositories.sync_runs, CONFIG, at(60))

    assert cursor == at(0) - timedelta(minutes=5)


def test_auth_error_aborts_the_run(uow_factory: UowFactory, locks: InProcessProductLocks) -> None:
    platform = FakeOrderSource(
        "shopify",
        [raw_platform_order()],
        error=AuthError("shopify responded 401", source="shopify", status_code=401),
    )
    warehouse = FakeOrderSource("warehouse", [raw_warehouse_order()])

    result = sync_orders(
        fetchers=[platform, warehouse],
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=OrderReconciler(),
        config=CONFIG,
        now=at(60),
    )

    assert result.aborted
    assert result.processed == 1
    assert result.first_error == "shopify: shopify responded 401"
    assert warehouse.cursors == []
    # the order reconciled before the failure is kept and numbered
    assert numbers(uow_factory) == {"L1": (1, 1)}
    with uow_factory() as uow:
        assert uow.repositories.sync_runs.latest_completed(SyncKind.MANUAL) is None


def test_transient_error_stops_only_that_stream(
    uow_factory: UowFactory, locks: InProcessProductLocks
) -> None:
    platform = FakeOrderSource(
        "shopify",
        [raw_platform_order()],
        error=TransientUpstreamError("shopify responded 503", source="shopify", status_code=503),
    )
    warehouse = FakeOrderSource("warehouse", [raw_warehouse_order(platform_order_id="1001")])

    result = sync_orders(
        fetchers=[platform, warehouse],
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=OrderReconciler(),
        config=CONFIG,
        now=at(60),
    )

    assert not result.aborted
    assert result.processed == 2
    assert result.first_error == "shopify: shopify responded 503"
    assert warehouse.cursors == [at(60) - CONFIG.default_lookback]


def test_failing_record_is_counted_and_sync_continues(
    uow_factory: UowFactory,
    locks: InProcessProductLocks,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    reconciler = OrderReconciler()
    original = reconciler.reconcile

    def flaky(uow: object, raw: object) -> object:
        if getattr(raw, "id", None) == "1001":
            raise RuntimeError("boom")
        return original(uow, raw)  # type: ignore[arg-type]

    monkeypatch.setattr(reconciler, "reconcile", flaky)
    platform = FakeOrderSource(
        "shopify",
        [
            raw_platform_order("1001", items=(("L1", "P"),)),
            raw_platform_order("1002", items=(("L2", "P"),)),
        ],
    )

    result = sync_orders(
        fetchers=[platform],
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=reconciler,
        config=CONFIG,
        now=at(60),
    )

    assert result.errored == 1
    assert result.processed == 1
    assert result.first_error == "platform order 1001: boom"
    assert numbers(uow_factory) == {"L2": (1, 1)}


def test_ambiguous_records_are_reported(
    uow_factory: UowFactory, locks: InProcessProductLocks
) -> None:
    seed(
        uow_factory,
        make_order("1001", display_number="#1001"),
        make_order("1002", display_number="#1001"),
    )
    warehouse = FakeOrderSource("warehouse", [raw_warehouse_order(platform_ref="#1001")])

    result = sync_orders(
        fetchers=[warehouse],
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=OrderReconciler(),
        config=CONFIG,
        now=at(60),
    )

    assert result.ambiguous_matches == ["CD1"]
    assert result.errored == 0


def test_sequencing_conflict_is_reported_and_retried_next_sync(
    uow_factory: UowFactory, locks: InProcessProductLocks
) -> None:
    platform = FakeOrderSource("shopify", [raw_platform_order()])
    impatient = type(locks)(timeout=0.01)

    with impatient.hold("P"):
        result = sync_orders(
            fetchers=[platform],
            unit_of_work_factory=uow_factory,
            locks=impatient,
            reconciler=OrderReconciler(),
            config=CONFIG,
            now=at(60),
        )

    assert (result.processed, result.errored) == (1, 1)
    assert result.resequenced_products == []
    assert result.first_error == "resequence P: resequence in progress for product P"
    assert numbers(uow_factory) == {"L1": (None, None)}

    retry = sync_orders(
        fetchers=[FakeOrderSource("shopify", [])],
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=OrderReconciler(),
        config=CONFIG,
        now=at(61),
    )

    assert retry.resequenced_products == ["P"]
    assert retry.errored == 0
    assert numbers(uow_factory) == {"L1": (1, 1)}


def test_single_order_sync_pulls_matching_warehouse_records(
    uow_factory: UowFactory, locks: InProcessProductLocks
) -> None:
    platform = FakeOrderSource("shopify", by_id={"1001": raw_platform_order(created_at=at(0))})
    warehouse = FakeOrderSource(
        "warehouse",
        [
            raw_warehouse_order("CD1", platform_ref="#1001"),
            raw_warehouse_order("CD2", platform_ref="#5555", email="other@example.com"),
        ],
    )

    result = sync_single_order(
        "1001",
        platform=platform,
        warehouse=warehouse,
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=OrderReconciler(),
        config=CONFIG,
        now=at(60),
    )

    assert result.processed == 2
    assert warehouse.windows == [(at(0) - timedelta(days=3), at(0) + timedelta(days=3))]
    with uow_factory() as uow:
        assert uow.repositories.warehouse_records.get("CD1") is not None
        assert uow.repositories.warehouse_records.get("CD2") is None
        assert uow.repositories.sync_runs.latest_completed(SyncKind.SINGLE_ORDER) is not None
    assert numbers(uow_factory) == {"L1": (1, 1)}


def test_single_order_missing_upstream_is_archived(
    uow_factory: UowFactory, locks: InProcessProductLocks
) -> None:
    seed(uow_factory, make_order("1001"))
    platform = FakeOrderSource("shopify")

    result = sync_single_order(
        "1001",
        platform=platform,
        warehouse=None,
        unit_of_work_factory=uow_factory,
        locks=locks,
        reconciler=OrderReconciler(),
        config=CONFIG,
    )

    assert result.processed == 1
    with uow_factory() as uow:
        order = uow.repositories.orders.get("1001")
    assert order is not None
    assert order.archived

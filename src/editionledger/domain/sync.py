"""Pull changed orders from the upstream sources and bring the ledger up to date."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from editionledger.domain.errors import (
    AuthError,
    SequencingConflict,
    TransientUpstreamError,
)
from editionledger.domain.model import OrderSource, SyncKind, SyncRun
from editionledger.domain.sequencing import resequence_product

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from editionledger.config import SyncConfig
    from editionledger.domain.ports.fetching import (
        OrderFetcher,
        PlatformOrderLookup,
        RawOrder,
        WarehouseWindowLookup,
    )
    from editionledger.domain.ports.locking import ProductLockManager
    from editionledger.domain.ports.persistence import SyncRunRepository
    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork
    from editionledger.domain.reconciliation import OrderReconciler

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class SyncResult:
    """Outcome of one sync trigger."""

    processed: int = 0
    skipped: int = 0
    errored: int = 0
    first_error: str | None = None
    aborted: bool = False
    resequenced_products: list[str] = field(default_factory=list[str])
    ambiguous_matches: list[str] = field(default_factory=list[str])

    def note_error(self, message: str) -> None:
        if self.first_error is None:
            self.first_error = message


@dataclass(frozen=True, slots=True)
class _SyncContext:
    unit_of_work_factory: Callable[[], EditionUnitOfWork]
    locks: ProductLockManager
    reconciler: OrderReconciler
    created_by: str | None


def sync_cursor(runs: SyncRunRepository, config: SyncConfig, now: datetime) -> datetime:
    """Start of the fetch window: the last completed manual run, less a safety buffer."""

    last = runs.latest_completed(SyncKind.MANUAL)
    if last is None:
        return now - config.default_lookback
    return last.started_at - config.cursor_buffer


def _reconcile_one(
    context: _SyncContext,
    raw: RawOrder,
    result: SyncResult,
    dirty: set[str],
) -> None:
    try:
        with context.unit_of_work_factory() as uow:
            outcome = context.reconciler.reconcile(uow, raw)
            uow.commit()
    except Exception as exc:  # noqa: BLE001
        log.exception(f"Failed to reconcile {raw.source} order {raw.id}")
        result.errored += 1
        result.note_error(f"{raw.source} order {raw.id}: {exc}")
        return

    if outcome.ambiguity is not None:
        result.ambiguous_matches.append(raw.id)
    if outcome.changed:
        result.processed += 1
    else:
        result.skipped += 1
    dirty.update(outcome.dirty_products)


def _consume(
    context: _SyncContext,
    name: str,
    stream: Iterable[RawOrder],
    result: SyncResult,
    dirty: set[str],
) -> bool:
    """Reconcile a stream until it ends; ``False`` when the whole run must stop."""

    seen = 0
    try:
        for raw in stream:
            seen += 1
            _reconcile_one(context, raw, result, dirty)
    except AuthError as exc:
        log.error(f"{name} rejected our credentials, aborting sync: {exc}")
        result.note_error(f"{name}: {exc}")
        result.aborted = True
        return False
    except TransientUpstreamError as exc:
        log.warning(f"{name} stream stopped after {seen} records: {exc}")
        result.note_error(f"{name}: {exc}")
    return True


def _resequence_dirty(context: _SyncContext, dirty: set[str], result: SyncResult) -> None:
    for product_id in sorted(dirty):
        try:
            resequence_product(
                product_id,
                unit_of_work_factory=context.unit_of_work_factory,
                locks=context.locks,
                created_by=context.created_by,
            )
        except SequencingConflict as exc:
            log.warning(f"Could not resequence {product_id}: {exc}")
            result.errored += 1
            result.note_error(f"resequence {product_id}: {exc}")
            continue
        except Exception as exc:  # noqa: BLE001
            log.exception(f"Failed to resequence {product_id}")
            result.errored += 1
            result.note_error(f"resequence {product_id}: {exc}")
            continue
        result.resequenced_products.append(product_id)


def _record_run(
    context: _SyncContext,
    kind: SyncKind,
    started_at: datetime,
    result: SyncResult,
) -> None:
    with context.unit_of_work_factory() as uow:
        uow.repositories.sync_runs.add(
            SyncRun(
                kind=kind,
                started_at=started_at,
                finished_at=_utcnow(),
                processed=result.processed,
                skipped=result.skipped,
                errored=result.errored,
                first_error=result.first_error,
                aborted=result.aborted,
            )
        )
        uow.commit()


def _summary(label: str, result: SyncResult) -> str:
    return (
        f"Finished {label}: processed={result.processed}, skipped={result.skipped}, "
        f"errored={result.errored}, resequenced={len(result.resequenced_products)}, "
        f"ambiguous={len(result.ambiguous_matches)}, aborted={result.aborted}"
    )


def sync_orders(
    *,
    fetchers: Sequence[OrderFetcher],
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    locks: ProductLockManager,
    reconciler: OrderReconciler,
    config: SyncConfig,
    created_by: str | None = None,
    now: datetime | None = None,
) -> SyncResult:
    """Fetch everything changed since the last run from each source, in order.

    Platform sources should come first so that warehouse records find the orders they
    ship. Every record is committed on its own; a failing source keeps what it
    already delivered. Products whose numbering an earlier run failed to bring up to
    date are resequenced along with the ones this run touches.
    """

    started_at = now or _utcnow()
    context = _SyncContext(unit_of_work_factory, locks, reconciler, created_by)
    with unit_of_work_factory() as uow:
        cursor = sync_cursor(uow.repositories.sync_runs, config, started_at)
        # left behind by earlier runs whose resequence failed
        pending = uow.repositories.line_items.products_needing_numbers()
    if pending:
        log.info(f"Resequencing products left out of date: {', '.join(pending)}")
    log.info(
        f"Starting sync since {cursor.isoformat()} from "
        f"{', '.join(fetcher.name for fetcher in fetchers)}"
    )

    result = SyncResult()
    dirty = set(pending)
    for fetcher in fetchers:
        if not _consume(context, fetcher.name, fetcher.fetch_since(cursor), result, dirty):
            break

    # numbering follows whatever was committed, even after an aborted fetch
    _resequence_dirty(context, dirty, result)
    _record_run(context, SyncKind.MANUAL, started_at, result)
    log.info(_summary("sync", result))
    return result


def _refers_to(raw: RawOrder, order_id: str, display_number: str | None) -> bool:
    if raw.platform_order_id == order_id:
        return True
    reference = (raw.platform_ref or "").strip()
    return bool(reference) and reference == (display_number or "").strip()


def _archive_missing(context: _SyncContext, order_id: str, result: SyncResult) -> None:
    with context.unit_of_work_factory() as uow:
        order = uow.repositories.orders.get(order_id)
        if order is None or order.archived:
            result.skipped += 1
            return
        order.archived = True
        order.updated_at = _utcnow()
        uow.commit()
    log.info(f"Order {order_id} no longer exists upstream, archived")
    result.processed += 1


def sync_single_order(
    order_id: str,
    *,
    platform: PlatformOrderLookup,
    warehouse: WarehouseWindowLookup | None,
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    locks: ProductLockManager,
    reconciler: OrderReconciler,
    config: SyncConfig,
    created_by: str | None = None,
    now: datetime | None = None,
) -> SyncResult:
    """Refresh one platform order and the warehouse records that ship it."""

    started_at = now or _utcnow()
    context = _SyncContext(unit_of_work_factory, locks, reconciler, created_by)
    result = SyncResult()
    dirty: set[str] = set()

    try:
        raw = platform.fetch_order(order_id)
    except AuthError as exc:
        log.error(f"{platform.name} rejected our credentials: {exc}")
        result.note_error(f"{platform.name}: {exc}")
        result.aborted = True
        raw = None
    except TransientUpstreamError as exc:
        log.warning(f"Could not fetch order {order_id}: {exc}")
        result.note_error(f"{platform.name}: {exc}")
        result.errored += 1
        raw = None
    else:
        if raw is None:
            _archive_missing(context, order_id, result)
        else:
            _reconcile_one(context, raw, result, dirty)

    if raw is not None and warehouse is not None and not result.aborted:
        window = config.single_order_window
        start, end = raw.created_at - window, raw.created_at + window
        records = (
            record
            for record in warehouse.fetch_window(start, end)
            if record.source is OrderSource.WAREHOUSE
            and _refers_to(record, raw.id, raw.display_number)
        )
        _consume(context, warehouse.name, records, result, dirty)

    _resequence_dirty(context, dirty, result)
    _record_run(context, SyncKind.SINGLE_ORDER, started_at, result)
    log.info(_summary(f"sync of order {order_id}", result))
    return result

"""Dense per-product edition numbering."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from editionledger.domain.line_item_status import apply_status
from editionledger.domain.model import EditionEvent, EditionEventType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from editionledger.domain.model import LineItem
    from editionledger.domain.ports.locking import ProductLockManager
    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class NumberChange:
    line_item_id: str
    previous: int | None
    current: int | None

    @property
    def event_type(self) -> EditionEventType:
        if self.previous is None:
            return EditionEventType.ASSIGNED
        if self.current is None:
            return EditionEventType.RELEASED
        return EditionEventType.RESEQUENCED


@dataclass(slots=True)
class ResequenceResult:
    product_id: str
    active_count: int = 0
    rows_written: int = 0
    changes: list[NumberChange] = field(default_factory=list[NumberChange])
    status_changes: int = 0

    @property
    def events_emitted(self) -> int:
        return len(self.changes)


def plan_numbering(items: Iterable[LineItem]) -> dict[str, tuple[int | None, int | None]]:
    """Target ``(edition_number, edition_total)`` for every item of one product.

    Active items are numbered 1..N by when they joined the active set, then by
    creation time and id; inactive items get no number and no total.
    """

    items = list(items)
    active = sorted((item for item in items if item.is_active), key=lambda i: i.numbering_key())
    total = len(active)
    plan: dict[str, tuple[int | None, int | None]] = {
        item.line_item_id: (None, None) for item in items if not item.is_active
    }
    for position, item in enumerate(active, start=1):
        plan[item.line_item_id] = (position, total)
    return plan


def resequence(
    uow: EditionUnitOfWork,
    product_id: str,
    *,
    now: datetime | None = None,
    created_by: str | None = None,
) -> ResequenceResult:
    """Bring one product's stored numbering to the dense 1..N state.

    The caller must hold the product's lock and commit the unit of work. Reads only
    stored state, so a run that was interrupted before commit is simply repeated.
    """

    moment = now or _utcnow()
    repos = uow.repositories
    items = repos.line_items.for_product(product_id)
    plan = plan_numbering(items)
    result = ResequenceResult(product_id=product_id)

    for item in items:
        number, total = plan[item.line_item_id]
        if item.is_active:
            result.active_count += 1
        if item.edition_number == number and item.edition_total == total:
            continue
        previous = item.edition_number
        item.edition_number = number
        item.edition_total = total
        item.updated_at = moment
        result.rows_written += 1
        if previous == number:
            continue
        change = NumberChange(item.line_item_id, previous, number)
        result.changes.append(change)
        repos.events.add(
            EditionEvent(
                line_item_id=item.line_item_id,
                product_id=product_id,
                event_type=change.event_type,
                edition_number=number,
                payload={"previous": previous, "current": number, "total": total},
                created_at=moment,
                created_by=created_by,
            )
        )

    if result.changes:
        log.info(
            f"Resequenced {product_id}: {result.active_count} active, "
            f"{len(result.changes)} number changes"
        )
    return result


def refresh_statuses(
    uow: EditionUnitOfWork,
    product_id: str,
    *,
    now: datetime | None = None,
    created_by: str | None = None,
) -> int:
    """Recompute every item's status of a product from stored order data."""

    moment = now or _utcnow()
    repos = uow.repositories
    changed = 0
    for item in repos.line_items.for_product(product_id):
        order = repos.orders.get(item.order_id)
        if order is None:
            log.warning(f"Line item {item.line_item_id} points at missing order {item.order_id}")
            continue
        transition = apply_status(order, item, now=moment)
        if transition is None:
            continue
        changed += 1
        repos.events.add(transition.to_event(created_by=created_by, trigger="forced_sync"))
    return changed


def resequence_product(
    product_id: str,
    *,
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    locks: ProductLockManager,
    wait: bool = True,
    force_status: bool = False,
    created_by: str | None = None,
    now: datetime | None = None,
) -> ResequenceResult:
    """Lock the product, optionally refresh statuses, resequence and commit."""

    with unit_of_work_factory() as uow, locks.hold(product_id, unit_of_work=uow, wait=wait):
        status_changes = 0
        if force_status:
            status_changes = refresh_statuses(uow, product_id, now=now, created_by=created_by)
        result = resequence(uow, product_id, now=now, created_by=created_by)
        result.status_changes = status_changes
        uow.commit()
    return result

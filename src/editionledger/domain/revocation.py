"""Administrative removal of line items from the numbering."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from editionledger.domain.errors import LineItemNotFound, RevokeOnUnassigned
from editionledger.domain.line_item_status import StatusTransition
from editionledger.domain.model import (
    EditionEvent,
    EditionEventType,
    LineItemStatus,
    RemovalReason,
)
from editionledger.domain.sequencing import ResequenceResult, resequence

if TYPE_CHECKING:
    from collections.abc import Callable

    from editionledger.domain.model import LineItem
    from editionledger.domain.ports.locking import ProductLockManager
    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork

log = getLogger(__name__)

DEACTIVATION_REASONS = frozenset(
    {
        RemovalReason.REFUNDED,
        RemovalReason.RESTOCKED,
        RemovalReason.REMOVED,
        RemovalReason.MANUAL,
    }
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class RevocationResult:
    line_item_id: str
    product_id: str
    revoked_number: int
    resequence: ResequenceResult


@dataclass(frozen=True, slots=True)
class DeactivationResult:
    line_item_id: str
    product_id: str
    reason: RemovalReason
    previous_status: LineItemStatus
    previous_number: int | None
    resequence: ResequenceResult
    changed: bool = True


def _product_of(unit_of_work_factory: Callable[[], EditionUnitOfWork], line_item_id: str) -> str:
    # resolved in its own session: the locked session must not reuse a pre-lock snapshot
    with unit_of_work_factory() as uow:
        item = uow.repositories.line_items.get(line_item_id)
        if item is None:
            raise LineItemNotFound(line_item_id)
        return item.product_id


def _load(uow: EditionUnitOfWork, line_item_id: str) -> LineItem:
    item = uow.repositories.line_items.get(line_item_id)
    if item is None:
        raise LineItemNotFound(line_item_id)
    return item


def revoke_edition(
    line_item_id: str,
    *,
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    locks: ProductLockManager,
    wait: bool = True,
    created_by: str | None = None,
    now: datetime | None = None,
) -> RevocationResult:
    """Clear an issued number for good and close the gap it leaves.

    The item is marked removed, so later syncs keep it inactive.
    """

    moment = now or _utcnow()
    product_id = _product_of(unit_of_work_factory, line_item_id)
    with unit_of_work_factory() as uow, locks.hold(product_id, unit_of_work=uow, wait=wait):
        item = _load(uow, line_item_id)
        number = item.edition_number
        if number is None:
            raise RevokeOnUnassigned(line_item_id)

        previous_total = item.edition_total
        item.status = LineItemStatus.INACTIVE
        item.removed_reason = RemovalReason.REVOKED
        item.removed_at = moment
        item.edition_number = None
        item.edition_total = None
        item.updated_at = moment
        uow.repositories.events.add(
            EditionEvent(
                line_item_id=line_item_id,
                product_id=product_id,
                event_type=EditionEventType.REVOKED,
                edition_number=None,
                payload={"previous": number, "current": None, "total": previous_total},
                created_at=moment,
                created_by=created_by,
            )
        )
        outcome = resequence(uow, product_id, now=moment, created_by=created_by)
        uow.commit()

    log.info(f"Revoked edition #{number} of {product_id} from line item {line_item_id}")
    return RevocationResult(line_item_id, product_id, number, outcome)


def deactivate_line_item(
    line_item_id: str,
    reason: RemovalReason,
    *,
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    locks: ProductLockManager,
    notes: str | None = None,
    wait: bool = True,
    created_by: str | None = None,
    now: datetime | None = None,
) -> DeactivationResult:
    """Take an item out of the numbering for an operator-supplied reason.

    Items already removed for any reason are left as they are.
    """

    if reason not in DEACTIVATION_REASONS:
        raise ValueError(f"Unsupported deactivation reason: {reason}")

    moment = now or _utcnow()
    product_id = _product_of(unit_of_work_factory, line_item_id)
    with unit_of_work_factory() as uow, locks.hold(product_id, unit_of_work=uow, wait=wait):
        item = _load(uow, line_item_id)
        previous_status = item.status
        previous_number = item.edition_number
        if item.removed_reason is not None:
            log.info(
                f"Line item {line_item_id} already removed ({item.removed_reason.value}), "
                "leaving it untouched"
            )
            return DeactivationResult(
                line_item_id,
                product_id,
                item.removed_reason,
                previous_status,
                previous_number,
                ResequenceResult(product_id),
                changed=False,
            )

        item.removed_reason = reason
        item.removed_at = moment
        item.status = LineItemStatus.INACTIVE
        item.updated_at = moment
        if previous_status is not LineItemStatus.INACTIVE:
            transition = StatusTransition(
                line_item_id, product_id, previous_status, LineItemStatus.INACTIVE
            )
            uow.repositories.events.add(
                transition.to_event(
                    created_by=created_by,
                    reason=reason.value,
                    notes=notes,
                    edition_number=previous_number,
                )
            )
        outcome = resequence(uow, product_id, now=moment, created_by=created_by)
        uow.commit()

    log.info(f"Deactivated line item {line_item_id} of {product_id} ({reason.value})")
    return DeactivationResult(
        line_item_id, product_id, reason, previous_status, previous_number, outcome
    )

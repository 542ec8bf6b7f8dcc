"""Active/inactive status of line items, derived from payment, fulfillment and restock."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from editionledger.domain.model import (
    EditionEvent,
    EditionEventType,
    LineItemStatus,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from editionledger.domain.model import LineItem, Order
    from editionledger.domain.ports.fetching import RawRefund


def is_restocked(line_item_id: str, refunds: Iterable[RawRefund]) -> bool:
    return any(refund.line_item_id == line_item_id and refund.restocks for refund in refunds)


def derive_status(order: Order, item: LineItem) -> LineItemStatus:
    """Status the item should have given what is stored about it and its order."""

    if item.restocked or order.is_voided or item.removed_reason is not None:
        return LineItemStatus.INACTIVE
    if order.counts_as_paid or item.is_fulfilled:
        return LineItemStatus.ACTIVE
    return LineItemStatus.INACTIVE


@dataclass(frozen=True, slots=True)
class StatusTransition:
    line_item_id: str
    product_id: str
    before: LineItemStatus | None
    after: LineItemStatus

    @property
    def is_initial(self) -> bool:
        return self.before is None

    def to_event(self, *, created_by: str | None = None, **details: object) -> EditionEvent:
        return EditionEvent(
            line_item_id=self.line_item_id,
            product_id=self.product_id,
            event_type=EditionEventType.STATUS_CHANGED,
            payload={
                "before": self.before.value if self.before else None,
                "after": self.after.value,
                **details,
            },
            created_by=created_by,
        )


def apply_status(
    order: Order,
    item: LineItem,
    *,
    now: datetime,
    is_new: bool = False,
) -> StatusTransition | None:
    """Recompute ``item.status`` in place; ``None`` when nothing changed.

    New items report a transition from ``None`` so the caller knows to number them,
    but they are not a status change of an existing item.
    """

    target = derive_status(order, item)
    if is_new:
        item.status = target
        if target is LineItemStatus.ACTIVE:
            item.activated_at = item.created_at
        return StatusTransition(item.line_item_id, item.product_id, None, target)

    if item.status is target:
        return None
    before = item.status
    item.status = target
    if target is LineItemStatus.ACTIVE:
        # a reactivated item queues behind everything already numbered
        item.activated_at = now
    item.updated_at = now
    return StatusTransition(item.line_item_id, item.product_id, before, target)

"""Read-only verification of issued editions and of the numbering invariants.

Nothing here takes a product lock or writes. Findings are reported for an operator
to act on; none of them is repaired automatically.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from editionledger.domain.errors import InvariantViolation, LineItemNotFound
from editionledger.domain.model import EditionEventType, normalize_email

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from editionledger.domain.model import (
        EditionEvent,
        LineItem,
        LineItemStatus,
        Order,
        RemovalReason,
    )
    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork


@dataclass(frozen=True, slots=True)
class EditionRecord:
    """What a certificate surface needs to know about one line item."""

    line_item_id: str
    order_id: str
    product_id: str
    title: str | None
    edition_number: int | None
    edition_total: int | None
    status: LineItemStatus
    owner_email: str | None
    owner_name: str | None
    authenticated_at: datetime | None
    removed_reason: RemovalReason | None

    @property
    def is_authenticated(self) -> bool:
        return self.authenticated_at is not None

    @classmethod
    def from_line_item(cls, item: LineItem) -> EditionRecord:
        return cls(
            line_item_id=item.line_item_id,
            order_id=item.order_id,
            product_id=item.product_id,
            title=item.title,
            edition_number=item.edition_number,
            edition_total=item.edition_total,
            status=item.status,
            owner_email=item.owner_email,
            owner_name=item.owner_name,
            authenticated_at=item.authenticated_at,
            removed_reason=item.removed_reason,
        )


@dataclass(slots=True)
class DuplicateReport:
    product_id: str
    active_count: int
    numbered_count: int
    duplicates: dict[int, list[str]] = field(default_factory=dict[int, list[str]])

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicates)

    @property
    def unique_numbers(self) -> int:
        return self.numbered_count - sum(len(ids) - 1 for ids in self.duplicates.values())

    def raise_if_violated(self) -> None:
        if self.duplicates:
            raise InvariantViolation(self.product_id, duplicates=sorted(self.duplicates))


@dataclass(slots=True)
class ProductEditions:
    product_id: str
    active_count: int
    editions: list[EditionRecord]
    history: dict[str, list[EditionEvent]] | None = None


class IssueKind(StrEnum):
    RESTOCKED_BUT_ACTIVE = "restocked_but_active"
    VOIDED_BUT_ACTIVE = "voided_but_active"
    REMOVED_BUT_ACTIVE = "removed_but_active"
    INACTIVE_WITH_NUMBER = "inactive_with_number"
    ACTIVE_WITHOUT_NUMBER = "active_without_number"
    DUPLICATE_NUMBER = "duplicate_number"
    NUMBERING_GAP = "numbering_gap"
    STALE_TOTAL = "stale_total"


@dataclass(frozen=True, slots=True)
class IntegrityIssue:
    kind: IssueKind
    product_id: str
    line_item_id: str | None
    detail: str


@dataclass(slots=True)
class IntegrityReport:
    products_checked: int = 0
    items_checked: int = 0
    issues: list[IntegrityIssue] = field(default_factory=list[IntegrityIssue])

    @property
    def ok(self) -> bool:
        return not self.issues


def _load_item(uow: EditionUnitOfWork, line_item_id: str) -> LineItem:
    item = uow.repositories.line_items.get(line_item_id)
    if item is None:
        raise LineItemNotFound(line_item_id)
    return item


def verify_edition(
    line_item_id: str, *, unit_of_work_factory: Callable[[], EditionUnitOfWork]
) -> EditionRecord:
    with unit_of_work_factory() as uow:
        return EditionRecord.from_line_item(_load_item(uow, line_item_id))


def get_edition_history(
    line_item_id: str, *, unit_of_work_factory: Callable[[], EditionUnitOfWork]
) -> list[EditionEvent]:
    with unit_of_work_factory() as uow:
        events = uow.repositories.events.for_line_item(line_item_id)
        if not events:
            _load_item(uow, line_item_id)
        return events


def get_ownership_history(
    line_item_id: str, *, unit_of_work_factory: Callable[[], EditionUnitOfWork]
) -> list[EditionEvent]:
    with unit_of_work_factory() as uow:
        _load_item(uow, line_item_id)
        return uow.repositories.events.for_line_item(
            line_item_id, event_types=(EditionEventType.OWNERSHIP_TRANSFER,)
        )


def find_duplicates(product_id: str, items: Iterable[LineItem]) -> DuplicateReport:
    holders: dict[int, list[str]] = defaultdict(list)
    active_count = 0
    for item in items:
        if not item.is_active:
            continue
        active_count += 1
        if item.edition_number is not None:
            holders[item.edition_number].append(item.line_item_id)
    return DuplicateReport(
        product_id=product_id,
        active_count=active_count,
        numbered_count=sum(len(ids) for ids in holders.values()),
        duplicates={number: ids for number, ids in sorted(holders.items()) if len(ids) > 1},
    )


def check_duplicates(
    product_id: str, *, unit_of_work_factory: Callable[[], EditionUnitOfWork]
) -> DuplicateReport:
    with unit_of_work_factory() as uow:
        items = uow.repositories.line_items.for_product(product_id)
    return find_duplicates(product_id, items)


def list_product_editions(
    product_id: str,
    *,
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    include_history: bool = False,
) -> ProductEditions:
    with unit_of_work_factory() as uow:
        items = uow.repositories.line_items.for_product(product_id)
        history: dict[str, list[EditionEvent]] | None = None
        if include_history:
            history = defaultdict(list)
            for event in uow.repositories.events.for_product(product_id):
                history[event.line_item_id].append(event)
            history = dict(history)

    items.sort(key=lambda i: (i.edition_number is None, i.edition_number or 0, i.created_at))
    return ProductEditions(
        product_id=product_id,
        active_count=sum(1 for item in items if item.is_active),
        editions=[EditionRecord.from_line_item(item) for item in items],
        history=history,
    )


def get_collector_editions(
    email: str, *, unit_of_work_factory: Callable[[], EditionUnitOfWork]
) -> list[EditionRecord]:
    """Numbered, active editions currently owned by a collector."""

    owner = normalize_email(email)
    if owner is None:
        return []
    with unit_of_work_factory() as uow:
        items = uow.repositories.line_items.owned_by(owner)
    return [
        EditionRecord.from_line_item(item)
        for item in items
        if item.is_active and item.edition_number is not None
    ]


def audit_product(
    product_id: str,
    items: list[LineItem],
    orders: dict[str, Order | None],
) -> list[IntegrityIssue]:
    issues: list[IntegrityIssue] = []

    def report(kind: IssueKind, item: LineItem | None, detail: str) -> None:
        line_item_id = item.line_item_id if item is not None else None
        issues.append(IntegrityIssue(kind, product_id, line_item_id, detail))

    active = [item for item in items if item.is_active]
    for item in items:
        order = orders.get(item.order_id)
        if item.is_active:
            if item.restocked:
                report(IssueKind.RESTOCKED_BUT_ACTIVE, item, "restocked item is still active")
            if order is not None and order.is_voided:
                report(IssueKind.VOIDED_BUT_ACTIVE, item, f"order {order.id} is voided")
            if item.removed_reason is not None:
                report(
                    IssueKind.REMOVED_BUT_ACTIVE,
                    item,
                    f"item was removed ({item.removed_reason.value})",
                )
            if item.edition_number is None:
                report(IssueKind.ACTIVE_WITHOUT_NUMBER, item, "active item has no number")
            elif item.edition_total != len(active):
                report(
                    IssueKind.STALE_TOTAL,
                    item,
                    f"edition_total {item.edition_total} but {len(active)} active",
                )
        elif item.edition_number is not None or item.edition_total is not None:
            report(
                IssueKind.INACTIVE_WITH_NUMBER,
                item,
                f"inactive item holds #{item.edition_number}/{item.edition_total}",
            )

    duplicates = find_duplicates(product_id, items)
    for number, holders in duplicates.duplicates.items():
        report(IssueKind.DUPLICATE_NUMBER, None, f"#{number} held by {', '.join(holders)}")

    held = {item.edition_number for item in active if item.edition_number is not None}
    missing = sorted(set(range(1, len(active) + 1)) - held)
    if missing:
        numbers = ", ".join(str(number) for number in missing)
        report(IssueKind.NUMBERING_GAP, None, f"numbers not held by any active item: {numbers}")
    return issues


def validate_data_integrity(
    *,
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    product_id: str | None = None,
) -> IntegrityReport:
    """Audit one product, or every product, against the numbering invariants."""

    report = IntegrityReport()
    with unit_of_work_factory() as uow:
        repos = uow.repositories
        product_ids = [product_id] if product_id is not None else repos.line_items.product_ids()
        for current in product_ids:
            items = repos.line_items.for_product(current)
            order_ids = {item.order_id for item in items}
            orders = {order_id: repos.orders.get(order_id) for order_id in order_ids}
            report.products_checked += 1
            report.items_checked += len(items)
            report.issues.extend(audit_product(current, items, orders))
    return report

"""Identity matching between warehouse records and platform orders.

Matching policy, tried in order until a rule produces candidates:
1) explicit platform order id carried by the warehouse record
2) exact display number (``#1174``)
3) customer email together with the digits of the order number

Per rule:
- no candidates -> fall through to the next rule
- one candidate -> match
- several candidates -> ``ReconciliationAmbiguity``; nothing is merged
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from editionledger.domain.errors import ReconciliationAmbiguity
from editionledger.domain.model import (
    OrderSource,
    normalize_email,
    normalize_order_number,
)

if TYPE_CHECKING:
    from editionledger.domain.model import Order
    from editionledger.domain.ports.fetching import RawOrder
    from editionledger.domain.ports.unit_of_work import EditionRepositories


class MatchRule(StrEnum):
    CROSS_SYSTEM_ID = "cross_system_id"
    DISPLAY_NUMBER = "display_number"
    EMAIL_AND_NUMBER = "email_and_number"


@dataclass(frozen=True, slots=True)
class OrderMatch:
    order: Order
    rule: MatchRule


def _dedupe(orders: list[Order]) -> list[Order]:
    seen: set[str] = set()
    unique: list[Order] = []
    for order in orders:
        if order.id in seen:
            continue
        seen.add(order.id)
        unique.append(order)
    return unique


def _pick(record_id: str, rule: MatchRule, candidates: list[Order]) -> OrderMatch | None:
    candidates = _dedupe(candidates)
    if not candidates:
        return None
    if len(candidates) > 1:
        raise ReconciliationAmbiguity(
            record_id, rule=rule.value, candidates=[order.id for order in candidates]
        )
    return OrderMatch(candidates[0], rule)


def _composite_candidates(
    repos: EditionRepositories,
    *,
    reference: str | None,
    email: str | None,
    source: OrderSource,
) -> list[Order]:
    number = normalize_order_number(reference)
    owner = normalize_email(email)
    if number is None or owner is None:
        return []
    return [
        order
        for order in repos.orders.find_by_order_number(number, source=source)
        if normalize_email(order.customer_email) == owner
    ]


def match_warehouse_record(
    repos: EditionRepositories,
    raw: RawOrder,
    *,
    allow_composite: bool = True,
) -> OrderMatch | None:
    """Find the platform order a warehouse record ships."""

    if raw.platform_order_id:
        order = repos.orders.get(raw.platform_order_id)
        if order is not None and order.source is OrderSource.PLATFORM:
            return OrderMatch(order, MatchRule.CROSS_SYSTEM_ID)

    reference = (raw.platform_ref or "").strip()
    if reference:
        found = _pick(
            raw.id,
            MatchRule.DISPLAY_NUMBER,
            repos.orders.find_by_display_number(reference, source=OrderSource.PLATFORM),
        )
        if found is not None:
            return found

    if not allow_composite:
        return None
    email = raw.shipment.ship_email if raw.shipment else None
    return _pick(
        raw.id,
        MatchRule.EMAIL_AND_NUMBER,
        _composite_candidates(
            repos,
            reference=raw.platform_ref,
            email=raw.customer_email or email,
            source=OrderSource.PLATFORM,
        ),
    )


def find_placeholders(
    repos: EditionRepositories,
    raw: RawOrder,
    *,
    allow_composite: bool = True,
) -> list[Order]:
    """Warehouse-origin placeholders that stand in for a platform order.

    Placeholders naming the platform order id all belong to it. A placeholder found
    by display number or by the composite rule is taken only when it is the single
    candidate; several candidates are left alone and logged by the caller.
    """

    by_id = [
        repos.orders.get(record.matched_order_id)
        for record in repos.warehouse_records.find_by_platform_order_id(raw.id)
        if record.matched_order_id is not None
    ]
    placeholders = _dedupe(
        [order for order in by_id if order is not None and order.is_placeholder]
    )
    if placeholders:
        return placeholders

    if raw.display_number:
        reference = raw.display_number.strip()
        candidates = [
            order
            for order in repos.orders.find_by_external_ref(reference)
            if order.is_placeholder
        ]
        found = _pick(raw.id, MatchRule.DISPLAY_NUMBER, candidates)
        if found is not None:
            return [found.order]

    if not allow_composite:
        return []
    found = _pick(
        raw.id,
        MatchRule.EMAIL_AND_NUMBER,
        _composite_candidates(
            repos,
            reference=raw.display_number,
            email=raw.customer_email,
            source=OrderSource.WAREHOUSE,
        ),
    )
    return [found.order] if found is not None else []

"""Merge raw orders from both sources into canonical orders.

Responsibilities of this stage:
- upsert the canonical ``Order`` and its line items, writing only changed fields
- recompute line item status and record genuine transitions
- keep warehouse shipping data in ``WarehouseRecord`` and on the matched order
- replace warehouse placeholders once the real platform order is known

Out of scope for this stage:
- numbering (callers resequence ``ReconcileOutcome.dirty_products``)
- commit
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from editionledger.domain.errors import ReconciliationAmbiguity
from editionledger.domain.line_item_status import apply_status, is_restocked
from editionledger.domain.model import (
    WAREHOUSE_ORDER_PREFIX,
    EditionEvent,
    EditionEventType,
    LineItem,
    Order,
    OrderSource,
    WarehouseRecord,
    normalize_order_number,
)
from editionledger.domain.ports.fetching import RawShipment

from .matching import find_placeholders, match_warehouse_record

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from editionledger.domain.ports.fetching import RawLineItem, RawOrder
    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork

log = getLogger(__name__)

DEFAULT_ACTOR = "sync"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _assign_if_changed(target: object, **values: object) -> bool:
    changed = False
    for name, value in values.items():
        if getattr(target, name) != value:
            setattr(target, name, value)
            changed = True
    return changed


def _assign_present(target: object, **values: object) -> bool:
    """Like ``_assign_if_changed`` but never overwrites with ``None``."""

    return _assign_if_changed(
        target, **{name: value for name, value in values.items() if value is not None}
    )


def placeholder_id(warehouse_id: str) -> str:
    return f"{WAREHOUSE_ORDER_PREFIX}{warehouse_id}"


@dataclass(slots=True)
class ReconcileOutcome:
    order_id: str
    created: bool = False
    changed: bool = False
    dirty_products: set[str] = field(default_factory=set[str])
    ambiguity: ReconciliationAmbiguity | None = None
    superseded: list[str] = field(default_factory=list[str])


class OrderReconciler:
    """Applies one raw order to the store inside the caller's unit of work."""

    def __init__(
        self,
        *,
        allow_composite_match: bool = True,
        clock: Callable[[], datetime] = _utcnow,
        actor: str | None = DEFAULT_ACTOR,
    ) -> None:
        self.allow_composite_match = allow_composite_match
        self.clock = clock
        self.actor = actor

    def reconcile(self, uow: EditionUnitOfWork, raw: RawOrder) -> ReconcileOutcome:
        now = self.clock()
        if raw.source is OrderSource.PLATFORM:
            return self._reconcile_platform(uow, raw, now)
        return self._reconcile_warehouse(uow, raw, now)

    # platform orders -----------------------------------------------------------------

    def _reconcile_platform(
        self, uow: EditionUnitOfWork, raw: RawOrder, now: datetime
    ) -> ReconcileOutcome:
        repos = uow.repositories
        order = repos.orders.get(raw.id)
        created = order is None
        if order is None:
            order = Order(id=raw.id, source=OrderSource.PLATFORM, created_at=raw.created_at)
            repos.orders.add(order)

        changed = _assign_if_changed(
            order,
            display_number=raw.display_number,
            order_number=normalize_order_number(raw.display_number),
            financial_status=raw.financial_status,
            fulfillment_status=raw.fulfillment_status,
            total_price=raw.total_price,
            currency=raw.currency,
            processed_at=raw.processed_at,
            cancelled_at=raw.cancelled_at,
            archived=raw.archived,
            raw_payload=dict(raw.raw_payload),
        )
        changed |= _assign_present(
            order, customer_email=raw.customer_email, customer_name=raw.customer_name
        )
        if raw.shipment is not None and order.shipping_source is not OrderSource.WAREHOUSE:
            changed |= _assign_if_changed(
                order,
                shipping_name=raw.shipment.ship_name,
                shipping_phone=raw.shipment.ship_phone,
                shipping_address=raw.shipment.ship_address,
                tracking_number=raw.shipment.tracking_number,
                carrier=raw.shipment.carrier,
                shipping_source=OrderSource.PLATFORM,
            )
        if created:
            # the row must exist before line items and side records point at it
            uow.flush()

        outcome = ReconcileOutcome(order_id=order.id, created=created)
        placeholders: list[Order] = []
        try:
            placeholders = find_placeholders(
                repos, raw, allow_composite=self.allow_composite_match
            )
        except ReconciliationAmbiguity as exc:
            log.warning(f"Keeping warehouse placeholders for order {raw.id} separate: {exc}")
            outcome.ambiguity = exc

        records = list(repos.warehouse_records.for_order(order.id))
        for placeholder in placeholders:
            for record in repos.warehouse_records.for_order(placeholder.id):
                record.matched_order_id = order.id
                records.append(record)
        for record in records:
            changed |= enrich_from_record(order, record)

        for raw_item in raw.line_items:
            if raw_item.product_id is None:
                log.debug(f"Order {raw.id}: line {raw_item.line_item_id} has no product")
                continue
            changed |= self._sync_line_item(
                uow,
                order,
                raw_item,
                product_id=raw_item.product_id,
                restocked=is_restocked(raw_item.line_item_id, raw.refunds),
                now=now,
                outcome=outcome,
            )

        for placeholder in placeholders:
            self._retire_placeholder(uow, placeholder, order, now=now, outcome=outcome)

        if changed and not created:
            order.updated_at = now
        outcome.changed = created or changed or bool(outcome.superseded)
        return outcome

    # warehouse records ---------------------------------------------------------------

    def _reconcile_warehouse(
        self, uow: EditionUnitOfWork, raw: RawOrder, now: datetime
    ) -> ReconcileOutcome:
        repos = uow.repositories
        record = repos.warehouse_records.get(raw.id)
        record_created = record is None
        if record is None:
            record = WarehouseRecord(id=raw.id)
            repos.warehouse_records.add(record)
        shipment = raw.shipment or RawShipment()
        record_changed = _assign_if_changed(
            record,
            platform_ref=raw.platform_ref,
            platform_order_id=raw.platform_order_id,
            ship_email=shipment.ship_email,
            ship_name=shipment.ship_name,
            ship_phone=shipment.ship_phone,
            ship_address=shipment.ship_address,
            tracking_number=shipment.tracking_number,
            carrier=shipment.carrier,
            status_code=shipment.status_code,
            status_name=shipment.status_name,
            raw_payload=dict(raw.raw_payload),
        )
        if record_changed and not record_created:
            record.updated_at = now

        ambiguity: ReconciliationAmbiguity | None = None
        try:
            match = match_warehouse_record(repos, raw, allow_composite=self.allow_composite_match)
        except ReconciliationAmbiguity as exc:
            log.warning(f"Keeping warehouse record {raw.id} as its own order: {exc}")
            ambiguity = exc
            match = None

        if match is None:
            outcome = self._upsert_placeholder(uow, raw, record, now=now)
            outcome.ambiguity = ambiguity
            outcome.changed |= record_created or record_changed
            return outcome

        target = match.order
        log.debug(f"Warehouse record {raw.id} matched order {target.id} by {match.rule}")
        changed = _assign_if_changed(record, matched_order_id=target.id)
        if enrich_from_record(target, record):
            target.updated_at = now
            changed = True
        outcome = ReconcileOutcome(order_id=target.id)
        stale = repos.orders.get(placeholder_id(raw.id))
        if stale is not None:
            self._retire_placeholder(uow, stale, target, now=now, outcome=outcome)
        outcome.changed = record_created or record_changed or changed or bool(outcome.superseded)
        return outcome

    def _upsert_placeholder(
        self,
        uow: EditionUnitOfWork,
        raw: RawOrder,
        record: WarehouseRecord,
        *,
        now: datetime,
    ) -> ReconcileOutcome:
        repos = uow.repositories
        order_id = placeholder_id(raw.id)
        order = repos.orders.get(order_id)
        created = order is None
        if order is None:
            order = Order(id=order_id, source=OrderSource.WAREHOUSE, created_at=raw.created_at)
            repos.orders.add(order)

        reference = raw.platform_ref.strip() if raw.platform_ref else None
        changed = _assign_if_changed(
            order,
            display_number=reference,
            order_number=normalize_order_number(reference),
            external_ref=reference,
            financial_status=raw.financial_status,
            fulfillment_status=raw.fulfillment_status,
            processed_at=raw.processed_at,
            raw_payload=dict(raw.raw_payload),
        )
        changed |= _assign_present(
            order, customer_email=raw.customer_email, customer_name=raw.customer_name
        )
        changed |= enrich_from_record(order, record)
        if created:
            uow.flush()
            log.info(f"Created warehouse order {order_id} for unmatched record {raw.id}")
        changed |= _assign_if_changed(record, matched_order_id=order.id)

        outcome = ReconcileOutcome(order_id=order.id, created=created)
        for raw_item in raw.line_items:
            product_id = raw_item.product_id
            if product_id is None and raw_item.sku:
                product_id = repos.line_items.product_id_for_sku(raw_item.sku)
            if product_id is None:
                log.info(
                    f"Warehouse order {raw.id}: no product known for sku {raw_item.sku!r}, "
                    "line not recorded"
                )
                continue
            changed |= self._sync_line_item(
                uow,
                order,
                raw_item,
                product_id=product_id,
                restocked=False,
                now=now,
                outcome=outcome,
            )

        if changed and not created:
            order.updated_at = now
        outcome.changed = created or changed
        return outcome

    # shared --------------------------------------------------------------------------

    def _sync_line_item(
        self,
        uow: EditionUnitOfWork,
        order: Order,
        raw_item: RawLineItem,
        *,
        product_id: str,
        restocked: bool,
        now: datetime,
        outcome: ReconcileOutcome,
    ) -> bool:
        repos = uow.repositories
        item = repos.line_items.get(raw_item.line_item_id)
        if item is None:
            item = LineItem(
                line_item_id=raw_item.line_item_id,
                order_id=order.id,
                product_id=product_id,
                created_at=order.created_at,
                variant_id=raw_item.variant_id,
                title=raw_item.title,
                sku=raw_item.sku,
                quantity=raw_item.quantity,
                price=raw_item.price,
                vendor_name=raw_item.vendor_name,
                fulfillment_status=raw_item.fulfillment_status,
                restocked=restocked,
                owner_email=order.customer_email,
                owner_name=order.customer_name,
            )
            apply_status(order, item, now=now, is_new=True)
            repos.line_items.add(item)
            if item.is_active:
                outcome.dirty_products.add(product_id)
            return True

        previous_product = item.product_id
        changed = _assign_if_changed(
            item,
            product_id=product_id,
            variant_id=raw_item.variant_id,
            title=raw_item.title,
            sku=raw_item.sku,
            quantity=raw_item.quantity,
            price=raw_item.price,
            vendor_name=raw_item.vendor_name,
            fulfillment_status=raw_item.fulfillment_status,
            restocked=restocked,
        )
        if item.owner_email is None and order.customer_email is not None:
            item.owner_email = order.customer_email
            item.owner_name = item.owner_name or order.customer_name
            changed = True
        if changed:
            item.updated_at = now
        if previous_product != item.product_id:
            outcome.dirty_products.update({previous_product, item.product_id})

        transition = apply_status(order, item, now=now)
        if transition is not None:
            repos.events.add(transition.to_event(created_by=self.actor, order_id=order.id))
            outcome.dirty_products.add(item.product_id)
            changed = True
        if item.is_active != (item.edition_number is not None):
            # numbering is behind the status, e.g. after an interrupted resequence
            outcome.dirty_products.add(item.product_id)
        return changed

    def _retire_placeholder(
        self,
        uow: EditionUnitOfWork,
        placeholder: Order,
        target: Order,
        *,
        now: datetime,
        outcome: ReconcileOutcome,
    ) -> None:
        """Fold a warehouse placeholder into ``target``, then delete it.

        ``target`` is already upserted, so the order never disappears from the store.
        """

        repos = uow.repositories
        for record in repos.warehouse_records.for_order(placeholder.id):
            record.matched_order_id = target.id
            enrich_from_record(target, record)

        heirs = repos.line_items.for_order(target.id)
        for item in repos.line_items.for_order(placeholder.id):
            _carry_authentication(item, heirs)
            if item.edition_number is not None:
                repos.events.add(
                    EditionEvent(
                        line_item_id=item.line_item_id,
                        product_id=item.product_id,
                        event_type=EditionEventType.RELEASED,
                        edition_number=None,
                        payload={
                            "previous": item.edition_number,
                            "current": None,
                            "total": item.edition_total,
                            "superseded_by": target.id,
                        },
                        created_at=now,
                        created_by=self.actor,
                    )
                )
            if item.is_active or item.edition_number is not None:
                outcome.dirty_products.add(item.product_id)
            repos.line_items.delete(item)
        uow.flush()
        repos.orders.delete(placeholder)
        outcome.superseded.append(placeholder.id)
        log.info(f"Warehouse order {placeholder.id} superseded by order {target.id}")


def enrich_from_record(order: Order, record: WarehouseRecord) -> bool:
    """Copy warehouse shipping data onto an order and fill in missing customer data."""

    changed = False
    if record.ship_address or record.tracking_number:
        changed |= _assign_present(
            order,
            shipping_name=record.ship_name,
            shipping_phone=record.ship_phone,
            shipping_address=record.ship_address,
            tracking_number=record.tracking_number,
            carrier=record.carrier,
        )
        changed |= _assign_if_changed(order, shipping_source=OrderSource.WAREHOUSE)
    if order.customer_email is None and record.ship_email:
        order.customer_email = record.ship_email
        changed = True
    if order.customer_name is None and record.ship_name:
        order.customer_name = record.ship_name
        changed = True
    return changed


def _carry_authentication(item: LineItem, heirs: Iterable[LineItem]) -> None:
    if item.authenticated_at is None:
        return
    for heir in heirs:
        if heir.product_id == item.product_id and heir.authenticated_at is None:
            heir.authenticated_at = item.authenticated_at
            return

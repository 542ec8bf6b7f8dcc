"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import and_, or_, select

from editionledger.adapters.sqlalchemy.mappings import (
    edition_event_table,
    line_item_table,
    order_table,
    sync_run_table,
    warehouse_record_table,
)
from editionledger.domain.model import (
    EditionEvent,
    LineItem,
    LineItemStatus,
    Order,
    OrderSource,
    SyncRun,
    WarehouseRecord,
)

if TYPE_CHECKING:
    from collections.abc import Collection

    from sqlalchemy.orm import Session

    from editionledger.domain.model import EditionEventType, SyncKind


class SqlAlchemyOrderRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Order) -> None:
        self.session.add(entity)

    def get(self, order_id: str) -> Order | None:
        return self.session.get(Order, order_id)

    def find_by_display_number(
        self, display_number: str, *, source: OrderSource | None = None
    ) -> list[Order]:
        stmt = select(Order).where(order_table.c.display_number == display_number)
        if source is not None:
            stmt = stmt.where(order_table.c.source == source)
        return list(self.session.scalars(stmt.order_by(order_table.c.id)))

    def find_by_order_number(self, order_number: str, *, source: OrderSource) -> list[Order]:
        stmt = (
            select(Order)
            .where(order_table.c.order_number == order_number)
            .where(order_table.c.source == source)
            .order_by(order_table.c.id)
        )
        return list(self.session.scalars(stmt))

    def find_by_external_ref(self, external_ref: str) -> list[Order]:
        stmt = (
            select(Order)
            .where(order_table.c.external_ref == external_ref)
            .order_by(order_table.c.id)
        )
        return list(self.session.scalars(stmt))

    def delete(self, order: Order) -> None:
        self.session.delete(order)


class SqlAlchemyLineItemRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: LineItem) -> None:
        self.session.add(entity)

    def get(self, line_item_id: str) -> LineItem | None:
        return self.session.get(LineItem, line_item_id)

    def for_order(self, order_id: str) -> list[LineItem]:
        stmt = (
            select(LineItem)
            .where(line_item_table.c.order_id == order_id)
            .order_by(line_item_table.c.line_item_id)
        )
        return list(self.session.scalars(stmt))

    def for_product(self, product_id: str) -> list[LineItem]:
        stmt = (
            select(LineItem)
            .where(line_item_table.c.product_id == product_id)
            .order_by(line_item_table.c.created_at, line_item_table.c.line_item_id)
        )
        return list(self.session.scalars(stmt))

    def product_ids(self) -> list[str]:
        stmt = (
            select(line_item_table.c.product_id)
            .distinct()
            .order_by(line_item_table.c.product_id)
        )
        return list(self.session.scalars(stmt))

    def owned_by(self, email: str) -> list[LineItem]:
        stmt = (
            select(LineItem)
            .where(line_item_table.c.owner_email == email)
            .order_by(line_item_table.c.product_id, line_item_table.c.edition_number)
        )
        return list(self.session.scalars(stmt))

    def product_id_for_sku(self, sku: str) -> str | None:
        stmt = (
            select(line_item_table.c.product_id)
            .join(order_table, order_table.c.id == line_item_table.c.order_id)
            .where(line_item_table.c.sku == sku)
            .where(order_table.c.source == OrderSource.PLATFORM)
            .order_by(line_item_table.c.created_at.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def products_needing_numbers(self) -> list[str]:
        """Products with an active item lacking a number or an inactive item still holding one."""

        unnumbered = and_(
            line_item_table.c.status == LineItemStatus.ACTIVE,
            line_item_table.c.edition_number.is_(None),
        )
        stale = and_(
            line_item_table.c.status == LineItemStatus.INACTIVE,
            line_item_table.c.edition_number.is_not(None),
        )
        stmt = (
            select(line_item_table.c.product_id)
            .where(or_(unnumbered, stale))
            .distinct()
            .order_by(line_item_table.c.product_id)
        )
        return list(self.session.scalars(stmt))

    def delete(self, item: LineItem) -> None:
        self.session.delete(item)


class SqlAlchemyEditionEventRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: EditionEvent) -> None:
        self.session.add(entity)

    def for_line_item(
        self,
        line_item_id: str,
        *,
        event_types: Collection[EditionEventType] | None = None,
    ) -> list[EditionEvent]:
        stmt = select(EditionEvent).where(edition_event_table.c.line_item_id == line_item_id)
        if event_types is not None:
            stmt = stmt.where(edition_event_table.c.event_type.in_(list(event_types)))
        return list(self.session.scalars(stmt.order_by(edition_event_table.c.id)))

    def for_product(self, product_id: str) -> list[EditionEvent]:
        stmt = (
            select(EditionEvent)
            .where(edition_event_table.c.product_id == product_id)
            .order_by(edition_event_table.c.id)
        )
        return list(self.session.scalars(stmt))


class SqlAlchemyWarehouseRecordRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: WarehouseRecord) -> None:
        self.session.add(entity)

    def get(self, record_id: str) -> WarehouseRecord | None:
        return self.session.get(WarehouseRecord, record_id)

    def for_order(self, order_id: str) -> list[WarehouseRecord]:
        stmt = (
            select(WarehouseRecord)
            .where(warehouse_record_table.c.matched_order_id == order_id)
            .order_by(warehouse_record_table.c.id)
        )
        return list(self.session.scalars(stmt))

    def find_by_platform_order_id(self, order_id: str) -> list[WarehouseRecord]:
        stmt = (
            select(WarehouseRecord)
            .where(warehouse_record_table.c.platform_order_id == order_id)
            .order_by(warehouse_record_table.c.id)
        )
        return list(self.session.scalars(stmt))


class SqlAlchemySyncRunRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: SyncRun) -> None:
        self.session.add(entity)

    def latest_completed(self, kind: SyncKind) -> SyncRun | None:
        stmt = (
            select(SyncRun)
            .where(sync_run_table.c.kind == kind)
            .where(sync_run_table.c.finished_at.is_not(None))
            .where(sync_run_table.c.aborted.is_(False))
            .order_by(sync_run_table.c.started_at.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

"""Ports for persisting ledger aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from editionledger.domain.model import (
    EditionEvent,
    LineItem,
    Order,
    SyncRun,
    WarehouseRecord,
)

if TYPE_CHECKING:
    from collections.abc import Collection

    from editionledger.domain.model import EditionEventType, OrderSource, SyncKind

TEntity = TypeVar("TEntity")


@runtime_checkable
class Repository(Protocol[TEntity]):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class OrderRepository(Repository[Order], Protocol):
    def get(self, order_id: str) -> Order | None: ...

    def find_by_display_number(
        self, display_number: str, *, source: OrderSource | None = None
    ) -> list[Order]: ...

    def find_by_order_number(self, order_number: str, *, source: OrderSource) -> list[Order]: ...

    def find_by_external_ref(self, external_ref: str) -> list[Order]: ...

    def delete(self, order: Order) -> None: ...


@runtime_checkable
class LineItemRepository(Repository[LineItem], Protocol):
    def get(self, line_item_id: str) -> LineItem | None: ...

    def for_order(self, order_id: str) -> list[LineItem]: ...

    def for_product(self, product_id: str) -> list[LineItem]: ...

    def product_ids(self) -> list[str]: ...

    def owned_by(self, email: str) -> list[LineItem]: ...

    def product_id_for_sku(self, sku: str) -> str | None: ...

    def products_needing_numbers(self) -> list[str]: ...

    def delete(self, item: LineItem) -> None: ...


@runtime_checkable
class EditionEventRepository(Repository[EditionEvent], Protocol):
    def for_line_item(
        self,
        line_item_id: str,
        *,
        event_types: Collection[EditionEventType] | None = None,
    ) -> list[EditionEvent]: ...

    def for_product(self, product_id: str) -> list[EditionEvent]: ...


@runtime_checkable
class WarehouseRecordRepository(Repository[WarehouseRecord], Protocol):
    def get(self, record_id: str) -> WarehouseRecord | None: ...

    def for_order(self, order_id: str) -> list[WarehouseRecord]: ...

    def find_by_platform_order_id(self, order_id: str) -> list[WarehouseRecord]: ...


@runtime_checkable
class SyncRunRepository(Repository[SyncRun], Protocol):
    def latest_completed(self, kind: SyncKind) -> SyncRun | None: ...

"""Application entry points for operators and tooling."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from editionledger.adapters.shopify import ShopifyOrderFetcher
from editionledger.adapters.sqlalchemy import build_product_locks
from editionledger.adapters.sqlalchemy.unit_of_work import startup
from editionledger.adapters.warehouse import WarehouseOrderFetcher
from editionledger.config import SyncConfig, get_sync_config
from editionledger.domain import ownership, revocation, sequencing, verification
from editionledger.domain.errors import EditionLedgerError
from editionledger.domain.reconciliation import OrderReconciler
from editionledger.domain.sync import sync_orders
from editionledger.domain.sync import sync_single_order as sync_one_order

if TYPE_CHECKING:
    from editionledger.adapters.sqlalchemy.unit_of_work import Database
    from editionledger.domain.model import EditionEvent, RemovalReason
    from editionledger.domain.ports.fetching import (
        OrderFetcher,
        PlatformOrderLookup,
        WarehouseWindowLookup,
    )
    from editionledger.domain.ports.locking import ProductLockManager
    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork
    from editionledger.domain.sequencing import ResequenceResult
    from editionledger.domain.sync import SyncResult

log = getLogger(__name__)

OPERATOR = "operator"


class SourceNotConfiguredError(EditionLedgerError):
    """An operation needs an upstream source the ledger was built without."""


@dataclass(slots=True)
class EditionLedger:
    """Operator-facing operations over one database.

    The instance owns the lock manager, so every caller that must exclude the others
    has to share it.
    """

    database: Database
    locks: ProductLockManager
    sync_config: SyncConfig = field(default_factory=SyncConfig)
    platform: PlatformOrderLookup | None = None
    warehouse: WarehouseWindowLookup | None = None
    actor: str = OPERATOR

    def unit_of_work(self) -> EditionUnitOfWork:
        return self.database.unit_of_work()

    def _reconciler(self) -> OrderReconciler:
        return OrderReconciler(allow_composite_match=self.sync_config.allow_composite_match)

    # sync ---------------------------------------------------------------------------

    def trigger_manual_sync(self) -> SyncResult:
        fetchers: list[OrderFetcher] = [
            source for source in (self.platform, self.warehouse) if source is not None
        ]
        if not fetchers:
            raise SourceNotConfiguredError("No order sources configured")
        return sync_orders(
            fetchers=fetchers,
            unit_of_work_factory=self.unit_of_work,
            locks=self.locks,
            reconciler=self._reconciler(),
            config=self.sync_config,
            created_by=self.actor,
        )

    def sync_single_order(self, order_id: str) -> SyncResult:
        if self.platform is None:
            raise SourceNotConfiguredError("Single-order sync needs the platform source")
        return sync_one_order(
            order_id,
            platform=self.platform,
            warehouse=self.warehouse,
            unit_of_work_factory=self.unit_of_work,
            locks=self.locks,
            reconciler=self._reconciler(),
            config=self.sync_config,
            created_by=self.actor,
        )

    # numbering ----------------------------------------------------------------------

    def assign_edition_numbers(
        self, product_id: str, *, force_sync: bool = False, wait: bool = True
    ) -> ResequenceResult:
        """Resequence one product; ``force_sync`` first recomputes every item's status."""

        result = sequencing.resequence_product(
            product_id,
            unit_of_work_factory=self.unit_of_work,
            locks=self.locks,
            wait=wait,
            force_status=force_sync,
            created_by=self.actor,
        )
        log.info(
            f"Assigned edition numbers for {product_id}: active={result.active_count}, "
            f"changes={result.events_emitted}, status_changes={result.status_changes}"
        )
        return result

    def revoke_edition(self, line_item_id: str, *, wait: bool = True) -> revocation.RevocationResult:
        return revocation.revoke_edition(
            line_item_id,
            unit_of_work_factory=self.unit_of_work,
            locks=self.locks,
            wait=wait,
            created_by=self.actor,
        )

    def deactivate_line_item(
        self,
        line_item_id: str,
        reason: RemovalReason,
        *,
        notes: str | None = None,
        wait: bool = True,
    ) -> revocation.DeactivationResult:
        return revocation.deactivate_line_item(
            line_item_id,
            reason,
            unit_of_work_factory=self.unit_of_work,
            locks=self.locks,
            notes=notes,
            wait=wait,
            created_by=self.actor,
        )

    # ownership ----------------------------------------------------------------------

    def record_authentication(self, line_item_id: str) -> ownership.AuthenticationResult:
        return ownership.record_authentication(
            line_item_id, unit_of_work_factory=self.unit_of_work, created_by=self.actor
        )

    def transfer_ownership(
        self, line_item_id: str, *, email: str, name: str | None = None
    ) -> ownership.OwnershipTransfer:
        return ownership.transfer_ownership(
            line_item_id,
            email=email,
            name=name,
            unit_of_work_factory=self.unit_of_work,
            created_by=self.actor,
        )

    # verification -------------------------------------------------------------------

    def verify_edition(self, line_item_id: str) -> verification.EditionRecord:
        return verification.verify_edition(line_item_id, unit_of_work_factory=self.unit_of_work)

    def get_edition_history(self, line_item_id: str) -> list[EditionEvent]:
        return verification.get_edition_history(
            line_item_id, unit_of_work_factory=self.unit_of_work
        )

    def get_ownership_history(self, line_item_id: str) -> list[EditionEvent]:
        return verification.get_ownership_history(
            line_item_id, unit_of_work_factory=self.unit_of_work
        )

    def check_duplicates(self, product_id: str) -> verification.DuplicateReport:
        report = verification.check_duplicates(product_id, unit_of_work_factory=self.unit_of_work)
        if report.has_duplicates:
            log.error(
                f"Duplicate edition numbers for {product_id}: "
                f"{', '.join(str(number) for number in report.duplicates)}"
            )
        return report

    def list_product_editions(
        self, product_id: str, *, include_history: bool = False
    ) -> verification.ProductEditions:
        return verification.list_product_editions(
            product_id,
            unit_of_work_factory=self.unit_of_work,
            include_history=include_history,
        )

    def validate_data_integrity(
        self, product_id: str | None = None
    ) -> verification.IntegrityReport:
        report = verification.validate_data_integrity(
            unit_of_work_factory=self.unit_of_work, product_id=product_id
        )
        if not report.ok:
            log.warning(
                f"Integrity check found {len(report.issues)} issues "
                f"across {report.products_checked} products"
            )
        return report

    def get_collector_editions(self, email: str) -> list[verification.EditionRecord]:
        return verification.get_collector_editions(email, unit_of_work_factory=self.unit_of_work)


def build_ledger(
    *,
    with_sources: bool = True,
    database: Database | None = None,
    sync_config: SyncConfig | None = None,
) -> EditionLedger:
    """Wire a ledger from the environment: database, locks and upstream sources."""

    effective_database = database or startup()
    config = sync_config or get_sync_config()
    ledger = EditionLedger(
        database=effective_database,
        locks=build_product_locks(effective_database, timeout=config.lock_timeout_seconds),
        sync_config=config,
    )
    if with_sources:
        ledger.platform = ShopifyOrderFetcher()
        ledger.warehouse = WarehouseOrderFetcher()
    return ledger

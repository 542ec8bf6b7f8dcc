"""Domain-level exceptions raised by the ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class EditionLedgerError(RuntimeError):
    """Base class for ledger errors surfaced to operators."""


class UpstreamError(EditionLedgerError):
    """Raised when an upstream order source cannot deliver data."""

    def __init__(self, message: str, *, source: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class TransientUpstreamError(UpstreamError):
    """Network or server failure that persisted after the adapter's retries."""


class AuthError(UpstreamError):
    """Credentials were rejected; the whole run must stop."""


class ReconciliationAmbiguity(EditionLedgerError):
    """More than one stored order plausibly matches an incoming record."""

    def __init__(self, record_id: str, *, rule: str, candidates: Sequence[str]) -> None:
        joined = ", ".join(candidates)
        super().__init__(f"{record_id} matches several orders by {rule}: {joined}")
        self.record_id = record_id
        self.rule = rule
        self.candidates = tuple(candidates)


class SequencingConflict(EditionLedgerError):
    """Another caller holds the numbering lock for the product."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"resequence in progress for product {product_id}")
        self.product_id = product_id


class InvariantViolation(EditionLedgerError):
    """Stored numbering breaks the dense 1..N invariant."""

    def __init__(self, product_id: str, *, duplicates: Sequence[int]) -> None:
        numbers = ", ".join(str(number) for number in duplicates)
        super().__init__(f"duplicate edition numbers for product {product_id}: {numbers}")
        self.product_id = product_id
        self.duplicates = tuple(duplicates)


class LineItemNotFound(EditionLedgerError):
    def __init__(self, line_item_id: str) -> None:
        super().__init__(f"line item {line_item_id} not found")
        self.line_item_id = line_item_id


class RevokeOnUnassigned(EditionLedgerError):
    """Revocation requested for a line item without an edition number."""

    def __init__(self, line_item_id: str) -> None:
        super().__init__(f"line item {line_item_id} has no edition number to revoke")
        self.line_item_id = line_item_id

"""Port for serialising numbering work per product."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork


@runtime_checkable
class ProductLockManager(Protocol):
    """Grants exclusive access to one product's numbering.

    The lock covers the read-modify-write of a resequence and must be released only
    after the caller's unit of work has committed or rolled back. Implementations
    raise ``SequencingConflict`` when ``wait`` is false and the lock is taken, or
    when waiting times out.
    """

    def hold(
        self,
        product_id: str,
        *,
        unit_of_work: EditionUnitOfWork | None = None,
        wait: bool = True,
    ) -> AbstractContextManager[None]: ...

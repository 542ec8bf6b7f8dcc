"""Per-product numbering locks."""

from __future__ import annotations

import threading
import zlib
from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from editionledger.adapters.sqlalchemy.unit_of_work import BaseSqlAlchemyUnitOfWork
from editionledger.domain.errors import SequencingConflict

if TYPE_CHECKING:
    from collections.abc import Iterator

    from editionledger.adapters.sqlalchemy.unit_of_work import Database
    from editionledger.domain.ports.locking import ProductLockManager
    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork

log = getLogger(__name__)

# Namespace for pg_advisory_xact_lock(int, int) so other users of advisory locks don't collide
ADVISORY_LOCK_NAMESPACE = 0x0ED1


def advisory_lock_key(product_id: str) -> int:
    """Stable signed 32-bit key for a product id."""

    value = zlib.crc32(product_id.encode("utf-8"))
    return value - (1 << 32) if value >= (1 << 31) else value


class InProcessProductLocks:
    """Product locks for a single process, such as a SQLite-backed deployment.

    Each instance owns its own table of locks; share one instance between all callers
    that must exclude each other.
    """

    def __init__(self, *, timeout: float | None = None) -> None:
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, product_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(product_id)
            if lock is None:
                lock = self._locks[product_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(
        self,
        product_id: str,
        *,
        unit_of_work: EditionUnitOfWork | None = None,
        wait: bool = True,
    ) -> Iterator[None]:
        _ = unit_of_work
        lock = self._lock_for(product_id)
        if not wait:
            acquired = lock.acquire(blocking=False)
        elif self._timeout is None:
            acquired = lock.acquire()
        else:
            acquired = lock.acquire(timeout=self._timeout)
        if not acquired:
            raise SequencingConflict(product_id)
        try:
            yield
        finally:
            lock.release()


class AdvisoryProductLocks:
    """PostgreSQL transaction-scoped advisory locks.

    The lock belongs to the unit of work's transaction and is released by its commit
    or rollback, so it works across processes and hosts.
    """

    def __init__(self, *, timeout: float | None = None) -> None:
        self._timeout = timeout

    @contextmanager
    def hold(
        self,
        product_id: str,
        *,
        unit_of_work: EditionUnitOfWork | None = None,
        wait: bool = True,
    ) -> Iterator[None]:
        if not isinstance(unit_of_work, BaseSqlAlchemyUnitOfWork):
            raise TypeError("Advisory locks need an active SQLAlchemy unit of work")
        session = unit_of_work.session
        params = {"namespace": ADVISORY_LOCK_NAMESPACE, "key": advisory_lock_key(product_id)}
        if not wait:
            acquired = session.execute(
                text("SELECT pg_try_advisory_xact_lock(:namespace, :key)"), params
            ).scalar_one()
            if not acquired:
                raise SequencingConflict(product_id)
        else:
            if self._timeout is not None:
                timeout_ms = max(int(self._timeout * 1000), 1)
                session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
            try:
                session.execute(text("SELECT pg_advisory_xact_lock(:namespace, :key)"), params)
            except OperationalError as exc:
                log.warning(f"Timed out waiting for numbering lock on {product_id}")
                raise SequencingConflict(product_id) from exc
        yield


def build_product_locks(database: Database, *, timeout: float | None = None) -> ProductLockManager:
    if database.dialect_name == "postgresql":
        return AdvisoryProductLocks(timeout=timeout)
    return InProcessProductLocks(timeout=timeout)

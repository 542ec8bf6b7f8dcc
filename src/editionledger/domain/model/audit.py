"""Append-only numbering events and sync run records."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .enums import EditionEventType, SyncKind


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class EditionEvent:
    """One entry of a line item's edition history.

    ``edition_number`` is the number the item holds after the event.
    """

    line_item_id: str
    product_id: str
    event_type: EditionEventType
    edition_number: int | None = None
    payload: dict[str, Any] = field(default_factory=dict[str, Any])
    # Assigned by the database; orders the log
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)
    created_by: str | None = None


@dataclass(eq=False, kw_only=True)
class SyncRun:
    kind: SyncKind
    started_at: datetime
    finished_at: datetime | None = None
    processed: int = 0
    skipped: int = 0
    errored: int = 0
    first_error: str | None = None
    aborted: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)

"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class OrderSource(StrEnum):
    PLATFORM = "platform"
    WAREHOUSE = "warehouse"


class LineItemStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class EditionEventType(StrEnum):
    ASSIGNED = "assigned"
    RESEQUENCED = "resequenced"
    REVOKED = "revoked"
    AUTHENTICATED = "authenticated"
    OWNERSHIP_TRANSFER = "ownership_transfer"
    # Number cleared because the item left the active set
    RELEASED = "released"
    STATUS_CHANGED = "status_changed"


class RemovalReason(StrEnum):
    """Administrative reasons that keep a line item out of the numbering."""

    REVOKED = "revoked"
    REFUNDED = "refunded"
    RESTOCKED = "restocked"
    REMOVED = "removed"
    MANUAL = "manual"


class SyncKind(StrEnum):
    MANUAL = "manual"
    SINGLE_ORDER = "single_order"


# Shopify financial_status values that keep an order's items in the numbering
ACTIVE_FINANCIAL_STATUSES = frozenset({"paid", "authorized", "pending", "partially_paid"})
VOIDED_FINANCIAL_STATUS = "voided"
FULFILLED = "fulfilled"

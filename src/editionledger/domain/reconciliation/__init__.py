"""Order reconciliation across the platform and the warehouse."""

from __future__ import annotations

from .matching import MatchRule, OrderMatch, find_placeholders, match_warehouse_record
from .reconciler import OrderReconciler, ReconcileOutcome, enrich_from_record, placeholder_id

__all__ = [
    "MatchRule",
    "OrderMatch",
    "OrderReconciler",
    "ReconcileOutcome",
    "enrich_from_record",
    "find_placeholders",
    "match_warehouse_record",
    "placeholder_id",
]

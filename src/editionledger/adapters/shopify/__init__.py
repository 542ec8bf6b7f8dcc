"""Shopify Admin API adapter."""

from __future__ import annotations

from .client import ShopifyOrderFetcher
from .schema import OrderPayload
from .translator import customer_name, is_archived, parse_order, to_raw_order

__all__ = [
    "OrderPayload",
    "ShopifyOrderFetcher",
    "customer_name",
    "is_archived",
    "parse_order",
    "to_raw_order",
]

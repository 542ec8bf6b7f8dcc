"""HTTP client for the Shopify Admin REST orders endpoint."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from editionledger.adapters.http_resilience import ResilientClient, find_upstream, get_upstream
from editionledger.config import ShopifyConfig, get_shopify_config
from editionledger.domain.errors import TransientUpstreamError

from .schema import OrderEnvelope
from .translator import to_raw_order

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from datetime import datetime

    import httpx

    from editionledger.config import ResilienceConfig
    from editionledger.domain.ports.fetching import RawOrder

log = getLogger(__name__)

SOURCE_NAME = "shopify"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _next_page_url(response: httpx.Response) -> str | None:
    return response.links.get("next", {}).get("url")


@dataclass(slots=True)
class ShopifyOrderFetcher:
    """Streams orders from the Admin API, following ``Link: rel="next"`` cursors."""

    config: ShopifyConfig = field(default_factory=get_shopify_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    name: str = SOURCE_NAME

    def fetch_since(self, cursor: datetime) -> Iterator[RawOrder]:
        params: dict[str, str | int] | None = {
            "status": "any",
            "updated_at_min": cursor.isoformat(),
            "limit": self.config.page_size,
        }
        log.info(f"Fetching Shopify orders updated since {cursor.isoformat()}")
        # one loop for the whole stream so the rate limiter and connection pool span pages
        with asyncio.Runner() as runner:
            client = self.client_factory(self.config.resilience_config())
            try:
                url: str | None = "orders.json"
                page = 0
                while url is not None:
                    page += 1
                    response = runner.run(
                        get_upstream(client, url, source=self.name, params=params)
                    )
                    yield from self._parse_page(response.json(), page=page)
                    # the next link already carries the cursor and the page size
                    url, params = _next_page_url(response), None
            finally:
                runner.run(client.aclose())

    def fetch_order(self, order_id: str) -> RawOrder | None:
        """Fetch one order; ``None`` when Shopify no longer has it."""

        return asyncio.run(self._fetch_order_async(order_id))

    async def _fetch_order_async(self, order_id: str) -> RawOrder | None:
        async with self.client_factory(self.config.resilience_config()) as client:
            response = await find_upstream(
                client,
                f"orders/{order_id}.json",
                source=self.name,
                params={"status": "any"},
            )
        if response is None:
            return None
        body = response.json()
        try:
            envelope = OrderEnvelope.model_validate(body)
        except ValidationError as exc:
            raise TransientUpstreamError(
                f"Unexpected Shopify payload for order {order_id}", source=self.name
            ) from exc
        return to_raw_order(envelope.order, body["order"])

    def _parse_page(self, body: Any, *, page: int) -> Iterator[RawOrder]:
        if not isinstance(body, dict) or not isinstance(body.get("orders"), list):
            raise TransientUpstreamError(
                f"Unexpected Shopify orders payload on page {page}", source=self.name
            )
        for raw in body["orders"]:
            try:
                envelope = OrderEnvelope.model_validate({"order": raw})
            except ValidationError as exc:
                log.warning(f"Skipping malformed Shopify order on page {page}: {exc}")
                continue
            yield to_raw_order(envelope.order, raw)

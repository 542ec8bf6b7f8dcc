"""HTTP client for the warehouse order-info API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from editionledger.adapters.http_resilience import ResilientClient, get_upstream
from editionledger.config import WarehouseConfig, get_warehouse_config
from editionledger.domain.errors import TransientUpstreamError

from .schema import OrdersInfoPage, OrdersInfoResponse
from .translator import parse_warehouse_order

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from datetime import date

    from editionledger.config import ResilienceConfig
    from editionledger.domain.ports.fetching import RawOrder

log = getLogger(__name__)

SOURCE_NAME = "warehouse"
ORDERS_INFO_PATH = "orders-info"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class WarehouseAPIError(TransientUpstreamError):
    """The API answered with a non-zero application ``code``."""

    def __init__(self, message: str, *, code: int) -> None:
        super().__init__(message, source=SOURCE_NAME)
        self.code = code


@dataclass(slots=True)
class WarehouseOrderFetcher:
    """Streams warehouse orders page by page for a date range."""

    config: WarehouseConfig = field(default_factory=get_warehouse_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    now_provider: Callable[[], datetime] = field(default=_utcnow)
    name: str = SOURCE_NAME

    def fetch_since(self, cursor: datetime) -> Iterator[RawOrder]:
        return self.fetch_window(cursor, self.now_provider())

    def fetch_window(self, start: datetime, end: datetime) -> Iterator[RawOrder]:
        """Orders created between the calendar days of ``start`` and ``end`` (UTC)."""

        start_day = start.astimezone(UTC).date()
        end_day = end.astimezone(UTC).date()
        log.info(f"Fetching warehouse orders from {start_day} to {end_day}")
        with asyncio.Runner() as runner:
            client = self.client_factory(self.config.resilience_config())
            try:
                page = 1
                while True:
                    info = runner.run(self._request_page(client, start_day, end_day, page))
                    yield from self._parse_orders(info, page=page)
                    if page >= info.total_page:
                        break
                    page += 1
            finally:
                runner.run(client.aclose())

    async def _request_page(
        self,
        client: ResilientClient,
        start_day: date,
        end_day: date,
        page: int,
    ) -> OrdersInfoPage:
        response = await get_upstream(
            client,
            ORDERS_INFO_PATH,
            source=self.name,
            params={
                "start_date": start_day.isoformat(),
                "end_date": end_day.isoformat(),
                "page": page,
            },
        )
        try:
            envelope = OrdersInfoResponse.model_validate(response.json())
        except ValidationError as exc:
            raise TransientUpstreamError(
                f"Unexpected warehouse payload on page {page}", source=self.name
            ) from exc
        if envelope.code != 0:
            log.error(f"Warehouse API error {envelope.code}: {envelope.msg}")
            raise WarehouseAPIError(envelope.msg or "warehouse API error", code=envelope.code)
        return envelope.page()

    def _parse_orders(self, info: OrdersInfoPage, *, page: int) -> Iterator[RawOrder]:
        for raw in info.orders:
            try:
                order = parse_warehouse_order(raw)
            except ValueError as exc:
                log.warning(f"Skipping malformed warehouse order on page {page}: {exc}")
                continue
            yield order

"""Rate-limited, retrying HTTP access shared by the order sources.

Retries and backoff live in the transport; what is left after them is mapped onto
the ledger's error types here, so adapters only ever raise ``AuthError`` or
``TransientUpstreamError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import Retry, RetryTransport

from editionledger.config.http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from editionledger.domain.errors import AuthError, TransientUpstreamError

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import QueryParamTypes, URLTypes

AUTH_FAILURE_STATUSES = frozenset({401, 403})

__all__ = [
    "RateLimit",
    "ResilienceConfig",
    "ResilientClient",
    "RetryPolicy",
    "build_retry",
    "find_upstream",
    "get_upstream",
    "raise_for_upstream_status",
]


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        backoff_jitter=policy.backoff_jitter,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


class ResilientClient:
    """``httpx.AsyncClient`` behind a retry transport and an optional rate limiter.

    ``transport`` replaces the network transport underneath the retries, which is how
    tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        limit = config.ratelimit
        self._limiter = AsyncLimiter(limit.max_calls, limit.per_seconds) if limit else None
        self._client = httpx.AsyncClient(
            base_url=config.base_url or "",
            headers=dict(config.default_headers or {}),
            timeout=config.timeout_seconds,
            transport=RetryTransport(transport=transport, retry=build_retry(config.retry)),
        )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: URLTypes, *, params: QueryParamTypes | None = None) -> httpx.Response:
        if self._limiter is None:
            return await self._client.get(url, params=params)
        async with self._limiter:
            return await self._client.get(url, params=params)


def raise_for_upstream_status(response: httpx.Response, *, source: str) -> None:
    """Translate an HTTP error status left after retries into a ledger error."""

    status = response.status_code
    if status < 400:
        return
    message = f"{source} responded {status} for {response.request.url.path}"
    if status in AUTH_FAILURE_STATUSES:
        raise AuthError(message, source=source, status_code=status)
    raise TransientUpstreamError(message, source=source, status_code=status)


async def _request(
    client: ResilientClient,
    url: URLTypes,
    *,
    source: str,
    params: QueryParamTypes | None,
) -> httpx.Response:
    try:
        return await client.get(url, params=params)
    except httpx.HTTPError as exc:
        raise TransientUpstreamError(
            f"{source} request failed after retries: {exc!r}", source=source
        ) from exc


async def get_upstream(
    client: ResilientClient,
    url: URLTypes,
    *,
    source: str,
    params: QueryParamTypes | None = None,
) -> httpx.Response:
    """GET through the resilient client, mapping failures onto ledger errors."""

    response = await _request(client, url, source=source, params=params)
    raise_for_upstream_status(response, source=source)
    return response


async def find_upstream(
    client: ResilientClient,
    url: URLTypes,
    *,
    source: str,
    params: QueryParamTypes | None = None,
) -> httpx.Response | None:
    """Like ``get_upstream`` but a 404 yields ``None``."""

    response = await _request(client, url, source=source, params=params)
    if response.status_code == httpx.codes.NOT_FOUND:
        return None
    raise_for_upstream_status(response, source=source)
    return response

"""Shopify Admin API configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

SHOPIFY_API_VERSION = "2024-01"
SHOPIFY_TIMEOUT_SECONDS = 30.0
SHOPIFY_PAGE_SIZE = 250


@dataclass(frozen=True)
class ShopifyConfig:
    """Holds Shopify Admin API credentials and transport settings."""

    shop_domain: str
    access_token: str = field(repr=False)
    api_version: str = SHOPIFY_API_VERSION
    page_size: int = SHOPIFY_PAGE_SIZE
    resilience: ResilienceConfig | None = None

    @property
    def base_url(self) -> str:
        domain = self.shop_domain.removeprefix("https://").removeprefix("http://").rstrip("/")
        return f"https://{domain}/admin/api/{self.api_version}/"

    def resilience_config(self) -> ResilienceConfig:
        if self.resilience is not None:
            return self.resilience
        return ResilienceConfig(
            name="shopify",
            base_url=self.base_url,
            timeout_seconds=SHOPIFY_TIMEOUT_SECONDS,
            # REST Admin API leaky bucket refills at two calls per second
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            default_headers={
                "X-Shopify-Access-Token": self.access_token,
                "Accept": "application/json",
            },
        )


def get_shopify_config(*, resilience: ResilienceConfig | None = None) -> ShopifyConfig:
    values = require_env_vars(("SHOPIFY_SHOP_DOMAIN", "SHOPIFY_ADMIN_ACCESS_TOKEN"))
    return ShopifyConfig(
        shop_domain=values["SHOPIFY_SHOP_DOMAIN"],
        access_token=values["SHOPIFY_ADMIN_ACCESS_TOKEN"],
        api_version=optional_env_var("SHOPIFY_API_VERSION") or SHOPIFY_API_VERSION,
        resilience=resilience,
    )

"""Warehouse (ChinaDivision) API configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

WAREHOUSE_BASE_URL = "https://api.chinadivision.com"
WAREHOUSE_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class WarehouseConfig:
    """Holds warehouse API credentials and transport settings."""

    api_key: str = field(repr=False)
    base_url: str = WAREHOUSE_BASE_URL
    resilience: ResilienceConfig | None = None

    def resilience_config(self) -> ResilienceConfig:
        if self.resilience is not None:
            return self.resilience
        return ResilienceConfig(
            name="warehouse",
            base_url=self.base_url.rstrip("/") + "/",
            timeout_seconds=WAREHOUSE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            default_headers={"apikey": self.api_key, "Accept": "application/json"},
        )


def get_warehouse_config(*, resilience: ResilienceConfig | None = None) -> WarehouseConfig:
    values = require_env_vars(("WAREHOUSE_API_KEY",))
    return WarehouseConfig(
        api_key=values["WAREHOUSE_API_KEY"],
        base_url=optional_env_var("WAREHOUSE_BASE_URL") or WAREHOUSE_BASE_URL,
        resilience=resilience,
    )

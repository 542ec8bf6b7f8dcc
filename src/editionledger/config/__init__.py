"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_float, optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .shopify import ShopifyConfig, get_shopify_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import SyncConfig, get_sync_config
from .warehouse import WarehouseConfig, get_warehouse_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ShopifyConfig",
    "StorageConfig",
    "SyncConfig",
    "WarehouseConfig",
    "configure_logging",
    "env_flag",
    "env_float",
    "get_database_config",
    "get_shopify_config",
    "get_storage_config",
    "get_sync_config",
    "get_warehouse_config",
    "optional_env_var",
    "require_env_vars",
]

"""Synchronisation and sequencing defaults."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import env_flag, env_float
from .errors import ConfigurationError

DEFAULT_LOOKBACK = timedelta(hours=24)
# re-fetch a little before the last run to cover clock skew and late upstream writes
DEFAULT_CURSOR_BUFFER = timedelta(minutes=5)
DEFAULT_ORDER_WINDOW = timedelta(days=3)
DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class SyncConfig:
    default_lookback: timedelta = DEFAULT_LOOKBACK
    cursor_buffer: timedelta = DEFAULT_CURSOR_BUFFER
    single_order_window: timedelta = DEFAULT_ORDER_WINDOW
    lock_timeout_seconds: float | None = DEFAULT_LOCK_TIMEOUT_SECONDS
    allow_composite_match: bool = True


def get_sync_config() -> SyncConfig:
    lookback_hours = env_float(
        "EDITIONLEDGER_LOOKBACK_HOURS", DEFAULT_LOOKBACK.total_seconds() / 3600
    )
    if lookback_hours <= 0:
        raise ConfigurationError("EDITIONLEDGER_LOOKBACK_HOURS must be positive")
    lock_timeout = env_float("EDITIONLEDGER_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT_SECONDS)
    return SyncConfig(
        default_lookback=timedelta(hours=lookback_hours),
        lock_timeout_seconds=lock_timeout if lock_timeout > 0 else None,
        allow_composite_match=env_flag("EDITIONLEDGER_COMPOSITE_MATCH", default=True),
    )

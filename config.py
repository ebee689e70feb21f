"""Environment configuration for the stock poller.

All variables are optional; empty strings are treated as unset.

- WORKER_URL: base URL whose /force-check path is called on change
- STOCK_API_URL: primary stock source
- STOCK_FALLBACK_URL: alternate source tried once after a 403
- STOCK_AUTH_HEADER / STOCK_AUTH_TOKEN: auth header attached when both are set
- STOCK_TIMESTAMP_FIELDS: comma separated timestamp field names (default reportedAt,reported_at)
- INTERVAL_MS: poll period in milliseconds (default 2000)
- FETCH_TIMEOUT: seconds per stock fetch attempt (default 15)
- WEBHOOK_TIMEOUT: seconds for the /force-check call (default: no timeout)
- HOST / PORT: health server bind address (default 0.0.0.0:3000)
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from stock_checker import DEFAULT_FIELDS

logger = logging.getLogger(__name__)

DEFAULT_WORKER_URL = "https://adad412adasdasdadsasd233s.onrender.com"
DEFAULT_STOCK_API_URL = "https://plantsvsbrainrot.com/api/seed-shop.php?ts=0"
DEFAULT_TIMESTAMP_FIELDS: Tuple[str, ...] = DEFAULT_FIELDS
DEFAULT_INTERVAL_MS = 2000
DEFAULT_PORT = 3000


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; using default %s", name, raw, default)
        return default
    return value if value > 0 else default


def _seconds(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; using default %s", name, raw, default)
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class PollerConfig:
    worker_url: str = DEFAULT_WORKER_URL
    stock_api_url: str = DEFAULT_STOCK_API_URL
    fallback_url: Optional[str] = None
    auth_header: Optional[str] = None
    auth_token: Optional[str] = None
    timestamp_fields: Tuple[str, ...] = DEFAULT_TIMESTAMP_FIELDS
    interval_ms: int = DEFAULT_INTERVAL_MS
    fetch_timeout: Optional[float] = 15.0
    webhook_timeout: Optional[float] = None
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PollerConfig":
        env = os.environ if env is None else env
        fields_raw = _get(env, "STOCK_TIMESTAMP_FIELDS")
        fields = DEFAULT_TIMESTAMP_FIELDS
        if fields_raw:
            parsed = tuple(f.strip() for f in fields_raw.split(",") if f.strip())
            fields = parsed or DEFAULT_TIMESTAMP_FIELDS
        return cls(
            worker_url=_get(env, "WORKER_URL") or DEFAULT_WORKER_URL,
            stock_api_url=_get(env, "STOCK_API_URL") or DEFAULT_STOCK_API_URL,
            fallback_url=_get(env, "STOCK_FALLBACK_URL"),
            auth_header=_get(env, "STOCK_AUTH_HEADER"),
            auth_token=_get(env, "STOCK_AUTH_TOKEN"),
            timestamp_fields=fields,
            interval_ms=_positive_int(env, "INTERVAL_MS", DEFAULT_INTERVAL_MS),
            fetch_timeout=_seconds(env, "FETCH_TIMEOUT", 15.0),
            webhook_timeout=_seconds(env, "WEBHOOK_TIMEOUT", None),
            host=_get(env, "HOST") or "0.0.0.0",
            port=_positive_int(env, "PORT", DEFAULT_PORT),
        )


__all__ = ["PollerConfig"]

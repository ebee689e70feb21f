"""HTTP fetching for the stock source.

- fetch_with_retries: GET with exponential backoff on network-level failures.
  HTTP error statuses are returned untouched so the caller can inspect them
  (the poll cycle needs the 403 to decide on the fallback source).
- build_headers: Accept/User-Agent plus the optional auth header.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

import requests

logger = logging.getLogger(__name__)

USER_AGENT = "pvbr-poller/1.0"


def build_headers(auth_header: Optional[str] = None, auth_token: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "Accept": "application/json",
        "User-Agent": USER_AGENT,
    }
    if auth_header and auth_token:
        headers[auth_header] = auth_token
    return headers


def fetch_with_retries(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    retries: int = 2,
    backoff_ms: int = 500,
    timeout: Optional[float] = None,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """GET ``url``, retrying up to ``retries`` extra times on connection errors.

    Waits ``backoff_ms * 2**attempt`` milliseconds between attempts and re-raises
    the last error once attempts run out.
    """
    client = session if session is not None else requests
    for attempt in range(retries + 1):
        try:
            return client.get(url, headers=headers, timeout=timeout)
        except requests.RequestException as e:
            logger.warning("Fetch attempt %d for %s failed: %s", attempt + 1, url, e)
            if attempt == retries:
                raise
            sleep(backoff_ms * (2 ** attempt) / 1000.0)
    raise RuntimeError("unreachable")  # pragma: no cover


__all__ = ["build_headers", "fetch_with_retries", "USER_AGENT"]

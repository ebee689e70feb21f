"""Poll loop: fetch the stock source, detect reportedAt changes, trigger /force-check.

One cycle:
1. GET STOCK_API_URL (2 retries, 300ms base backoff on connection errors)
2. on HTTP 403 with STOCK_FALLBACK_URL set, GET the fallback once (1 retry)
3. parse the JSON body and hand the snapshot to the ChangeDetector

Cycles never overlap: PollerState.begin_fetch() turns a second concurrent cycle into a no-op.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

import requests

from config import PollerConfig
from fetcher import build_headers, fetch_with_retries
from notifier import TelegramNotifier, WebhookTrigger, format_change_alert
from stock_checker import ChangeDetector, ChangeOutcome, PollerState, Timestamp, parse_snapshot

logger = logging.getLogger(__name__)

PRIMARY_RETRIES = 2
FALLBACK_RETRIES = 1
BACKOFF_MS = 300


def _succeeded(resp: requests.Response) -> bool:
    # resp.ok is true for 3xx as well
    return 200 <= resp.status_code < 300


def _body_text(resp: requests.Response) -> str:
    try:
        return resp.text
    except Exception:  # pragma: no cover - undecodable body
        return "<non-text body>"


class StockPoller:
    def __init__(
        self,
        config: PollerConfig,
        session: Optional[requests.Session] = None,
        telegram: Optional[TelegramNotifier] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.session = session
        self.telegram = telegram
        self.sleep = sleep
        self.state = PollerState()
        self.webhook = WebhookTrigger(config.worker_url, session=session, timeout=config.webhook_timeout)
        self.detector = ChangeDetector(self.state, self._on_change)

    def _on_change(self, previous: Timestamp, current: Timestamp) -> None:
        self.webhook.fire()
        if self.telegram is not None:
            self.telegram.send(format_change_alert(previous, current))

    def _fetch(self, url: str, headers: dict, retries: int) -> requests.Response:
        return fetch_with_retries(
            url,
            headers=headers,
            retries=retries,
            backoff_ms=BACKOFF_MS,
            timeout=self.config.fetch_timeout,
            session=self.session,
            sleep=self.sleep,
        )

    def _try_fallback(self, headers: dict) -> Optional[Any]:
        url = self.config.fallback_url
        logger.info("Attempting fallback STOCK_FALLBACK_URL")
        try:
            resp = self._fetch(url, headers, FALLBACK_RETRIES)
            if _succeeded(resp):
                return resp.json()
            logger.warning("fallback returned %s %s", resp.status_code, _body_text(resp))
        except Exception as e:
            logger.error("Error fetching fallback URL: %s", e)
        return None

    def fetch_payload(self) -> Optional[Any]:
        """Return the decoded stock payload, or None when this cycle should stop."""
        headers = build_headers(self.config.auth_header, self.config.auth_token)
        resp = self._fetch(self.config.stock_api_url, headers, PRIMARY_RETRIES)
        if _succeeded(resp):
            return resp.json()

        logger.warning("stock api returned %s %s", resp.status_code, _body_text(resp))
        if resp.status_code == 403 and self.config.fallback_url:
            return self._try_fallback(headers)
        return None

    def poll_once(self) -> Optional[ChangeOutcome]:
        if not self.state.begin_fetch():
            logger.debug("Poll already in flight; skipping")
            return None
        try:
            payload = self.fetch_payload()
            if payload is None:
                return None
            snapshot = parse_snapshot(payload, self.config.timestamp_fields)
            return self.detector.handle(snapshot)
        except Exception as e:
            logger.error("Error fetching stock API: %s", e)
            return None
        finally:
            self.state.end_fetch()

    def run(self, stop_event: threading.Event) -> None:
        """Poll now, then every ``interval_ms`` until ``stop_event`` is set.

        Each tick gets its own daemon thread so the period stays fixed; a tick that
        lands while a cycle is still running is a no-op.
        """
        logger.info(
            "Starting stock poller (url=%s, interval=%sms)",
            self.config.stock_api_url,
            self.config.interval_ms,
        )
        self._spawn_cycle()
        while not stop_event.wait(self.config.interval_seconds):
            self._spawn_cycle()
        logger.info("Stock poller stopped")

    def _spawn_cycle(self) -> None:
        threading.Thread(target=self.poll_once, name="poll-cycle", daemon=True).start()


__all__ = ["StockPoller"]

"""Notification side of the poller.

- WebhookTrigger: GET {WORKER_URL}/force-check, the downstream hook that runs the
  real notification logic. Fire-and-forget: only the status is looked at and a
  failure is logged, never retried.
- TelegramNotifier: optional direct alert, uses python-telegram-bot >= 20 (async based).

Environment variables for the Telegram alert:
- TELEGRAM_BOT_TOKEN
- TELEGRAM_CHAT_ID (can be a channel ID or user chat id)

If these are missing, the notifier will log a warning and skip sending.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

import requests
from telegram import Bot
from telegram.constants import ParseMode

from stock_checker import Timestamp

logger = logging.getLogger(__name__)

FORCE_CHECK_PATH = "/force-check"


class WebhookTrigger:
    def __init__(
        self,
        worker_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.url = worker_url.rstrip("/") + FORCE_CHECK_PATH
        self.session = session
        self.timeout = timeout

    def fire(self) -> int | None:
        """Call /force-check once; returns the HTTP status or None on error."""
        client = self.session if self.session is not None else requests
        try:
            resp = client.get(self.url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Error calling %s: %s", FORCE_CHECK_PATH, e)
            return None
        logger.info("%s status: %s", FORCE_CHECK_PATH, resp.status_code)
        return resp.status_code


def format_change_alert(previous: Timestamp, current: Timestamp) -> str:
    return (
        "<b>Stock update detected</b>"
        f"\nreportedAt: {previous} → {current}"
    )


class TelegramNotifier:
    def __init__(self, token: Optional[str] = None, chat_id: Optional[str] = None) -> None:
        self.token = token or os.getenv("TELEGRAM_BOT_TOKEN")
        self.chat_id = chat_id or os.getenv("TELEGRAM_CHAT_ID")
        if not self.token:
            logger.warning("TELEGRAM_BOT_TOKEN not set; Telegram alerts disabled.")
        if not self.chat_id:
            logger.warning("TELEGRAM_CHAT_ID not set; Telegram alerts disabled.")

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.chat_id)

    async def _send_async(self, text: str) -> None:
        try:
            async with Bot(self.token) as bot:
                await bot.send_message(
                    chat_id=self.chat_id,
                    text=text,
                    parse_mode=ParseMode.HTML,
                    disable_web_page_preview=True,
                )
            logger.info("Sent Telegram alert: %s", text)
        except Exception as e:  # pragma: no cover - network/telegram errors
            logger.error("Error sending Telegram message: %s", e)

    def send(self, text: str) -> None:
        """Sync wrapper; runs on the poll worker thread, which has no event loop."""
        if not self.enabled:
            logger.debug("Notifier inactive; skipping send: %s", text)
            return
        asyncio.run(self._send_async(text))


__all__ = ["WebhookTrigger", "TelegramNotifier", "format_change_alert"]

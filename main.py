"""Entrypoint for the stock change poller.

Features:
- Polls STOCK_API_URL every INTERVAL_MS (default 2000ms)
- Calls WORKER_URL/force-check when the reported timestamp changes
- Optional Telegram alert on each change (TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID)
- Serves a health endpoint on PORT (default 3000) so the host detects the service

See config.py for the full list of environment variables. LOG_LEVEL sets verbosity.

SIGTERM/SIGINT stop the poll schedule and close the health server before exiting 0.
"""
from __future__ import annotations

import logging
import os
import signal
import sys
import threading

import requests

from config import PollerConfig
from health import HealthServer
from notifier import TelegramNotifier
from poller import StockPoller

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("main")


def main() -> None:
    config = PollerConfig.from_env()
    stop_event = threading.Event()

    health = HealthServer(config.host, config.port)
    try:
        health.start()
    except (OSError, SystemExit) as e:  # werkzeug exits on bind errors
        logger.error("Health server failed to bind %s:%s: %s", config.host, config.port, e)
        sys.exit(1)

    def _handle_signal(signum, frame) -> None:
        logger.info("%s received: shutting down", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)

    poller = StockPoller(config, session=requests.Session(), telegram=TelegramNotifier())
    try:
        poller.run(stop_event)
    finally:
        health.stop()
    sys.exit(0)


if __name__ == "__main__":  # pragma: no cover
    main()

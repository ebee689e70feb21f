"""Liveness endpoint so the hosting platform can see the service while the poller runs.

GET / and /health -> 200 "OK"; any other path -> 200 "Poller running".
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from flask import Flask
from werkzeug.serving import BaseWSGIServer, make_server

logger = logging.getLogger(__name__)

HEALTH_PATHS = {"", "health"}
METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
TEXT_PLAIN = {"Content-Type": "text/plain"}


def create_app() -> Flask:
    app = Flask(__name__)

    @app.route("/", defaults={"path": ""}, methods=METHODS)
    @app.route("/<path:path>", methods=METHODS)
    def catch_all(path: str):
        if path in HEALTH_PATHS:
            return "OK", 200, TEXT_PLAIN
        return "Poller running", 200, TEXT_PLAIN

    return app


class HealthServer:
    def __init__(self, host: str = "0.0.0.0", port: int = 3000, app: Optional[Flask] = None) -> None:
        self.host = host
        self.port = port
        self.app = app or create_app()
        self._server: Optional[BaseWSGIServer] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Bind and serve on a background thread; bind errors are fatal."""
        self._server = make_server(self.host, self.port, self.app, threaded=True)
        # non-daemon handler threads are joined by server_close(), so stop() lets
        # in-flight responses finish
        self._server.daemon_threads = False
        self.port = self._server.server_port
        self._thread = threading.Thread(target=self._server.serve_forever, name="health-server", daemon=True)
        self._thread.start()
        logger.info("Poller HTTP server listening on port %s", self.port)

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        logger.info("Poller HTTP server closed")


__all__ = ["create_app", "HealthServer"]

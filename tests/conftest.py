"""
Pytest fixtures for the stock poller tests.

Provides:
- make_response: builds real requests.Response objects
- FakeSession: stand-in for requests.Session that replays scripted responses per URL
- sleeps: recorder used in place of time.sleep for backoff assertions
"""

import json

import pytest
import requests

from config import PollerConfig

STOCK_URL = "https://stock.example.test/api"
FALLBACK_URL = "https://fallback.example.test/api"
WORKER_URL = "https://worker.example.test"
FORCE_CHECK_URL = WORKER_URL + "/force-check"


def build_response(status=200, payload=None, text=None):
    resp = requests.Response()
    resp.status_code = status
    if payload is not None:
        body = json.dumps(payload)
    else:
        body = text or ""
    resp._content = body.encode("utf-8")
    resp.encoding = "utf-8"
    return resp


class FakeSession:
    """Replays a list of responses/exceptions per URL; the last entry repeats."""

    def __init__(self, routes=None):
        self.routes = {url: list(items) for url, items in (routes or {}).items()}
        self.calls = []

    def add(self, url, *items):
        self.routes.setdefault(url, []).extend(items)

    def get(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "timeout": timeout})
        queue = self.routes.get(url)
        if not queue:
            raise requests.ConnectionError(f"no route for {url}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def calls_to(self, url):
        return [c for c in self.calls if c["url"] == url]


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def session():
    return FakeSession({FORCE_CHECK_URL: [build_response(200, text="ok")]})


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def config():
    return PollerConfig(
        worker_url=WORKER_URL,
        stock_api_url=STOCK_URL,
        interval_ms=10,
    )

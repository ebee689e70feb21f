"""
Tests for fetch_with_retries and request header construction.
"""

import pytest
import requests

from conftest import STOCK_URL, FakeSession
from fetcher import USER_AGENT, build_headers, fetch_with_retries


class TestBuildHeaders:
    def test_defaults(self):
        assert build_headers() == {"Accept": "application/json", "User-Agent": USER_AGENT}

    def test_auth_header_added_when_both_set(self):
        headers = build_headers("Authorization", "Bearer abc")
        assert headers["Authorization"] == "Bearer abc"

    @pytest.mark.parametrize("name,token", [("Authorization", None), (None, "Bearer abc"), ("", "x")])
    def test_auth_header_skipped_when_incomplete(self, name, token):
        headers = build_headers(name, token)
        assert set(headers) == {"Accept", "User-Agent"}


class TestFetchWithRetries:
    def test_returns_first_success_without_sleeping(self, make_response, sleeps):
        session = FakeSession({STOCK_URL: [make_response(200, {"reportedAt": 1})]})
        resp = fetch_with_retries(STOCK_URL, retries=2, backoff_ms=300, session=session, sleep=sleeps.append)
        assert resp.status_code == 200
        assert sleeps == []
        assert len(session.calls) == 1

    def test_retries_connection_errors_with_doubling_backoff(self, make_response, sleeps):
        session = FakeSession({
            STOCK_URL: [
                requests.ConnectionError("reset"),
                requests.Timeout("slow"),
                make_response(200, {"reportedAt": 1}),
            ]
        })
        resp = fetch_with_retries(STOCK_URL, retries=2, backoff_ms=300, session=session, sleep=sleeps.append)
        assert resp.ok
        assert sleeps == [pytest.approx(0.3), pytest.approx(0.6)]
        assert len(session.calls) == 3

    def test_raises_last_error_when_exhausted(self, sleeps):
        session = FakeSession({STOCK_URL: [requests.ConnectionError("down")]})
        with pytest.raises(requests.ConnectionError):
            fetch_with_retries(STOCK_URL, retries=2, backoff_ms=300, session=session, sleep=sleeps.append)
        assert len(session.calls) == 3
        assert len(sleeps) == 2

    def test_http_error_status_is_not_retried(self, make_response, sleeps):
        session = FakeSession({STOCK_URL: [make_response(503, text="busy")]})
        resp = fetch_with_retries(STOCK_URL, retries=2, session=session, sleep=sleeps.append)
        assert resp.status_code == 503
        assert len(session.calls) == 1
        assert sleeps == []

    def test_passes_headers_and_timeout(self, make_response):
        session = FakeSession({STOCK_URL: [make_response(200, {})]})
        fetch_with_retries(STOCK_URL, headers={"Accept": "application/json"}, timeout=5, session=session)
        call = session.calls[0]
        assert call["headers"] == {"Accept": "application/json"}
        assert call["timeout"] == 5

# tests/conftest.py
from __future__ import annotations

import pytest

from feed_aggregator.json_fetch import FetchResult


FEED_ENV_VARS = (
    "FEED_OUTPUT_PATH",
    "FEED_STRICT_EMPTY",
    "FEED_REQUEST_DELAY_S",
    "FEED_TIMEOUT_S",
    "FEED_MAX_ITEMS",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path, monkeypatch):
    for name in FEED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Never let a test write feed.xml into the working tree
    monkeypatch.setenv("FEED_OUTPUT_PATH", str(tmp_path / "feed.xml"))


class FakeFetcher:
    """
    Stand-in for fetch_source keyed by URL.

    Values are response bodies (str) or FetchResult objects for failures.
    Records every URL requested, in order.
    """

    def __init__(self, responses: dict):
        self.responses = responses
        self.calls: list[str] = []

    def __call__(self, url, *, user_agent, timeout_s):
        self.calls.append(url)
        resp = self.responses[url]
        if isinstance(resp, FetchResult):
            return resp
        return FetchResult(ok=True, content=resp)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher

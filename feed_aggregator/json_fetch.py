from __future__ import annotations

from dataclasses import dataclass

from feed_aggregator.error_codes import FETCH_TIMEOUT, FETCH_TRANSIENT, RATE_LIMITED, FETCH_PERMANENT

import http.client
import socket
import urllib.request
import urllib.error


BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class JSONFetchError(Exception):
    """Raised when a source endpoint cannot be fetched (used internally by fetch_json_text)."""


@dataclass
class FetchResult:
    ok: bool
    content: str | None = None
    error_code: str | None = None
    error_message: str | None = None


def fetch_json_text(url: str, *, user_agent: str = BROWSER_USER_AGENT, timeout_s: float = 10.0) -> str:
    """Fetch a JSON API page and return the response text (not yet parsed)."""
    # Some endpoints reject urllib's default client string
    req = urllib.request.Request(
        url,
        headers={"Accept": "application/json", "User-Agent": user_agent},
    )

    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            status = getattr(resp, "status", None)
            body = resp.read().decode("utf-8", errors="replace")

            if status is not None and not 200 <= status < 300:
                raise JSONFetchError(f"FETCH_FAIL: HTTP {status}")

            return body

    except urllib.error.HTTPError as exc:
        raise JSONFetchError(f"FETCH_FAIL: HTTP {exc.code}") from exc
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, (TimeoutError, socket.timeout)):
            raise JSONFetchError("FETCH_FAIL: timeout") from exc
        raise JSONFetchError(f"FETCH_FAIL: URL error: {exc.reason}") from exc
    except TimeoutError as exc:
        raise JSONFetchError("FETCH_FAIL: timeout") from exc
    except (OSError, http.client.HTTPException) as exc:
        raise JSONFetchError(f"FETCH_FAIL: connection error: {exc}") from exc


def classify_fetch_error(message: str) -> str:
    """Map a JSONFetchError message to a stable error code."""
    if "timeout" in message.lower():
        return FETCH_TIMEOUT
    if "HTTP 429" in message:
        return RATE_LIMITED
    if any(f"HTTP {c}" in message for c in range(400, 500)):
        return FETCH_PERMANENT
    return FETCH_TRANSIENT


def fetch_source(url: str, *, user_agent: str = BROWSER_USER_AGENT, timeout_s: float = 10.0) -> FetchResult:
    """Single attempt, no retries: a failed source is skipped for this run."""
    try:
        content = fetch_json_text(url, user_agent=user_agent, timeout_s=timeout_s)
    except JSONFetchError as exc:
        msg = str(exc)
        return FetchResult(ok=False, error_code=classify_fetch_error(msg), error_message=msg)
    return FetchResult(ok=True, content=content)

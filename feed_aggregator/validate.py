# feed_aggregator/validate.py
from __future__ import annotations

import json
from typing import Any

from feed_aggregator.error_codes import NON_JSON, PARSE_ERROR


class ResponseValidationError(ValueError):
    """Raised when a response body is not a JSON object."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


def parse_json_response(text: str) -> dict[str, Any]:
    """
    Parse a source response body.

    - Body must start with "{" after trimming, else NON_JSON (HTML error pages etc.)
    - json.loads failure or nesting too deep to decode -> PARSE_ERROR
    - Returns the decoded object
    """
    stripped = (text or "").strip()
    if not stripped.startswith("{"):
        preview = stripped[:40].replace("\n", " ")
        raise ResponseValidationError(NON_JSON, f"NON_JSON: response starts with {preview!r}")

    try:
        data = json.loads(stripped)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise ResponseValidationError(PARSE_ERROR, f"PARSE_ERROR: {exc}") from exc

    # "{" prefix guarantees an object once decoding succeeds
    return data

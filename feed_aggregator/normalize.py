# feed_aggregator/normalize.py
"""
Link, guid and timestamp normalization.
Pure functions: no side effects, no network access.
"""
from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone


# Section pages on the site are mirrored under /home; articles are not
HOME_PREFIX = re.compile(r"^/home")


def normalize_link(url_path: str | None, base_url: str) -> str:
    """
    Build the absolute article link used as the dedupe key:
    - missing path -> "/"
    - strip one leading "/home" prefix
    - prepend base_url (trailing slash on base_url is ignored)
    """
    path = HOME_PREFIX.sub("", url_path or "/", count=1)
    return base_url.rstrip("/") + path


def compute_guid(title: str | None, description_raw: str | None, published_raw: str | None) -> str:
    """
    Deterministic item identifier.

    Key = MD5(title + description_raw + published_raw), each None -> "".
    MD5 keeps identifiers identical to those already served to feed readers.
    """
    raw = f"{title or ''}{description_raw or ''}{published_raw or ''}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


def parse_published_at(raw: str | None, *, now: datetime) -> datetime:
    """
    Parse an ISO 8601 timestamp from a source payload.

    Rules:
    1. None / blank / unparseable -> now (fallback, not an error)
    2. trailing "Z" means UTC
    3. naive timestamps are taken as UTC
    4. instants outside the representable UTC range -> now
    """
    if not raw or not str(raw).strip():
        return now

    text = str(raw).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return now

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        parsed.astimezone(timezone.utc)
    except OverflowError:
        return now
    return parsed

# feed_aggregator/extract.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from feed_aggregator.normalize import compute_guid, normalize_link, parse_published_at
from feed_aggregator.schemas import FeedItem

if TYPE_CHECKING:
    from feed_aggregator.sources import Source


DEFAULT_TITLE = "No title"
DEFAULT_DESCRIPTION = "No description available"


class ExtractError(ValueError):
    """Raised when a payload lacks the array its source type declares (maps to SHAPE_ERROR)."""


def extract_raw_posts(data: dict[str, Any]) -> list[Any]:
    """
    Pull the list of raw posts out of a parsed payload of unknown shape.

    Resolution order:
    - "posts" if it is an array
    - else "content.items" if it is an array
    - else []
    """
    posts = data.get("posts")
    if isinstance(posts, list):
        return posts

    content = data.get("content")
    if isinstance(content, dict) and isinstance(content.get("items"), list):
        return content["items"]

    return []


def _first_text(raw: dict[str, Any], fields: list[str]) -> str | None:
    for name in fields:
        value = raw.get(name)
        if value:
            return str(value)
    return None


def to_feed_item(
    raw: dict[str, Any],
    *,
    base_url: str,
    description_fields: list[str],
    now: datetime,
) -> FeedItem:
    """
    Lower one raw post to a FeedItem.

    Rules:
    - title falls back to "No title"
    - description: first non-empty field in description_fields, else a fixed literal
    - link: base_url + url_path with "/home" stripped; a non-string path counts as missing
    - published_at: first_published_at, else now
    - guid: hash of raw title + primary description field + raw first_published_at
    """
    title = raw.get("title")
    url_path = raw.get("url_path")
    published_raw = raw.get("first_published_at")
    primary = raw.get(description_fields[0]) if description_fields else None

    return FeedItem(
        title=str(title) if title else DEFAULT_TITLE,
        link=normalize_link(url_path if isinstance(url_path, str) else None, base_url),
        description=_first_text(raw, description_fields) or DEFAULT_DESCRIPTION,
        published_at=parse_published_at(published_raw, now=now),
        guid=compute_guid(
            str(title) if title is not None else None,
            str(primary) if primary is not None else None,
            str(published_raw) if published_raw is not None else None,
        ),
    )


def extract_feed_items(data: dict[str, Any], *, source: Source, base_url: str, now: datetime) -> list[FeedItem]:
    """Extract and lower every post in a payload; non-object entries are skipped. Preserves order."""
    out: list[FeedItem] = []
    for raw in source.raw_posts(data):
        if not isinstance(raw, dict):
            continue
        out.append(
            to_feed_item(
                raw,
                base_url=base_url,
                description_fields=source.description_fields,
                now=now,
            )
        )
    return out

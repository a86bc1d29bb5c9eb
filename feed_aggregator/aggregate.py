# feed_aggregator/aggregate.py
"""
Merge, dedupe, sort and cap FeedItems from all sources.
Pure functions: no side effects.
"""
from __future__ import annotations

from feed_aggregator.schemas import FeedItem


MAX_ITEMS = 50


def dedupe_by_link(items: list[FeedItem]) -> list[FeedItem]:
    """
    Remove items whose link was already seen.
    Preserves order (first occurrence wins), so source order acts as priority.
    """
    seen: set[str] = set()
    out: list[FeedItem] = []

    for item in items:
        if item.link in seen:
            continue
        seen.add(item.link)
        out.append(item)

    return out


def sort_newest_first(items: list[FeedItem]) -> list[FeedItem]:
    """Sort by published_at descending. sorted() is stable, so ties keep input order."""
    return sorted(items, key=lambda it: it.published_at, reverse=True)


def aggregate(per_source: list[list[FeedItem]], *, max_items: int = MAX_ITEMS) -> list[FeedItem]:
    """
    Build the final feed sequence:
    1. concatenate per-source lists in source order
    2. dedupe by link (first wins)
    3. sort newest first (stable)
    4. keep the first max_items
    """
    merged: list[FeedItem] = []
    for items in per_source:
        merged.extend(items)

    return sort_newest_first(dedupe_by_link(merged))[:max_items]

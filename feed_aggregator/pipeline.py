# feed_aggregator/pipeline.py
from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from feed_aggregator.aggregate import aggregate
from feed_aggregator.config import FeedConfig
from feed_aggregator.error_codes import EMPTY_FEED, SHAPE_ERROR
from feed_aggregator.extract import ExtractError, extract_feed_items
from feed_aggregator.json_fetch import FetchResult, fetch_source
from feed_aggregator.logging_utils import log_event
from feed_aggregator.render import render_feed
from feed_aggregator.schemas import FeedItem
from feed_aggregator.validate import ResponseValidationError, parse_json_response


class EmptyFeedError(RuntimeError):
    """Raised in strict mode when no source contributed a single item (maps to EMPTY_FEED)."""


@dataclass
class FeedBuildResult:
    collected: int
    unique: int
    rendered: int
    output_path: str | None = None
    failures: dict[str, int] = field(default_factory=dict)


Fetcher = Callable[..., FetchResult]


def collect_items(
    cfg: FeedConfig,
    *,
    now: datetime,
    fetch: Fetcher | None = None,
    sleep: Callable[[float], None] | None = None,
    failures: dict[str, int] | None = None,
) -> list[list[FeedItem]]:
    """
    Fetch -> validate -> extract every configured source, strictly in order.

    A failing source is logged, counted in `failures` and skipped; it never
    aborts the run. Returns one list per source that produced data.
    """
    fetch = fetch or fetch_source
    sleep = sleep or time.sleep
    if failures is None:
        failures = {}
    per_source: list[list[FeedItem]] = []

    for i, source in enumerate(cfg.sources):
        if i > 0 and cfg.request_delay_s > 0:
            sleep(cfg.request_delay_s)

        url = source.url
        result = fetch(url, user_agent=cfg.user_agent, timeout_s=cfg.timeout_s)

        if not result.ok:
            log_event(
                "source_fetch_failed",
                url=url,
                error_code=result.error_code,
                error_message=result.error_message,
            )
            code = result.error_code or "UNKNOWN"
            failures[code] = failures.get(code, 0) + 1
            continue

        try:
            data = parse_json_response(result.content or "")
            items = extract_feed_items(data, source=source, base_url=cfg.base_url, now=now)
        except ResponseValidationError as exc:
            log_event("source_skipped", url=url, error_code=exc.code, error=str(exc))
            failures[exc.code] = failures.get(exc.code, 0) + 1
            continue
        except ExtractError as exc:
            log_event("source_skipped", url=url, error_code=SHAPE_ERROR, error=str(exc))
            failures[SHAPE_ERROR] = failures.get(SHAPE_ERROR, 0) + 1
            continue

        log_event("source_fetch_ok", url=url, kind=source.kind, items=len(items))
        per_source.append(items)

    return per_source


def write_feed(xml: str, path: str) -> str:
    """
    Replace `path` with the rendered document (UTF-8).

    Written to a sibling temp file first, then swapped in with os.replace, so a
    failed write leaves the previous feed intact. OSError propagates.
    """
    out = Path(path)
    if out.parent != Path("."):
        out.parent.mkdir(parents=True, exist_ok=True)
    tmp = out.with_name(out.name + ".tmp")
    try:
        tmp.write_text(xml, encoding="utf-8")
        os.replace(tmp, out)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    return str(out)


def build_feed(
    cfg: FeedConfig,
    *,
    now: datetime | None = None,
    fetch: Fetcher | None = None,
    sleep: Callable[[float], None] | None = None,
) -> tuple[str, FeedBuildResult]:
    """
    Collect, aggregate and render without touching the filesystem.

    Raises EmptyFeedError when nothing was collected and cfg.strict_empty is set.
    """
    now = now or datetime.now(timezone.utc)
    failures: dict[str, int] = {}

    per_source = collect_items(cfg, now=now, fetch=fetch, sleep=sleep, failures=failures)
    collected = sum(len(items) for items in per_source)

    if collected == 0:
        log_event("feed_empty", strict=cfg.strict_empty, sources=len(cfg.sources), failures_by_code=failures)
        if cfg.strict_empty:
            raise EmptyFeedError(f"{EMPTY_FEED}: no items collected from {len(cfg.sources)} sources")

    final = aggregate(per_source, max_items=cfg.max_items)
    # unique count is measured before the max_items cap
    unique = len({it.link for items in per_source for it in items})
    log_event("aggregate_complete", collected=collected, unique=unique, rendered=len(final))

    xml = render_feed(final, channel=cfg.channel, now=now)
    return xml, FeedBuildResult(collected=collected, unique=unique, rendered=len(final), failures=failures)


def run_feed_build(
    cfg: FeedConfig,
    *,
    now: datetime | None = None,
    fetch: Fetcher | None = None,
    sleep: Callable[[float], None] | None = None,
) -> FeedBuildResult:
    """Full run: build_feed, then persist to cfg.output_path."""
    xml, result = build_feed(cfg, now=now, fetch=fetch, sleep=sleep)
    result.output_path = write_feed(xml, cfg.output_path)
    log_event("feed_written", path=result.output_path, items=result.rendered)
    return result

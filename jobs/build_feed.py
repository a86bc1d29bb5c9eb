from __future__ import annotations

# Load .env before other imports that use env vars
from dotenv import load_dotenv
load_dotenv()

import argparse
import sys
import time

from feed_aggregator.config import ConfigError, load_config
from feed_aggregator.logging_utils import log_event
from feed_aggregator.pipeline import EmptyFeedError, run_feed_build


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Build feed.xml from the site's JSON listing endpoints.")
    p.add_argument("--output", default=None, help="Output path (default: FEED_OUTPUT_PATH or feed.xml)")
    policy = p.add_mutually_exclusive_group()
    policy.add_argument("--strict", dest="strict_empty", action="store_true", default=None,
                        help="Exit 1 without writing when no items were collected")
    policy.add_argument("--lenient", dest="strict_empty", action="store_false",
                        help="Write a channel-only feed when no items were collected")
    p.add_argument("--delay", type=float, default=None, help="Seconds between requests")
    args = p.parse_args(argv)

    try:
        cfg = load_config(output_path=args.output, strict_empty=args.strict_empty, request_delay_s=args.delay)
    except (ConfigError, ValueError) as exc:
        print(f"ERROR config: {exc}", file=sys.stderr)
        return 2

    t0 = time.perf_counter()
    log_event("run_started", sources=len(cfg.sources), strict=cfg.strict_empty, output=cfg.output_path)

    try:
        result = run_feed_build(cfg)
    except EmptyFeedError as exc:
        elapsed_ms = int((time.perf_counter() - t0) * 1000)
        log_event("run_end", status="empty", elapsed_ms=elapsed_ms, error=str(exc))
        print(f"ERROR {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        elapsed_ms = int((time.perf_counter() - t0) * 1000)
        log_event("run_end", status="error", elapsed_ms=elapsed_ms, error_type=type(exc).__name__, error=str(exc))
        print(f"ERROR write failed: {exc}", file=sys.stderr)
        return 1

    elapsed_ms = int((time.perf_counter() - t0) * 1000)
    log_event(
        "run_end",
        status="ok",
        elapsed_ms=elapsed_ms,
        failures_by_code=result.failures,
        counts={"collected": result.collected, "unique": result.unique, "rendered": result.rendered},
    )
    print(
        f"OK collected={result.collected} unique={result.unique} "
        f"rendered={result.rendered} path={result.output_path}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

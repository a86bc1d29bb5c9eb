# feed_aggregator/config.py
"""Run configuration, injected into the pipeline. Defaults describe the live Bonikbarta feed."""
from __future__ import annotations

import os

from pydantic import BaseModel, Field

from feed_aggregator.aggregate import MAX_ITEMS
from feed_aggregator.json_fetch import BROWSER_USER_AGENT
from feed_aggregator.sources import DEFAULT_SOURCES, Source


class ConfigError(ValueError):
    """Raised when a FEED_* environment variable holds an unusable value."""


class ChannelConfig(BaseModel):
    title: str = "Bonikbarta Combined Feed"
    link: str = "https://bonikbarta.com"
    feed_url: str = "https://bonikbarta.com/feed.xml"
    description: str = "Latest articles from Bonikbarta"
    language: str = "bn"
    generator: str = "GitHub Actions RSS Generator"


class FeedConfig(BaseModel):
    base_url: str = "https://bonikbarta.com"
    channel: ChannelConfig = Field(default_factory=ChannelConfig)
    sources: list[Source] = Field(default_factory=lambda: [s.model_copy(deep=True) for s in DEFAULT_SOURCES])
    max_items: int = Field(default=MAX_ITEMS, ge=1)
    # Pause between requests; upstream throttles rapid clients
    request_delay_s: float = Field(default=1.0, ge=0.0)
    timeout_s: float = Field(default=10.0, gt=0.0)
    user_agent: str = BROWSER_USER_AGENT
    output_path: str = "feed.xml"
    # True: zero collected items aborts the run without writing
    strict_empty: bool = True


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be one of {sorted(_TRUE | _FALSE)}, got {raw!r}")


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def load_config(**overrides) -> FeedConfig:
    """
    Build a FeedConfig from FEED_* environment variables.

    Env vars:
        FEED_OUTPUT_PATH, FEED_STRICT_EMPTY, FEED_REQUEST_DELAY_S,
        FEED_TIMEOUT_S, FEED_MAX_ITEMS

    Keyword overrides (e.g. from CLI flags) win over the environment;
    None values are ignored.
    """
    values = {
        "output_path": os.environ.get("FEED_OUTPUT_PATH") or "feed.xml",
        "strict_empty": _env_bool("FEED_STRICT_EMPTY", True),
        "request_delay_s": _env_number("FEED_REQUEST_DELAY_S", 1.0, float),
        "timeout_s": _env_number("FEED_TIMEOUT_S", 10.0, float),
        "max_items": _env_number("FEED_MAX_ITEMS", MAX_ITEMS, int),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return FeedConfig(**values)

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pytest

from feed_aggregator.config import FeedConfig
from feed_aggregator.error_codes import FETCH_TIMEOUT, NON_JSON, PARSE_ERROR, SHAPE_ERROR
from feed_aggregator.json_fetch import FetchResult
from feed_aggregator.pipeline import EmptyFeedError, build_feed, collect_items, run_feed_build, write_feed
from feed_aggregator.sources import AutoSource, ContentItemsSource, PostsSource

NOW = datetime(2026, 1, 14, 12, 0, 0, tzinfo=timezone.utc)

URL_A = "https://example.com/api/a"
URL_B = "https://example.com/api/b"
URL_C = "https://example.com/api/c"

ONE_POST = json.dumps({
    "posts": [{"title": "A", "url_path": "/x", "first_published_at": "2025-01-01T00:00:00Z"}]
})


def make_cfg(tmp_path, sources, **kw) -> FeedConfig:
    return FeedConfig(
        base_url="https://example.com",
        sources=sources,
        request_delay_s=0,
        output_path=str(tmp_path / "feed.xml"),
        **kw,
    )


def items_of(xml: str):
    return ET.fromstring(xml).findall("channel/item")


def test_html_source_is_skipped_and_logged(tmp_path, fake_fetcher, caplog):
    fetch = fake_fetcher({URL_A: ONE_POST, URL_B: "<html>error</html>"})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A), PostsSource(url=URL_B)])

    with caplog.at_level(logging.INFO, logger="bonikbarta_feed"):
        result = run_feed_build(cfg, now=NOW, fetch=fetch)

    xml = (tmp_path / "feed.xml").read_text(encoding="utf-8")
    items = items_of(xml)
    assert len(items) == 1
    assert items[0].findtext("title") == "A"
    assert items[0].findtext("link") == "https://example.com/x"

    assert result.collected == 1
    assert result.unique == 1
    assert result.rendered == 1
    assert result.failures == {NON_JSON: 1}
    assert result.output_path == str(tmp_path / "feed.xml")

    skipped = [json.loads(r.getMessage()) for r in caplog.records if '"source_skipped"' in r.getMessage()]
    assert len(skipped) == 1
    assert skipped[0]["url"] == URL_B
    assert skipped[0]["error_code"] == NON_JSON


def test_empty_posts_contributes_zero_items_without_error(tmp_path, fake_fetcher):
    fetch = fake_fetcher({URL_A: '{"posts": []}', URL_B: ONE_POST})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A), PostsSource(url=URL_B)])

    xml, result = build_feed(cfg, now=NOW, fetch=fetch)
    assert result.failures == {}
    assert result.collected == 1
    assert len(items_of(xml)) == 1


def test_fetch_failure_is_skipped(tmp_path, fake_fetcher):
    fetch = fake_fetcher({
        URL_A: FetchResult(ok=False, error_code=FETCH_TIMEOUT, error_message="FETCH_FAIL: timeout"),
        URL_B: ONE_POST,
    })
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A), PostsSource(url=URL_B)])

    _, result = build_feed(cfg, now=NOW, fetch=fetch)
    assert result.collected == 1
    assert result.failures == {FETCH_TIMEOUT: 1}
    assert fetch.calls == [URL_A, URL_B]


def test_shape_mismatch_is_skipped(tmp_path, fake_fetcher):
    fetch = fake_fetcher({URL_A: '{"content": {"items": []}}', URL_B: ONE_POST})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A), PostsSource(url=URL_B)])

    _, result = build_feed(cfg, now=NOW, fetch=fetch)
    assert result.failures == {SHAPE_ERROR: 1}
    assert result.collected == 1


def test_earlier_source_wins_duplicate_and_order_is_newest_first(tmp_path, fake_fetcher):
    posts = json.dumps({"posts": [
        {"title": "old", "url_path": "/old", "first_published_at": "2025-01-01T00:00:00Z"},
        {"title": "dup-from-posts", "url_path": "/home/dup", "first_published_at": "2025-01-02T00:00:00Z"},
    ]})
    content = json.dumps({"content": {"items": [
        {"title": "dup-from-content", "url_path": "/dup", "first_published_at": "2025-01-05T00:00:00Z"},
        {"title": "new", "url_path": "/new", "first_published_at": "2025-01-03T00:00:00Z"},
    ]}})
    fetch = fake_fetcher({URL_A: posts, URL_B: content})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A), ContentItemsSource(url=URL_B)])

    xml, result = build_feed(cfg, now=NOW, fetch=fetch)

    assert result.collected == 4
    assert result.unique == 3
    titles = [it.findtext("title") for it in items_of(xml)]
    assert titles == ["new", "dup-from-posts", "old"]


def test_unique_count_is_measured_before_cap(tmp_path, fake_fetcher):
    posts = json.dumps({"posts": [
        {"title": str(i), "url_path": f"/{i}", "first_published_at": f"2025-01-01T00:{i:02d}:00Z"}
        for i in range(5)
    ]})
    fetch = fake_fetcher({URL_A: posts})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A)], max_items=2)

    xml, result = build_feed(cfg, now=NOW, fetch=fetch)
    assert result.unique == 5
    assert result.rendered == 2
    assert [it.findtext("title") for it in items_of(xml)] == ["4", "3"]


def test_requests_are_paced_between_sources(tmp_path, fake_fetcher):
    sleeps: list[float] = []
    fetch = fake_fetcher({URL_A: ONE_POST, URL_B: ONE_POST, URL_C: ONE_POST})
    cfg = FeedConfig(
        sources=[AutoSource(url=URL_A), AutoSource(url=URL_B), AutoSource(url=URL_C)],
        request_delay_s=1.0,
    )

    collect_items(cfg, now=NOW, fetch=fetch, sleep=sleeps.append)
    assert sleeps == [1.0, 1.0]
    assert fetch.calls == [URL_A, URL_B, URL_C]


def test_strict_mode_empty_run_raises_and_writes_nothing(tmp_path, fake_fetcher):
    fetch = fake_fetcher({URL_A: '{"posts": []}', URL_B: "<html>error</html>"})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A), PostsSource(url=URL_B)], strict_empty=True)

    with pytest.raises(EmptyFeedError):
        run_feed_build(cfg, now=NOW, fetch=fetch)
    assert not (tmp_path / "feed.xml").exists()


def test_lenient_mode_empty_run_writes_channel_only_feed(tmp_path, fake_fetcher):
    fetch = fake_fetcher({URL_A: '{"posts": []}'})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A)], strict_empty=False)

    result = run_feed_build(cfg, now=NOW, fetch=fetch)

    xml = (tmp_path / "feed.xml").read_text(encoding="utf-8")
    root = ET.fromstring(xml)
    assert root.find("channel/title") is not None
    assert items_of(xml) == []
    assert result.rendered == 0


def test_write_creates_parent_directories(tmp_path, fake_fetcher):
    fetch = fake_fetcher({URL_A: ONE_POST})
    cfg = FeedConfig(
        sources=[PostsSource(url=URL_A)],
        request_delay_s=0,
        output_path=str(tmp_path / "public" / "feed.xml"),
    )

    result = run_feed_build(cfg, now=NOW, fetch=fetch)
    assert (tmp_path / "public" / "feed.xml").exists()
    assert result.output_path == str(tmp_path / "public" / "feed.xml")


def test_numeric_url_path_does_not_abort_run(tmp_path, fake_fetcher):
    bad = json.dumps({"posts": [{"title": "B", "url_path": 12345}]})
    fetch = fake_fetcher({URL_A: bad, URL_B: ONE_POST})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A), PostsSource(url=URL_B)])

    xml, result = build_feed(cfg, now=NOW, fetch=fetch)

    assert result.collected == 2
    links = sorted(it.findtext("link") for it in items_of(xml))
    assert links == ["https://example.com/", "https://example.com/x"]


def test_deeply_nested_payload_is_skipped(tmp_path, fake_fetcher):
    nested = '{"a":' + "[" * 100000 + "]" * 100000 + "}"
    fetch = fake_fetcher({URL_A: nested, URL_B: ONE_POST})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A), PostsSource(url=URL_B)])

    xml, result = build_feed(cfg, now=NOW, fetch=fetch)

    assert result.failures == {PARSE_ERROR: 1}
    assert [it.findtext("title") for it in items_of(xml)] == ["A"]


def test_out_of_range_timestamp_renders(tmp_path, fake_fetcher):
    posts = json.dumps({"posts": [
        {"title": "far", "url_path": "/far", "first_published_at": "0001-01-01T00:00:00+05:00"},
    ]})
    fetch = fake_fetcher({URL_A: posts})
    cfg = make_cfg(tmp_path, [PostsSource(url=URL_A)])

    xml, _ = build_feed(cfg, now=NOW, fetch=fetch)
    assert items_of(xml)[0].findtext("pubDate") == "Wed, 14 Jan 2026 12:00:00 GMT"


def test_failed_write_keeps_previous_feed(tmp_path, monkeypatch):
    out = tmp_path / "feed.xml"
    out.write_text("<rss>previous</rss>", encoding="utf-8")

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("os.replace", failing_replace)

    with pytest.raises(OSError):
        write_feed("<rss>new</rss>", str(out))

    assert out.read_text(encoding="utf-8") == "<rss>previous</rss>"
    assert not (tmp_path / "feed.xml.tmp").exists()


def test_write_feed_replaces_existing_file(tmp_path):
    out = tmp_path / "feed.xml"
    out.write_text("<rss>previous</rss>", encoding="utf-8")

    assert write_feed("<rss>new</rss>", str(out)) == str(out)
    assert out.read_text(encoding="utf-8") == "<rss>new</rss>"
    assert not (tmp_path / "feed.xml.tmp").exists()

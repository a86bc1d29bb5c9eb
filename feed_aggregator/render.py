from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from email.utils import format_datetime

from feed_aggregator.config import ChannelConfig
from feed_aggregator.schemas import FeedItem


# Code points outside the XML 1.0 Char production
_XML_ILLEGAL = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def clean(s: str) -> str:
    return _XML_ILLEGAL.sub("", s)


def xml_text(s: str) -> str:
    return html.escape(clean(s), quote=True)


def cdata(s: str) -> str:
    """Wrap text in CDATA; an embedded "]]>" is split across two sections."""
    body = clean(s).replace("]]>", "]]]]><![CDATA[>")
    return f"<![CDATA[{body}]]>"


def format_rfc1123(dt: datetime) -> str:
    """'Tue, 01 Jan 2025 00:00:00 GMT'; naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def render_item(item: FeedItem) -> str:
    return f"""    <item>
      <title>{xml_text(item.title)}</title>
      <link>{xml_text(item.link)}</link>
      <description>{cdata(item.description)}</description>
      <pubDate>{format_rfc1123(item.published_at)}</pubDate>
      <guid isPermaLink="false">{xml_text(item.guid)}</guid>
    </item>
"""


def render_feed(items: list[FeedItem], *, channel: ChannelConfig, now: datetime) -> str:
    """
    Render an RSS 2.0 document with an Atom self link.

    Escaping policy (all fields):
    - title, link, guid and channel text: entity-escaped
    - description: CDATA
    """
    build_date = format_rfc1123(now)

    head = f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>{xml_text(channel.title)}</title>
    <link>{xml_text(channel.link)}</link>
    <atom:link href="{xml_text(channel.feed_url)}" rel="self" type="application/rss+xml"/>
    <description>{xml_text(channel.description)}</description>
    <language>{xml_text(channel.language)}</language>
    <lastBuildDate>{build_date}</lastBuildDate>
    <generator>{xml_text(channel.generator)}</generator>
"""

    body = "".join(render_item(it) for it in items)
    return head + body + "  </channel>\n</rss>\n"

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class FeedItem(BaseModel):
    """Canonical article record, ready for rendering."""
    title: str
    link: str
    description: str
    published_at: datetime
    guid: str

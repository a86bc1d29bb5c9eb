# feed_aggregator/sources.py
"""Configured source endpoints, one variant per known response shape."""
from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from feed_aggregator.extract import ExtractError, extract_raw_posts


class PostsSource(BaseModel):
    """Post-list pages: {"posts": [...]}."""
    kind: Literal["posts"] = "posts"
    url: str
    description_fields: list[str] = Field(default_factory=lambda: ["excerpt", "summary"])

    def raw_posts(self, data: dict[str, Any]) -> list[Any]:
        posts = data.get("posts")
        if not isinstance(posts, list):
            raise ExtractError("SHAPE_ERROR: expected array at 'posts'")
        return posts


class ContentItemsSource(BaseModel):
    """Filtered listings: {"content": {"items": [...]}}."""
    kind: Literal["content_items"] = "content_items"
    url: str
    description_fields: list[str] = Field(default_factory=lambda: ["summary", "sub_title"])

    def raw_posts(self, data: dict[str, Any]) -> list[Any]:
        content = data.get("content")
        items = content.get("items") if isinstance(content, dict) else None
        if not isinstance(items, list):
            raise ExtractError("SHAPE_ERROR: expected array at 'content.items'")
        return items


class AutoSource(BaseModel):
    """Unknown generation: "posts" first, then "content.items", else nothing."""
    kind: Literal["auto"] = "auto"
    url: str
    description_fields: list[str] = Field(default_factory=lambda: ["excerpt", "summary"])

    def raw_posts(self, data: dict[str, Any]) -> list[Any]:
        return extract_raw_posts(data)


Source = Annotated[
    Union[PostsSource, ContentItemsSource, AutoSource],
    Field(discriminator="kind"),
]


ROOT_PATH = "00000000010000000001"

DEFAULT_SOURCES: list[Source] = [
    ContentItemsSource(url=f"https://bonikbarta.com/api/post-filters/73?root_path={ROOT_PATH}"),
    PostsSource(url=f"https://bonikbarta.com/api/post-lists/35?root_path={ROOT_PATH}"),
    PostsSource(url=f"https://bonikbarta.com/api/post-lists/36?root_path={ROOT_PATH}"),
    PostsSource(url=f"https://bonikbarta.com/api/post-lists/33?root_path={ROOT_PATH}"),
    PostsSource(url=f"https://bonikbarta.com/api/post-lists/34?root_path={ROOT_PATH}"),
]

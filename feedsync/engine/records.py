"""Typed shapes for upstream profiles/items and stored content records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Profile(BaseModel):
    """Account profile as returned by a source client."""

    model_config = ConfigDict(extra="ignore")

    username: str
    name: str | None = None
    biography: str | None = None
    followers_count: int = 0
    following_count: int = 0
    items_count: int = 0
    media_count: int = 0
    likes_count: int = 0
    listed_count: int = 0
    joined: str | None = None
    location: str | None = None
    website: str | None = None
    is_verified: bool = False
    is_blue_verified: bool = False
    is_private: bool = False
    avatar: str | None = None
    banner: str | None = None
    pinned_item_ids: list[str] = Field(default_factory=list)

    @field_validator("pinned_item_ids", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> list[str]:
        if value is None:
            return []
        return [str(entry) for entry in value]

    @field_validator(
        "followers_count",
        "following_count",
        "items_count",
        "media_count",
        "likes_count",
        "listed_count",
        mode="before",
    )
    @classmethod
    def _none_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class Item(BaseModel):
    """A single published item. Reposts and quotes wrap another item."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    username: str | None = None
    text: str = ""
    timestamp: float | None = None
    time_parsed: datetime | None = None
    likes: int = 0
    reposts: int = 0
    replies: int = 0
    is_repost: bool = False
    is_quote: bool = False
    reposted_item: Optional["Item"] = None
    quoted_item: Optional["Item"] = None
    photos: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)
    urls: list[str] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("text", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("likes", "reposts", "replies", mode="before")
    @classmethod
    def _none_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("photos", "videos", "urls", "hashtags", mode="before")
    @classmethod
    def _none_is_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value


Item.model_rebuild()


@dataclass(slots=True)
class ContentRecord:
    """One stored unit of canonical text."""

    key: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


def profile_key(source: str) -> str:
    return f"{source}-profile"


def item_key(item_id: str) -> str:
    return f"item-{item_id}"


def collection_key(source: str) -> str:
    """Key of a previously stored newest-first item collection for ``source``."""

    return f"{source}-items"


__all__ = [
    "ContentRecord",
    "Item",
    "Profile",
    "collection_key",
    "item_key",
    "profile_key",
]

"""
Pydantic models for upstream entries.

Each adapter validates raw entries through one of these before normalizing
into a RawItem; a ValidationError marks just that entry as malformed.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _required_text(value: Optional[str]) -> str:
    if value is not None and not isinstance(value, str):
        raise ValueError("must be a string")
    text = (value or "").strip()
    if not text:
        raise ValueError("must not be empty")
    return text


class FeedEntry(BaseModel):
    title: str
    link: str
    description: str = ""
    author: Optional[str] = None
    entry_id: Optional[str] = None
    published_at: Optional[datetime] = None

    @field_validator("title", "link", mode="before")
    @classmethod
    def _not_blank(cls, value: Optional[str]) -> str:
        return _required_text(value)


class HackerNewsHit(BaseModel):
    objectID: str
    title: str
    story_text: Optional[str] = None
    url: Optional[str] = None
    author: Optional[str] = None
    points: Optional[int] = 0
    num_comments: Optional[int] = 0
    created_at_i: Optional[int] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Optional[str]) -> str:
        return _required_text(value)


class DevToUser(BaseModel):
    name: str = ""
    username: str = ""


class DevToArticle(BaseModel):
    id: int
    title: str
    url: str
    description: Optional[str] = ""
    published_at: Optional[datetime] = None
    tag_list: List[str] = []
    user: DevToUser = Field(default_factory=DevToUser)
    positive_reactions_count: int = 0
    comments_count: int = 0
    reading_time_minutes: int = 0

    @field_validator("tag_list", mode="before")
    @classmethod
    def _split_tags(cls, value):
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value or []


class UnipileAuthor(BaseModel):
    name: Optional[str] = None
    headline: Optional[str] = None


class UnipilePost(BaseModel):
    social_id: str
    share_url: str
    text: str = ""
    parsed_datetime: Optional[datetime] = None
    reaction_counter: int = 0
    comment_counter: int = 0
    repost_counter: int = 0
    author: UnipileAuthor = Field(default_factory=UnipileAuthor)

    @field_validator("share_url", mode="before")
    @classmethod
    def _url(cls, value: Optional[str]) -> str:
        return _required_text(value)


class RedditPost(BaseModel):
    id: str
    title: str
    selftext: str = ""
    author: Optional[str] = None
    subreddit: str = ""
    permalink: str
    score: int = 0
    num_comments: int = 0
    created_utc: float

    @field_validator("title", "permalink", mode="before")
    @classmethod
    def _not_blank(cls, value: Optional[str]) -> str:
        return _required_text(value)

    @field_validator("selftext", mode="before")
    @classmethod
    def _text(cls, value):
        return value or ""


class EmbeddedEntry(BaseModel):
    """Entry lifted out of a page's embedded JSON data island."""

    external_id: Optional[str] = None
    title: str
    url: str
    body: str = ""
    likes: int = 0
    comments: int = 0
    tags: List[str] = []

    @field_validator("title", "url", mode="before")
    @classmethod
    def _not_blank(cls, value: Optional[str]) -> str:
        return _required_text(value)

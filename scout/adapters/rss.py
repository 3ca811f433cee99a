"""
Adapter that fetches and normalizes RSS/Atom feeds.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import feedparser
from bs4 import BeautifulSoup
from pydantic import ValidationError

from scout.adapters.base import SourceAdapter
from scout.errors import TransportError
from scout.models import RawItem
from scout.schemas import FeedEntry

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 300


def strip_html(text: Optional[str], limit: int = DESCRIPTION_LIMIT) -> str:
    if not text:
        return ""
    cleaned = BeautifulSoup(text, "lxml").get_text(" ", strip=True)
    return " ".join(cleaned.split())[:limit]


def parse_feed_entries(feed_content: bytes) -> List[FeedEntry]:
    """
    Parse an RSS or Atom document. Raises TransportError when the root
    document is unreadable; malformed entries are dropped one by one.
    """
    feed = feedparser.parse(feed_content)
    entries = getattr(feed, "entries", None) or []
    if getattr(feed, "bozo", False) and not entries:
        raise TransportError(f"unparseable feed document: {getattr(feed, 'bozo_exception', 'unknown error')}")

    parsed: List[FeedEntry] = []
    for entry in entries:
        summary = entry.get("summary") or entry.get("description")
        if not summary and entry.get("content"):
            summary = entry["content"][0].get("value")
        try:
            parsed.append(
                FeedEntry(
                    title=entry.get("title"),
                    link=entry.get("link"),
                    description=strip_html(summary),
                    author=entry.get("author"),
                    entry_id=entry.get("id"),
                    published_at=_parse_datetime(entry.get("published_parsed") or entry.get("updated_parsed")),
                )
            )
        except ValidationError as exc:
            logger.debug("Skipping malformed feed entry: %s", exc.errors()[:1])
    return parsed


def split_feed_query(query: str) -> Tuple[str, str]:
    """``"TechCrunch|https://techcrunch.com/feed/"`` -> (name, url); a bare URL names itself."""
    if "|" in query:
        name, url = query.split("|", 1)
        return name.strip(), url.strip()
    return query.strip(), query.strip()


class RssAdapter(SourceAdapter):
    default_limit = 10

    def fetch(self, query: str) -> List[RawItem]:
        feed_name, feed_url = split_feed_query(query)
        response = self.http.get(feed_url)
        entries = parse_feed_entries(response.content)
        return [self._to_item(entry, feed_name, query) for entry in entries[: self.limit]]

    def _to_item(self, entry: FeedEntry, feed_name: str, query: str, **extra: str) -> RawItem:
        return RawItem(
            source_id=self.source_id,
            external_id=None,
            title=entry.title,
            body=entry.description,
            url=entry.link,
            author=entry.author,
            published_at=entry.published_at,
            metadata={"feed": feed_name, "query": query, **extra},
        )


def _parse_datetime(struct_time) -> Optional[datetime]:
    if not struct_time:
        return None
    return datetime(*struct_time[:6], tzinfo=timezone.utc)

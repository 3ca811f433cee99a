"""
Turn a scored item into a ``Topic`` and persist it together with its dedup key.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from scout.models import ScoredItem, Topic
from scout.store import Store


def build_topic(scored: ScoredItem, platform: str, now: Optional[datetime] = None) -> Topic:
    item = scored.item
    content: Dict[str, Any] = {
        "category": scored.category,
        "matchedKeywords": list(scored.matched_keywords),
        "isHighValue": scored.is_high_value,
        "description": item.body,
        "author": item.author,
        "engagement": {
            "likes": item.engagement.likes,
            "comments": item.engagement.comments,
            "shares": item.engagement.shares,
        },
        "tags": list(item.tags),
        "publishedAt": item.published_at.isoformat() if item.published_at else None,
        "sourceId": item.source_id,
        "externalId": item.external_id,
    }
    if item.metadata:
        content["metadata"] = dict(item.metadata)
    return Topic(
        title=item.title,
        source=platform,
        source_url=item.url,
        relevance_score=round(scored.score / 100.0, 2),
        content=content,
        created_at=now or datetime.now(timezone.utc),
    )


class TopicSink:
    def __init__(self, store: Store) -> None:
        self.store = store

    def save(self, scored: ScoredItem, platform: str, key: str, now: Optional[datetime] = None) -> bool:
        """False means another writer already claimed ``key``."""
        topic = build_topic(scored, platform, now)
        return self.store.record(platform, key, scored.item.url, topic, now=now)

"""
Hacker News search through Algolia's public API (no auth required).
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import List

from pydantic import ValidationError

from scout.adapters.base import SourceAdapter
from scout.errors import TransportError
from scout.models import Engagement, RawItem
from scout.schemas import HackerNewsHit

logger = logging.getLogger(__name__)

HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"


class HackerNewsAdapter(SourceAdapter):
    endpoint = "https://hn.algolia.com/api/v1/search_by_date"
    default_limit = 20

    def __init__(self, source_id: str, *, lookback_hours: int = 24, **kwargs) -> None:
        super().__init__(source_id, **kwargs)
        self.lookback_hours = lookback_hours

    def fetch(self, query: str) -> List[RawItem]:
        since = int(time.time()) - self.lookback_hours * 3600
        params = {
            "query": query,
            "tags": "story",
            "numericFilters": f"created_at_i>{since}",
            "hitsPerPage": self.limit,
        }
        payload = self.http.get_json(self.endpoint, params=params)
        if not isinstance(payload, dict):
            raise TransportError("Algolia response is not an object", url=self.endpoint)

        items: List[RawItem] = []
        for raw in payload.get("hits") or []:
            try:
                hit = HackerNewsHit.model_validate(raw)
            except ValidationError as exc:
                logger.debug("Skipping malformed HN hit: %s", exc.errors()[:1])
                continue
            items.append(self._to_item(hit, query))
        return items

    def _to_item(self, hit: HackerNewsHit, query: str) -> RawItem:
        discussion_url = HN_ITEM_URL.format(id=hit.objectID)
        published = datetime.fromtimestamp(hit.created_at_i, tz=timezone.utc) if hit.created_at_i else None
        return RawItem(
            source_id=self.source_id,
            external_id=hit.objectID,
            title=hit.title,
            body=hit.story_text or "",
            url=discussion_url,
            author=hit.author,
            published_at=published,
            engagement=Engagement(likes=hit.points or 0, comments=hit.num_comments or 0),
            metadata={"query": query, "link": hit.url or discussion_url},
        )

"""
DEV.to articles API, one query per tag.
"""
from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError

from scout.adapters.base import SourceAdapter
from scout.errors import TransportError
from scout.models import Engagement, RawItem
from scout.schemas import DevToArticle

logger = logging.getLogger(__name__)


class DevToAdapter(SourceAdapter):
    endpoint = "https://dev.to/api/articles"
    default_limit = 10

    def __init__(self, source_id: str, *, top_days: int = 7, **kwargs) -> None:
        super().__init__(source_id, **kwargs)
        self.top_days = top_days

    def fetch(self, query: str) -> List[RawItem]:
        tag = query.lstrip("#").strip()
        payload = self.http.get_json(
            self.endpoint,
            params={"tag": tag, "top": self.top_days, "per_page": self.limit},
        )
        if not isinstance(payload, list):
            raise TransportError("DEV.to response is not a list", url=self.endpoint)

        items: List[RawItem] = []
        for raw in payload:
            try:
                article = DevToArticle.model_validate(raw)
            except ValidationError as exc:
                logger.debug("Skipping malformed DEV.to article: %s", exc.errors()[:1])
                continue
            items.append(
                RawItem(
                    source_id=self.source_id,
                    external_id=str(article.id),
                    title=article.title,
                    body=article.description or "",
                    url=article.url,
                    author=article.user.name or article.user.username or None,
                    published_at=article.published_at,
                    engagement=Engagement(
                        likes=article.positive_reactions_count,
                        comments=article.comments_count,
                    ),
                    tags=tuple(article.tag_list),
                    metadata={
                        "query": tag,
                        "reading_time_minutes": str(article.reading_time_minutes),
                    },
                )
            )
        return items

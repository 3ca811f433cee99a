"""
LinkedIn post search through a connected Unipile account (API key + account id).
"""
from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError

from scout.adapters.base import SourceAdapter
from scout.errors import ConfigError, TransportError
from scout.models import Engagement, RawItem
from scout.schemas import UnipilePost

logger = logging.getLogger(__name__)

TITLE_LENGTH = 100


class UnipileSearchAdapter(SourceAdapter):
    default_limit = 10

    def __init__(
        self,
        source_id: str,
        *,
        dsn: str,
        api_key: str,
        account_id: str,
        date_posted: str = "past_week",
        **kwargs,
    ) -> None:
        if not api_key or not account_id:
            raise ConfigError("Unipile search requires UNIPILE_API_KEY and UNIPILE_ACCOUNT_ID")
        super().__init__(source_id, **kwargs)
        self.endpoint = f"https://{dsn}/api/v1/linkedin/search"
        self.api_key = api_key
        self.account_id = account_id
        self.date_posted = date_posted

    def fetch(self, query: str) -> List[RawItem]:
        body = {
            "api": "classic",
            "category": "posts",
            "keywords": query,
            "date_posted": self.date_posted,
            "sort_by": "date",
        }
        resp = self.http.post_json(
            self.endpoint,
            body,
            headers={"X-API-KEY": self.api_key},
            params={"account_id": self.account_id},
        )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise TransportError("Unipile returned unparseable JSON", url=self.endpoint) from exc
        if not isinstance(payload, dict):
            raise TransportError("Unipile response is not an object", url=self.endpoint)

        items: List[RawItem] = []
        for raw in payload.get("items") or []:
            try:
                post = UnipilePost.model_validate(raw)
            except ValidationError as exc:
                logger.debug("Skipping malformed Unipile post: %s", exc.errors()[:1])
                continue
            text = post.text.strip()
            title = text[:TITLE_LENGTH] + ("..." if len(text) > TITLE_LENGTH else "")
            items.append(
                RawItem(
                    source_id=self.source_id,
                    external_id=post.social_id,
                    title=f"{post.author.name or 'Unknown'}: {title}",
                    body=text,
                    url=post.share_url,
                    author=post.author.name,
                    published_at=post.parsed_datetime,
                    engagement=Engagement(
                        likes=post.reaction_counter,
                        comments=post.comment_counter,
                        shares=post.repost_counter,
                    ),
                    metadata={"query": query, "headline": post.author.headline or ""},
                )
            )
        return items

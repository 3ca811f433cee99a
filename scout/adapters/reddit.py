"""
Newest posts from subreddits through Reddit's OAuth API (client-credentials grant).
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError

from scout.adapters.base import SourceAdapter
from scout.errors import ConfigError, TransportError
from scout.models import Engagement, RawItem
from scout.schemas import RedditPost

logger = logging.getLogger(__name__)

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
LISTING_URL = "https://oauth.reddit.com/r/{subreddit}/new"
POST_URL = "https://reddit.com{permalink}"
# tokens live an hour; refresh early
TOKEN_TTL_SECONDS = 50 * 60


class RedditAdapter(SourceAdapter):
    default_limit = 25

    def __init__(
        self,
        source_id: str,
        *,
        client_id: str,
        client_secret: str,
        lookback_hours: int = 6,
        **kwargs,
    ) -> None:
        if not client_id or not client_secret:
            raise ConfigError("Reddit search requires REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET")
        super().__init__(source_id, **kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.lookback_hours = lookback_hours
        self._token: Optional[str] = None
        self._token_expires = 0.0
        self._lock = threading.Lock()

    def access_token(self) -> str:
        with self._lock:
            if self._token and time.monotonic() < self._token_expires:
                return self._token
            resp = self.http.post_form(
                TOKEN_URL,
                {"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
            )
            try:
                payload = resp.json()
            except ValueError as exc:
                raise TransportError("Reddit token endpoint returned unparseable JSON", url=TOKEN_URL) from exc
            token = payload.get("access_token") if isinstance(payload, dict) else None
            if not token:
                raise TransportError("Reddit token endpoint returned no access_token", url=TOKEN_URL)
            self._token = token
            self._token_expires = time.monotonic() + TOKEN_TTL_SECONDS
            logger.info("Reddit OAuth token acquired")
            return token

    def fetch(self, query: str) -> List[RawItem]:
        subreddit = query.strip().removeprefix("r/")
        url = LISTING_URL.format(subreddit=subreddit)
        payload = self.http.get_json(
            url,
            params={"limit": self.limit},
            headers={"Authorization": f"Bearer {self.access_token()}"},
        )
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise TransportError("Reddit listing is not an object", url=url)

        cutoff = time.time() - self.lookback_hours * 3600
        items: List[RawItem] = []
        for child in payload["data"].get("children") or []:
            raw = child.get("data") if isinstance(child, dict) else None
            try:
                post = RedditPost.model_validate(raw)
            except ValidationError as exc:
                logger.debug("Skipping malformed Reddit post: %s", exc.errors()[:1])
                continue
            if post.created_utc <= cutoff:
                continue
            items.append(
                RawItem(
                    source_id=self.source_id,
                    external_id=post.id,
                    title=post.title,
                    body=post.selftext,
                    url=POST_URL.format(permalink=post.permalink),
                    author=post.author,
                    published_at=datetime.fromtimestamp(post.created_utc, tz=timezone.utc),
                    engagement=Engagement(likes=post.score, comments=post.num_comments),
                    metadata={"query": query, "subreddit": post.subreddit or subreddit},
                )
            )
        return items

"""
Adapter dedicated to Google News RSS keyword queries.
"""
from __future__ import annotations

from typing import Dict, List, Optional
from urllib.parse import urlencode

from scout.adapters.rss import RssAdapter, parse_feed_entries
from scout.models import RawItem


class GoogleNewsRssAdapter(RssAdapter):
    """
    Builds one Google News search feed per keyword and normalizes the articles.
    """

    base_url = "https://news.google.com/rss/search"
    default_limit = 5

    def __init__(
        self,
        source_id: str,
        *,
        hl: str = "en-US",
        gl: str = "US",
        ceid: str = "US:en",
        query_params: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> None:
        super().__init__(source_id, **kwargs)
        self.hl = hl
        self.gl = gl
        self.ceid = ceid
        self.query_params = query_params or {}

    def fetch(self, query: str) -> List[RawItem]:
        response = self.http.get(self.build_feed_url(query))
        entries = parse_feed_entries(response.content)
        return [
            self._to_item(entry, "google-news", query, provider="google-news")
            for entry in entries[: self.limit]
        ]

    def build_feed_url(self, query: str) -> str:
        params = {
            "q": query,
            "hl": self.hl,
            "gl": self.gl,
            "ceid": self.ceid,
        }
        params.update(self.query_params)
        return f"{self.base_url}?{urlencode(params)}"

"""
Scraping fallback for pages that ship their data as an embedded JSON island
(``<script id="__NEXT_DATA__">``), e.g. the Product Hunt homepage.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup
from pydantic import ValidationError

from scout.adapters.base import SourceAdapter
from scout.errors import TransportError
from scout.models import Engagement, RawItem
from scout.schemas import EmbeddedEntry

logger = logging.getLogger(__name__)

DEFAULT_FIELDS = {
    "external_id": "id",
    "title": "name",
    "body": "tagline",
    "url": "slug",
    "likes": "votesCount",
    "comments": "commentsCount",
    "tags": "topics",
}


def extract_data_island(html: str, script_id: str = "__NEXT_DATA__") -> Any:
    soup = BeautifulSoup(html, "lxml")
    tag = soup.find("script", id=script_id)
    if tag is None or not (tag.string or "").strip():
        raise TransportError(f"page has no {script_id} data island")
    try:
        return json.loads(tag.string)
    except json.JSONDecodeError as exc:
        raise TransportError(f"{script_id} is not valid JSON: {exc}") from exc


def dig(payload: Any, path: str) -> Any:
    node = payload
    for part in [p for p in path.split(".") if p]:
        if isinstance(node, dict):
            node = node.get(part)
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
    return node


def _tag_names(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    names = []
    for entry in value:
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, dict) and entry.get("name"):
            names.append(str(entry["name"]))
    return names


class NextDataAdapter(SourceAdapter):
    default_limit = 20

    def __init__(
        self,
        source_id: str,
        *,
        items_path: str = "props.pageProps.posts",
        fields: Optional[Dict[str, str]] = None,
        url_template: Optional[str] = "https://www.producthunt.com/posts/{url}",
        script_id: str = "__NEXT_DATA__",
        **kwargs,
    ) -> None:
        super().__init__(source_id, **kwargs)
        self.items_path = items_path
        self.fields = {**DEFAULT_FIELDS, **(fields or {})}
        self.url_template = url_template
        self.script_id = script_id

    def fetch(self, query: str) -> List[RawItem]:
        html = self.http.get_text(query, headers={"Accept": "text/html"})
        payload = extract_data_island(html, self.script_id)
        entries = dig(payload, self.items_path)
        if not isinstance(entries, list):
            raise TransportError(f"{self.items_path} missing from data island", url=query)

        items: List[RawItem] = []
        for raw in entries[: self.limit]:
            entry = self._parse_entry(raw)
            if entry is None:
                continue
            items.append(
                RawItem(
                    source_id=self.source_id,
                    external_id=entry.external_id,
                    title=entry.title,
                    body=entry.body,
                    url=entry.url,
                    engagement=Engagement(likes=entry.likes, comments=entry.comments),
                    tags=tuple(entry.tags),
                    metadata={"page": query},
                )
            )
        return items

    def _parse_entry(self, raw: Any) -> Optional[EmbeddedEntry]:
        if not isinstance(raw, dict):
            return None
        mapped = {name: dig(raw, path) for name, path in self.fields.items()}
        if mapped.get("url") and self.url_template and not str(mapped["url"]).startswith("http"):
            mapped["url"] = self.url_template.format(url=mapped["url"])
        if mapped.get("external_id") is not None:
            mapped["external_id"] = str(mapped["external_id"])
        mapped["tags"] = _tag_names(mapped.get("tags"))
        mapped = {k: v for k, v in mapped.items() if v is not None}
        try:
            return EmbeddedEntry.model_validate(mapped)
        except ValidationError as exc:
            logger.debug("Skipping malformed embedded entry: %s", exc.errors()[:1])
            return None

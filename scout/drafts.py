"""
Optional suggested-reply drafts for high-intent items (OpenRouter chat completions).
"""
from __future__ import annotations

import logging
from typing import Optional

from scout.errors import TransportError
from scout.http_client import HttpClient
from scout.models import ScoredItem

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"

PROMPT = """You're helping a B2B SaaS founder write a helpful reply to a public post.

Post title: {title}
Post content: {body}

Write a short reply (under 150 words) that adds real value to the discussion,
shares relevant experience, does NOT promote any product, and sounds like a
knowledgeable peer rather than marketing."""


class OpenRouterDrafter:
    def __init__(self, api_key: Optional[str], model: str, http: Optional[HttpClient] = None, max_tokens: int = 300) -> None:
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.http = http or HttpClient(timeout=20, max_retries=0)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def draft(self, scored: ScoredItem) -> Optional[str]:
        if not self.enabled:
            return None
        item = scored.item
        body = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {
                    "role": "user",
                    "content": PROMPT.format(title=item.title, body=item.body or "(link post, no text)"),
                }
            ],
        }
        try:
            resp = self.http.post_json(
                OPENROUTER_URL,
                body,
                headers={"Authorization": f"Bearer {self.api_key}", "X-Title": "Scout"},
            )
            data = resp.json()
        except (TransportError, ValueError) as exc:
            logger.warning("Reply draft failed for %s: %s", item.url, exc)
            return None
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Reply draft response had no content for %s", item.url)
            return None
        if not isinstance(content, str):
            return None
        return content.strip() or None

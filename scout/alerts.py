"""
Google Chat webhook alerts: one ``cardsV2`` card per run, batched across the
top-scoring new items, plus standalone text/card/opportunity notifications.
"""
from __future__ import annotations

import html
import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from scout.errors import AlertDeliveryError, ConfigError, TransportError
from scout.http_client import HttpClient
from scout.models import ScoredItem
from utils.security import redact_secrets

logger = logging.getLogger(__name__)

DEFAULT_ALERT_LIMIT = 5
BODY_PREVIEW = 400

CATEGORY_LABELS = {
    "high_intent": "🎯 High-fit opportunity",
    "problem_aware": "💡 Problem-aware prospect",
    "pain_point": "😓 Pain point detected",
    "competitor": "🏁 Competitor mention",
    "sales_tech": "📈 Sales tech",
    "high_relevance": "🔥 High relevance",
    "medium_relevance": "📰 Medium relevance",
    "general_tech": "🧩 General tech",
    "general": "📌 General match",
}


def select(
    items: Iterable[ScoredItem],
    threshold: int,
    limit: int = DEFAULT_ALERT_LIMIT,
    high_value_only: bool = False,
) -> List[ScoredItem]:
    eligible = [s for s in items if s.score >= threshold and (s.is_high_value or not high_value_only)]
    eligible.sort(key=lambda s: s.score, reverse=True)
    return eligible[:limit]


def _clip(text: str, size: int = BODY_PREVIEW) -> str:
    text = (text or "").strip()
    return text if len(text) <= size else text[:size] + "..."


def _label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category.replace("_", " ").title())


def _decorated(label: str, text: str) -> Dict[str, Any]:
    return {"decoratedText": {"topLabel": label, "text": text, "wrapText": True}}


def _buttons(buttons: Sequence[Mapping[str, str]]) -> Dict[str, Any]:
    return {
        "buttonList": {
            "buttons": [{"text": b["text"], "onClick": {"openLink": {"url": b["url"]}}} for b in buttons]
        }
    }


def _item_section(scored: ScoredItem, reply: Optional[str] = None) -> Dict[str, Any]:
    item = scored.item
    widgets: List[Dict[str, Any]] = [
        _decorated("Title", f"<b>{html.escape(item.title)}</b>"),
        _decorated("Category", _label(scored.category)),
        _decorated("Score", f"{scored.score}/100" + (" · high value" if scored.is_high_value else "")),
    ]
    if item.body:
        widgets.append(_decorated("Summary", _clip(item.body)))
    if scored.matched_keywords:
        widgets.append(_decorated("Matched", ", ".join(scored.matched_keywords[:8])))
    if item.author:
        widgets.append(_decorated("Author", item.author))
    eng = item.engagement
    if eng.likes or eng.comments or eng.shares:
        widgets.append(_decorated("Engagement", f"{eng.likes} likes · {eng.comments} comments · {eng.shares} shares"))
    if reply:
        widgets.append(_decorated("💬 Suggested reply", reply))
    widgets.append(_buttons([{"text": "Open", "url": item.url}]))
    return {"header": _clip(item.title, 80), "collapsible": False, "widgets": widgets}


def build_card(
    items: Sequence[ScoredItem],
    title: str,
    subtitle: str = "",
    replies: Optional[Mapping[str, str]] = None,
    card_id: Optional[str] = None,
) -> Dict[str, Any]:
    """``replies`` maps item url -> drafted reply text."""
    replies = replies or {}
    return {
        "cardsV2": [
            {
                "cardId": card_id or f"scout-{int(time.time())}",
                "card": {
                    "header": {"title": title, "subtitle": subtitle},
                    "sections": [_item_section(s, replies.get(s.item.url)) for s in items],
                },
            }
        ]
    }


def build_notification(request: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Payload for a standalone notification: ``type`` is ``text``, ``card`` or
    ``opportunity``. Raises ValueError for a request that cannot be rendered.
    """
    kind = request.get("type") or "text"
    if kind == "text":
        return {"text": request.get("message") or "No message provided"}
    if kind == "card":
        sections: List[Dict[str, Any]] = [
            {"widgets": [{"textParagraph": {"text": request.get("content") or request.get("message") or ""}}]}
        ]
        buttons = request.get("buttons") or []
        if buttons:
            if not all(isinstance(b, Mapping) and b.get("text") and b.get("url") for b in buttons):
                raise ValueError("every button needs text and url")
            sections.append({"widgets": [_buttons(buttons)]})
        return {
            "cardsV2": [
                {
                    "cardId": f"notify-{int(time.time())}",
                    "card": {
                        "header": {"title": request.get("title") or "Scout notification", "subtitle": request.get("subtitle") or ""},
                        "sections": sections,
                    },
                }
            ]
        }
    if kind == "opportunity":
        opp = request.get("opportunity")
        if not isinstance(opp, Mapping) or not opp.get("url"):
            raise ValueError("opportunity field with a url is required for type=opportunity")
        score = float(opp.get("score") or 0)
        widgets = [
            _decorated("Post", f"<b>{html.escape(str(opp.get('title') or ''))}</b>"),
            _decorated("Relevance", f"{score * 100:.0f}%"),
        ]
        if opp.get("content"):
            widgets.insert(1, _decorated("Content", _clip(str(opp["content"]))))
        if opp.get("suggestedResponse"):
            widgets.append(_decorated("💬 Suggested reply", str(opp["suggestedResponse"])))
        widgets.append(_buttons([{"text": "View Post", "url": str(opp["url"])}]))
        return {
            "cardsV2": [
                {
                    "cardId": f"opportunity-{int(time.time())}",
                    "card": {
                        "header": {
                            "title": _label(str(opp.get("category") or "general")),
                            "subtitle": f"{opp.get('source') or ''} • {opp.get('author') or ''}",
                        },
                        "sections": [{"widgets": widgets}],
                    },
                }
            ]
        }
    raise ValueError(f"unknown notification type: {kind}")


class AlertDispatcher:
    """
    Delivery is best effort: a rejected or failed POST is logged and reported
    as False, never raised into the run.
    """

    def __init__(self, webhook_url: Optional[str], http: Optional[HttpClient] = None, timeout: float = 10) -> None:
        self.webhook_url = webhook_url
        self.http = http or HttpClient(timeout=timeout, max_retries=0)

    @property
    def configured(self) -> bool:
        return bool(self.webhook_url)

    def post(self, payload: Dict[str, Any]) -> bool:
        if not self.webhook_url:
            logger.info("No webhook configured; skipping alert")
            return False
        try:
            self.http.post_json(self.webhook_url, payload, headers={"Content-Type": "application/json"})
        except TransportError as exc:
            err = AlertDeliveryError(redact_secrets(f"webhook rejected alert: {exc}"))
            logger.warning("%s", err)
            return False
        return True

    def dispatch(
        self,
        items: Sequence[ScoredItem],
        title: str,
        subtitle: str = "",
        replies: Optional[Mapping[str, str]] = None,
    ) -> bool:
        if not items:
            return False
        return self.post(build_card(items, title, subtitle, replies))

    def send_notification(self, request: Mapping[str, Any]) -> bool:
        if not self.webhook_url:
            raise ConfigError("GOOGLE_CHAT_WEBHOOK_URL not configured")
        return self.post(build_notification(request))

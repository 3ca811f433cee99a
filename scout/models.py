"""
Core data structures shared by the scout pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Category(str, Enum):
    HIGH_INTENT = "high_intent"
    PROBLEM_AWARE = "problem_aware"
    PAIN_POINT = "pain_point"
    GENERAL = "general"
    COMPETITOR = "competitor"
    SALES_TECH = "sales_tech"
    HIGH_RELEVANCE = "high_relevance"
    MEDIUM_RELEVANCE = "medium_relevance"
    GENERAL_TECH = "general_tech"


@dataclass(frozen=True)
class Engagement:
    likes: int = 0
    comments: int = 0
    shares: int = 0

    def get(self, metric: str) -> int:
        return int(getattr(self, metric, 0) or 0)


@dataclass(frozen=True)
class RawItem:
    """
    One candidate piece of content as fetched, before scoring.
    """

    source_id: str
    external_id: Optional[str]
    title: str
    body: str
    url: str
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    engagement: Engagement = field(default_factory=Engagement)
    tags: Tuple[str, ...] = ()
    metadata: Dict[str, str] = field(default_factory=dict, hash=False, compare=False)

    @property
    def text(self) -> str:
        return f"{self.title} {self.body}"


@dataclass(frozen=True)
class ScoredItem:
    item: RawItem
    score: int
    category: str
    matched_keywords: Tuple[str, ...] = ()
    is_high_value: bool = False


@dataclass(frozen=True)
class Topic:
    title: str
    source: str
    source_url: str
    relevance_score: float
    content: Dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class SourceSpec:
    """
    One upstream shape plus what to ask it (feed URLs, keywords or tags).
    """

    kind: str
    source_id: str
    queries: Tuple[str, ...] = ()
    options: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)


@dataclass
class FeedStatus:
    name: str
    healthy: bool
    last_error: Optional[str] = None
    last_success: Optional[datetime] = None
    items_last_fetch: int = 0
    latency_ms: Optional[float] = None


@dataclass
class QueryResult:
    source_id: str
    query: str
    items: List[RawItem] = field(default_factory=list)
    error: Optional[str] = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunStats:
    feeds_checked: int = 0
    feeds_failed: int = 0
    items_fetched: int = 0
    relevant_items: int = 0
    new_items: int = 0
    alerts_sent: int = 0
    cap_reached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feedsChecked": self.feeds_checked,
            "feedsFailed": self.feeds_failed,
            "itemsFetched": self.items_fetched,
            "relevantItems": self.relevant_items,
            "newItems": self.new_items,
            "alertsSent": self.alerts_sent,
            "capReached": self.cap_reached,
        }


@dataclass
class RunResult:
    platform: str
    success: bool
    stats: RunStats
    timestamp: datetime
    feeds: List[FeedStatus] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "platform": self.platform,
            "stats": self.stats.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.groups:
            payload["groups"] = list(self.groups)
        if self.message:
            payload["message"] = self.message
        return payload

"""
Rule-table relevance scoring for fetched items.

A ``RuleTable`` is plain data (usually loaded from ``config/scouts.yaml``):
an ordered list of categories checked in priority order where the first
category with any match wins, additive bonus rules evaluated for every item,
and optional high-value context patterns. The scorer engine never changes
when a scout gets new keywords.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple

from scout.errors import ConfigError
from scout.models import Category, RawItem, ScoredItem

MIN_SCORE = 0
MAX_SCORE = 100
ENGAGEMENT_METRICS = {"likes", "comments", "shares"}


def _compile(patterns: Iterable[str]) -> Tuple[Pattern[str], ...]:
    compiled = []
    for raw in patterns or ():
        try:
            compiled.append(re.compile(raw, re.IGNORECASE))
        except re.error as exc:
            raise ConfigError(f"Invalid pattern {raw!r}: {exc}") from exc
    return tuple(compiled)


def _terms(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(str(v) for v in (values or ()) if str(v).strip())


@dataclass(frozen=True)
class CategoryRule:
    category: str
    weight: int
    keywords: Tuple[str, ...] = ()
    patterns: Tuple[Pattern[str], ...] = ()
    keyword_bonus: int = 0
    max_keyword_bonus: int = 0

    def matches(self, text: str, lowered: str) -> List[str]:
        found = [kw for kw in self.keywords if kw.lower() in lowered]
        found.extend(p.pattern for p in self.patterns if p.search(text))
        return found

    def base_score(self, match_count: int) -> int:
        bonus = min(self.max_keyword_bonus, self.keyword_bonus * max(0, match_count - 1))
        return self.weight + bonus

    @property
    def ceiling(self) -> int:
        return self.weight + self.max_keyword_bonus


@dataclass(frozen=True)
class BonusRule:
    """
    Additive rule applied on top of the category base.

    ``keyword``/``pattern`` rules add ``points`` once (or per match with
    ``per_match``), ``engagement`` rules add ``points`` when a metric is
    strictly above ``threshold``, ``tag`` rules add ``points`` when the item
    carries any listed tag.
    """

    kind: str
    points: int
    label: str = ""
    terms: Tuple[str, ...] = ()
    patterns: Tuple[Pattern[str], ...] = ()
    metric: str = ""
    threshold: int = 0
    tags: Tuple[str, ...] = ()
    per_match: bool = False

    def evaluate(self, item: RawItem, text: str, lowered: str) -> Tuple[int, List[str]]:
        if self.kind == "keyword":
            hits = [t for t in self.terms if t.lower() in lowered]
            return self._text_points(hits)
        if self.kind == "pattern":
            hits = [p.pattern for p in self.patterns if p.search(text)]
            return self._text_points(hits)
        if self.kind == "engagement":
            return (self.points, []) if item.engagement.get(self.metric) > self.threshold else (0, [])
        if self.kind == "tag":
            wanted = {t.lower() for t in self.tags}
            carried = {t.lower() for t in item.tags}
            return (self.points, []) if wanted & carried else (0, [])
        return 0, []

    def _text_points(self, hits: List[str]) -> Tuple[int, List[str]]:
        if not hits:
            return 0, []
        points = self.points * len(hits) if self.per_match else self.points
        labels = [self.label] if self.label else hits
        return points, labels


@dataclass(frozen=True)
class RuleTable:
    categories: Tuple[CategoryRule, ...] = ()
    bonuses: Tuple[BonusRule, ...] = ()
    default_score: int = 20
    default_category: str = Category.GENERAL.value
    high_value_patterns: Tuple[Pattern[str], ...] = ()
    high_value_bonus: int = 0
    exclude_patterns: Tuple[Pattern[str], ...] = ()
    min_length: int = 0

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Reject tables that would break score monotonicity: a higher-priority
        category must never be able to score below what a lower one can reach.
        """
        for rule in self.categories:
            if rule.keyword_bonus < 0 or rule.max_keyword_bonus < 0:
                raise ConfigError(f"Category {rule.category!r} has a negative keyword bonus")
        for idx, higher in enumerate(self.categories[:-1]):
            lower = max(self.categories[idx + 1:], key=lambda r: r.ceiling)
            if higher.weight < lower.ceiling:
                raise ConfigError(
                    f"Category {higher.category!r} (weight {higher.weight}) can score below "
                    f"lower-priority category {lower.category!r}"
                )
        if self.categories and self.default_score > min(r.weight for r in self.categories):
            raise ConfigError("default_score must not exceed the lowest category weight")
        for bonus in self.bonuses:
            if bonus.points < 0:
                raise ConfigError(f"Bonus rule {bonus.label or bonus.kind!r} has negative points")
            if bonus.kind not in {"keyword", "pattern", "engagement", "tag"}:
                raise ConfigError(f"Unknown bonus rule type: {bonus.kind}")
            if bonus.kind == "engagement" and bonus.metric not in ENGAGEMENT_METRICS:
                raise ConfigError(f"Unknown engagement metric: {bonus.metric}")
        if self.high_value_bonus < 0:
            raise ConfigError("high_value_bonus must not be negative")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RuleTable":
        data = data or {}
        categories = tuple(
            CategoryRule(
                category=str(entry["category"]),
                weight=int(entry["weight"]),
                keywords=_terms(entry.get("keywords")),
                patterns=_compile(entry.get("patterns")),
                keyword_bonus=int(entry.get("keyword_bonus", 0)),
                max_keyword_bonus=int(entry.get("max_keyword_bonus", 0)),
            )
            for entry in data.get("categories") or []
        )
        bonuses = tuple(
            BonusRule(
                kind=str(entry.get("type", "keyword")),
                points=int(entry.get("points", 0)),
                label=str(entry.get("label", "")),
                terms=_terms(entry.get("terms")),
                patterns=_compile(entry.get("patterns")),
                metric=str(entry.get("metric", "")),
                threshold=int(entry.get("threshold", 0)),
                tags=_terms(entry.get("tags")),
                per_match=bool(entry.get("per_match", False)),
            )
            for entry in data.get("bonuses") or []
        )
        return cls(
            categories=categories,
            bonuses=bonuses,
            default_score=int(data.get("default_score", 20)),
            default_category=str(data.get("default_category", Category.GENERAL.value)),
            high_value_patterns=_compile(data.get("high_value_patterns")),
            high_value_bonus=int(data.get("high_value_bonus", 0)),
            exclude_patterns=_compile(data.get("exclude_patterns")),
            min_length=int(data.get("min_length", 0)),
        )


class RelevanceScorer:
    def __init__(self, rules: RuleTable) -> None:
        self.rules = rules

    def is_noise(self, item: RawItem) -> bool:
        # body carries the full post text for social sources; titles are derived from it
        if len((item.body or item.title).strip()) < self.rules.min_length:
            return True
        return any(p.search(item.text) for p in self.rules.exclude_patterns)

    def score(self, item: RawItem) -> ScoredItem:
        text = item.text
        lowered = text.lower()

        category = self.rules.default_category
        score = self.rules.default_score
        matched: List[str] = []
        for rule in self.rules.categories:
            hits = rule.matches(text, lowered)
            if hits:
                category = rule.category
                score = rule.base_score(len(hits))
                matched.extend(hits)
                break

        for bonus in self.rules.bonuses:
            points, labels = bonus.evaluate(item, text, lowered)
            score += points
            matched.extend(label for label in labels if label not in matched)

        is_high_value = any(p.search(text) for p in self.rules.high_value_patterns)
        if is_high_value:
            score += self.rules.high_value_bonus

        return ScoredItem(
            item=item,
            score=max(MIN_SCORE, min(MAX_SCORE, int(round(score)))),
            category=category,
            matched_keywords=tuple(matched),
            is_high_value=is_high_value,
        )

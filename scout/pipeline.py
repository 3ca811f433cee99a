"""
Generic scout orchestration: cap check, fetch, score, dedup, persist, alert.

One ``ScoutPipeline`` serves every scout; what differs between scouts is the
``SourceConfig`` handed to ``run``.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from scout.adapters import build_default_registry
from scout.adapters.base import AdapterRegistry, SourceAdapter
from scout.alerts import AlertDispatcher, select
from scout.cap import CapEnforcer
from scout.config_loader import GroupSpec, SourceConfig
from scout.dedupe import item_key
from scout.drafts import OpenRouterDrafter
from scout.errors import ConfigError, PersistenceError
from scout.http_client import HttpClient
from scout.models import FeedStatus, QueryResult, RawItem, RunResult, RunStats, ScoredItem, SourceSpec
from scout.rate_limiter import RateLimiter
from scout.scoring import RelevanceScorer
from scout.settings import ScoutSettings
from scout.sink import TopicSink
from scout.store import Store

logger = logging.getLogger(__name__)

Job = Tuple[SourceSpec, SourceAdapter, Tuple[str, ...]]


class ScoutPipeline:
    def __init__(
        self,
        store: Store,
        dispatcher: AlertDispatcher,
        settings: ScoutSettings,
        registry: Optional[AdapterRegistry] = None,
        http: Optional[HttpClient] = None,
        drafter: Optional[OpenRouterDrafter] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.settings = settings
        self.registry = registry or build_default_registry(settings)
        self.http = http or HttpClient(timeout=settings.http_timeout, user_agent=settings.user_agent)
        self.drafter = drafter
        self.rate_limiter = rate_limiter or RateLimiter()
        self.sink = TopicSink(store)
        self._health: Dict[str, Dict[str, FeedStatus]] = {}
        self._last_runs: Dict[str, RunResult] = {}

    # ------------------------------------------------------------------ run
    def run(
        self,
        config: SourceConfig,
        groups: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> RunResult:
        now = now or datetime.now(timezone.utc)
        stats = RunStats()
        selected = config.select_groups(groups)
        group_names = [g.name for g in selected] if groups is not None else []

        cap = CapEnforcer(self.store, config.platform_id, config.daily_cap)
        remaining = cap.remaining(now)
        if remaining <= 0:
            stats.cap_reached = True
            logger.info("%s: daily cap of %d reached; skipping run", config.platform_id, config.daily_cap)
            return self._remember(
                RunResult(
                    platform=config.platform_id,
                    success=True,
                    stats=stats,
                    timestamp=now,
                    groups=group_names,
                    message="Daily cap reached",
                )
            )

        scorer = RelevanceScorer(config.rules)
        jobs = self._build_jobs(config, selected)
        feeds: List[FeedStatus] = []
        new_items: List[ScoredItem] = []
        batch_keys: Set[str] = set()

        logger.info("%s: starting run with %d sources, %d remaining today", config.platform_id, len(jobs), remaining)
        if jobs:
            workers = max(1, min(self.settings.fetch_workers, len(jobs)))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures: List[Future] = [
                    executor.submit(self._fetch_source, spec, adapter, queries) for spec, adapter, queries in jobs
                ]
                for idx, future in enumerate(futures):
                    if cap.exhausted:
                        for pending in futures[idx:]:
                            pending.cancel()
                        break
                    for result in future.result():
                        if cap.exhausted:
                            break
                        feeds.append(self._track(config.platform_id, result, now))
                        stats.feeds_checked += 1
                        if not result.ok:
                            stats.feeds_failed += 1
                            continue
                        stats.items_fetched += len(result.items)
                        for item in result.items:
                            if cap.exhausted:
                                break
                            scored = self._process_item(config, scorer, cap, item, batch_keys, stats, now)
                            if scored is not None:
                                new_items.append(scored)

        if cap.exhausted:
            stats.cap_reached = True
            logger.info("%s: daily cap reached during run", config.platform_id)

        stats.alerts_sent = self._alert(config, new_items)
        logger.info(
            "%s: done feeds=%d failed=%d fetched=%d relevant=%d new=%d alerts=%d",
            config.platform_id,
            stats.feeds_checked,
            stats.feeds_failed,
            stats.items_fetched,
            stats.relevant_items,
            stats.new_items,
            stats.alerts_sent,
        )
        return self._remember(
            RunResult(
                platform=config.platform_id,
                success=True,
                stats=stats,
                timestamp=now,
                feeds=feeds,
                groups=group_names,
            )
        )

    # ------------------------------------------------------------ fetching
    def _build_adapter(self, spec: SourceSpec) -> Optional[SourceAdapter]:
        try:
            return self.registry.build(spec, http=self.http, rate_limiter=self.rate_limiter)
        except ConfigError as exc:
            logger.warning("Skipping source %s: %s", spec.source_id, exc)
            return None

    def _build_jobs(self, config: SourceConfig, groups: Iterable[GroupSpec]) -> List[Job]:
        groups = tuple(groups)
        jobs: List[Job] = []
        for spec in config.sources:
            queries = config.queries_for(spec, groups)
            if not queries:
                logger.debug("Source %s has no queries for this run", spec.source_id)
                continue
            adapter = self._build_adapter(spec)
            if adapter is not None:
                jobs.append((spec, adapter, queries))
        return jobs

    def _fetch_source(self, spec: SourceSpec, adapter: SourceAdapter, queries: Sequence[str]) -> List[QueryResult]:
        results = list(adapter.fetch_many(queries))
        fallback = spec.options.get("fallback")
        if isinstance(fallback, SourceSpec) and not any(r.items for r in results):
            logger.info("Source %s returned nothing; trying fallback %s", spec.source_id, fallback.source_id)
            fallback_adapter = self._build_adapter(fallback)
            if fallback_adapter is not None:
                results.extend(fallback_adapter.fetch_many(fallback.queries))
        return results

    def _track(self, platform: str, result: QueryResult, now: datetime) -> FeedStatus:
        name = f"{result.source_id}:{result.query}"
        previous = self._health.get(platform, {}).get(name)
        status = FeedStatus(
            name=name,
            healthy=result.ok,
            last_error=result.error,
            last_success=now if result.ok else (previous.last_success if previous else None),
            items_last_fetch=len(result.items),
            latency_ms=round(result.latency_ms, 1),
        )
        self._health.setdefault(platform, {})[name] = status
        return status

    # ------------------------------------------------------------ per item
    def _process_item(
        self,
        config: SourceConfig,
        scorer: RelevanceScorer,
        cap: CapEnforcer,
        item: RawItem,
        batch_keys: Set[str],
        stats: RunStats,
        now: datetime,
    ) -> Optional[ScoredItem]:
        key = item_key(config.key_prefix, item.external_id, item.url)
        if key in batch_keys:
            return None
        batch_keys.add(key)

        if scorer.is_noise(item):
            logger.debug("Dropping noise item %s", key)
            return None
        scored = scorer.score(item)
        if scored.score < config.persist_threshold:
            return None
        stats.relevant_items += 1

        try:
            if self.store.is_seen(config.platform_id, key):
                return None
            saved = self.sink.save(scored, config.platform_id, key, now=now)
        except PersistenceError as exc:
            logger.error("Failed to persist %s: %s", key, exc)
            return None
        if not saved:
            logger.debug("%s already claimed by a concurrent run", key)
            return None

        stats.new_items += 1
        cap.consume()
        return scored

    # ------------------------------------------------------------- alerting
    def _alert(self, config: SourceConfig, new_items: Sequence[ScoredItem]) -> int:
        chosen = select(
            new_items,
            config.alert_threshold,
            config.alert_limit,
            high_value_only=config.alert_high_value_only,
        )
        if not chosen:
            return 0
        replies: Dict[str, str] = {}
        if self.drafter is not None and self.drafter.enabled and config.draft_categories:
            for scored in chosen:
                if scored.category in config.draft_categories:
                    reply = self.drafter.draft(scored)
                    if reply:
                        replies[scored.item.url] = reply
        subtitle = f"{len(chosen)} new item{'s' if len(chosen) != 1 else ''}"
        accepted = self.dispatcher.dispatch(chosen, config.card_title, subtitle, replies)
        return len(chosen) if accepted else 0

    # --------------------------------------------------------------- status
    def _remember(self, result: RunResult) -> RunResult:
        self._last_runs[result.platform] = result
        return result

    def get_health(self, platform: Optional[str] = None) -> List[FeedStatus]:
        if platform is not None:
            return list(self._health.get(platform, {}).values())
        return [status for feeds in self._health.values() for status in feeds.values()]

    def last_runs(self) -> Dict[str, RunResult]:
        return dict(self._last_runs)

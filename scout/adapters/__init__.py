"""
Concrete source adapters and the default registry wiring them to source kinds.
"""
from __future__ import annotations

from typing import Optional

from scout.adapters.base import DEFAULT_QUERY_DELAY, AdapterRegistry, SourceAdapter
from scout.adapters.devto import DevToAdapter
from scout.adapters.google_news import GoogleNewsRssAdapter
from scout.adapters.hackernews import HackerNewsAdapter
from scout.adapters.next_data import NextDataAdapter
from scout.adapters.reddit import RedditAdapter
from scout.adapters.rss import RssAdapter
from scout.adapters.unipile import UnipileSearchAdapter
from scout.http_client import HttpClient
from scout.models import SourceSpec
from scout.rate_limiter import RateLimiter
from scout.settings import ScoutSettings


def _common(spec: SourceSpec, http: HttpClient, rate_limiter: Optional[RateLimiter]) -> dict:
    return {
        "http": http,
        "rate_limiter": rate_limiter,
        "limit": spec.options.get("limit"),
        "query_delay": float(spec.options.get("query_delay", DEFAULT_QUERY_DELAY)),
    }


def build_default_registry(settings: ScoutSettings) -> AdapterRegistry:
    registry = AdapterRegistry()

    def rss(spec, *, http, rate_limiter=None):
        return RssAdapter(spec.source_id, **_common(spec, http, rate_limiter))

    def google_news(spec, *, http, rate_limiter=None):
        opts = spec.options
        return GoogleNewsRssAdapter(
            spec.source_id,
            hl=opts.get("hl", "en-US"),
            gl=opts.get("gl", "US"),
            ceid=opts.get("ceid", "US:en"),
            query_params=opts.get("query_params") if isinstance(opts.get("query_params"), dict) else None,
            **_common(spec, http, rate_limiter),
        )

    def hackernews(spec, *, http, rate_limiter=None):
        return HackerNewsAdapter(
            spec.source_id,
            lookback_hours=int(spec.options.get("lookback_hours", 24)),
            **_common(spec, http, rate_limiter),
        )

    def devto(spec, *, http, rate_limiter=None):
        return DevToAdapter(
            spec.source_id,
            top_days=int(spec.options.get("top_days", 7)),
            **_common(spec, http, rate_limiter),
        )

    def next_data(spec, *, http, rate_limiter=None):
        opts = spec.options
        return NextDataAdapter(
            spec.source_id,
            items_path=opts.get("items_path", "props.pageProps.posts"),
            fields=opts.get("fields") if isinstance(opts.get("fields"), dict) else None,
            url_template=opts.get("url_template", "https://www.producthunt.com/posts/{url}"),
            **_common(spec, http, rate_limiter),
        )

    def unipile(spec, *, http, rate_limiter=None):
        return UnipileSearchAdapter(
            spec.source_id,
            dsn=spec.options.get("dsn") or settings.unipile_dsn,
            api_key=settings.unipile_api_key or "",
            account_id=settings.unipile_account_id or "",
            date_posted=spec.options.get("date_posted", "past_week"),
            **_common(spec, http, rate_limiter),
        )

    def reddit(spec, *, http, rate_limiter=None):
        return RedditAdapter(
            spec.source_id,
            client_id=settings.reddit_client_id or "",
            client_secret=settings.reddit_client_secret or "",
            lookback_hours=int(spec.options.get("lookback_hours", 6)),
            **_common(spec, http, rate_limiter),
        )

    registry.register("rss", rss)
    registry.register("google_news", google_news)
    registry.register("hackernews", hackernews)
    registry.register("devto", devto)
    registry.register("next_data", next_data)
    registry.register("unipile", unipile)
    registry.register("reddit", reddit)
    return registry


__all__ = [
    "AdapterRegistry",
    "DevToAdapter",
    "GoogleNewsRssAdapter",
    "HackerNewsAdapter",
    "NextDataAdapter",
    "RedditAdapter",
    "RssAdapter",
    "SourceAdapter",
    "UnipileSearchAdapter",
    "build_default_registry",
]

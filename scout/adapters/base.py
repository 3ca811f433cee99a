"""
Adapter base class + registry for pluggable upstream sources.
"""
from __future__ import annotations

import abc
import logging
import time
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from scout.errors import ConfigError, ScoutError
from scout.http_client import HttpClient
from scout.models import QueryResult, RawItem, SourceSpec
from scout.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_QUERY_DELAY = 0.3


class SourceAdapter(abc.ABC):
    """
    Knows one upstream shape. ``fetch`` handles a single query and raises
    TransportError on total failure; malformed entries are skipped inside it.
    """

    default_limit = 10

    def __init__(
        self,
        source_id: str,
        *,
        http: Optional[HttpClient] = None,
        limit: Optional[int] = None,
        query_delay: float = DEFAULT_QUERY_DELAY,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.source_id = source_id
        self.http = http or HttpClient()
        self.limit = limit or self.default_limit
        self.rate_limiter = rate_limiter or RateLimiter()
        self.rate_limiter.configure(self.source_id, query_delay)

    @property
    def name(self) -> str:
        return self.source_id

    @abc.abstractmethod
    def fetch(self, query: str) -> List[RawItem]:
        raise NotImplementedError

    def fetch_many(self, queries: Iterable[str]) -> Iterator[QueryResult]:
        """Run each query in turn with the adapter's inter-query delay; errors stay scoped to their query."""
        for query in queries:
            self.rate_limiter.wait(self.source_id)
            start = time.time()
            try:
                items = self.fetch(query)[: self.limit]
                result = QueryResult(source_id=self.source_id, query=query, items=items)
            except ScoutError as exc:
                logger.warning("%s query %r failed: %s", self.source_id, query, exc)
                result = QueryResult(source_id=self.source_id, query=query, error=str(exc))
            except Exception as exc:  # pragma: no cover - upstream shape drift
                logger.exception("%s query %r crashed", self.source_id, query)
                result = QueryResult(source_id=self.source_id, query=query, error=f"unexpected: {exc}")
            finally:
                self.rate_limiter.mark(self.source_id)
            result.latency_ms = (time.time() - start) * 1000
            yield result


AdapterBuilder = Callable[..., SourceAdapter]


class AdapterRegistry:
    """
    Maps a source ``kind`` from the scout definitions to an adapter builder.
    """

    def __init__(self) -> None:
        self._builders: Dict[str, AdapterBuilder] = {}

    def register(self, kind: str, builder: AdapterBuilder) -> None:
        if kind in self._builders:
            raise ValueError(f"Adapter '{kind}' already registered")
        self._builders[kind] = builder

    def build(self, spec: SourceSpec, **context) -> SourceAdapter:
        builder = self._builders.get(spec.kind)
        if builder is None:
            raise ConfigError(f"Unknown source kind: {spec.kind}")
        return builder(spec, **context)

    def kinds(self) -> Iterable[str]:
        return self._builders.keys()

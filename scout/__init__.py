"""
Public API for the scout pipeline.

The runtime (settings, store, pipeline, scout definitions) is built lazily on
first use so importing the package has no side effects.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from scout.alerts import AlertDispatcher
from scout.config_loader import SourceConfig, load_scouts
from scout.drafts import OpenRouterDrafter
from scout.errors import ConfigError
from scout.models import RunResult
from scout.pipeline import ScoutPipeline
from scout.settings import ScoutSettings, load_settings
from scout.status import build_status
from scout.store import Store


@dataclass
class ScoutRuntime:
    settings: ScoutSettings
    store: Store
    dispatcher: AlertDispatcher
    pipeline: ScoutPipeline
    scouts: Dict[str, SourceConfig]

    def get_scout(self, name: str) -> SourceConfig:
        config = self.scouts.get(name)
        if config is None:
            raise ConfigError(f"Unknown scout: {name}")
        return config

    def run(self, name: str, groups: Optional[Sequence[str]] = None) -> RunResult:
        return self.pipeline.run(self.get_scout(name), groups=groups)

    def describe(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": name,
                "platform": config.platform_id,
                "sources": [spec.source_id for spec in config.sources],
                "groups": sorted(config.groups),
                "daily_cap": config.daily_cap,
                "alert_threshold": config.alert_threshold,
                "persist_threshold": config.persist_threshold,
                "schedule": config.schedule,
            }
            for name, config in self.scouts.items()
        ]

    def status(self) -> Dict[str, Any]:
        return build_status(self.pipeline, self.scouts, self.settings)


def build_runtime(settings: Optional[ScoutSettings] = None) -> ScoutRuntime:
    settings = settings or load_settings()
    store = Store(settings.database_url)
    dispatcher = AlertDispatcher(settings.webhook_url, timeout=settings.http_timeout)
    drafter = OpenRouterDrafter(settings.openrouter_api_key, settings.draft_model)
    pipeline = ScoutPipeline(store, dispatcher, settings, drafter=drafter)
    return ScoutRuntime(
        settings=settings,
        store=store,
        dispatcher=dispatcher,
        pipeline=pipeline,
        scouts=load_scouts(settings.config_path),
    )


_runtime: Optional[ScoutRuntime] = None
_runtime_lock = threading.Lock()


def get_runtime() -> ScoutRuntime:
    global _runtime
    with _runtime_lock:
        if _runtime is None:
            _runtime = build_runtime()
        return _runtime


def run_scout(name: str, groups: Optional[Sequence[str]] = None) -> RunResult:
    return get_runtime().run(name, groups=groups)


def get_pipeline_status() -> Dict[str, Any]:
    """Expose a structured status payload for health dashboards."""
    return get_runtime().status()


__all__ = [
    "ScoutRuntime",
    "build_runtime",
    "get_pipeline_status",
    "get_runtime",
    "run_scout",
]

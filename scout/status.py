"""
Status/health payload for the scout pipeline (API and CLI consumption).
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from scout.config_loader import SourceConfig
from scout.models import FeedStatus
from scout.pipeline import ScoutPipeline
from scout.settings import ScoutSettings
from utils.security import redact_secrets


def _health_to_dict(status: FeedStatus) -> Dict[str, Any]:
    return {
        "name": status.name,
        "healthy": status.healthy,
        "last_error": redact_secrets(status.last_error) if status.last_error else None,
        "last_success": status.last_success.isoformat() if status.last_success else None,
        "items_last_fetch": status.items_last_fetch,
        "latency_ms": status.latency_ms,
    }


def build_status(
    pipeline: ScoutPipeline,
    scouts: Mapping[str, SourceConfig],
    settings: ScoutSettings,
) -> Dict[str, Any]:
    last_runs = pipeline.last_runs()
    scout_entries = []
    for name, config in scouts.items():
        health = [_health_to_dict(entry) for entry in pipeline.get_health(config.platform_id)]
        last = last_runs.get(config.platform_id)
        scout_entries.append(
            {
                "name": name,
                "platform": config.platform_id,
                "daily_cap": config.daily_cap,
                "schedule": config.schedule,
                "last_run": last.to_dict() if last else None,
                "feeds": health,
                "unhealthy_feeds": sum(1 for h in health if not h["healthy"]),
            }
        )
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "scouts": scout_entries,
        "config": {
            "config_path": str(settings.config_path),
            "webhook_configured": bool(settings.webhook_url),
            "drafts_enabled": bool(settings.openrouter_api_key),
            "fetch_workers": settings.fetch_workers,
            "http_timeout": settings.http_timeout,
        },
    }

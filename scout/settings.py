"""
Centralised settings for the scout pipeline (env-first, code-light).

Built once at process start by ``load_settings`` and passed explicitly into
the pipeline; nothing below the entry points reads the environment.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from utils.security import is_configured_key

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "scouts.yaml"


@dataclass(frozen=True)
class ScoutSettings:
    database_url: str
    config_path: Path
    webhook_url: Optional[str] = None
    http_timeout: float = 10.0
    fetch_workers: int = 4
    unipile_dsn: str = "api6.unipile.com:13670"
    unipile_api_key: Optional[str] = None
    unipile_account_id: Optional[str] = None
    reddit_client_id: Optional[str] = None
    reddit_client_secret: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    draft_model: str = "anthropic/claude-sonnet-4"
    user_agent: str = "ScoutPipeline/1.0 (+https://example.com/scout)"


def _int_from_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(raw)
        return value if value > 0 else default
    except ValueError:
        logger.warning("Invalid int value for %s=%s; using default %s", key, raw, default)
        return default


def _float_from_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = float(raw)
        return value if value > 0 else default
    except ValueError:
        logger.warning("Invalid float value for %s=%s; using default %s", key, raw, default)
        return default


def _optional(key: str) -> Optional[str]:
    value = (os.getenv(key) or "").strip()
    return value if is_configured_key(value) else None


def load_settings() -> ScoutSettings:
    config_env = os.getenv("SCOUT_CONFIG_PATH")
    return ScoutSettings(
        database_url=os.getenv("SCOUT_DATABASE_URL") or f"sqlite:///{PROJECT_ROOT / 'scout_data.db'}",
        config_path=Path(config_env) if config_env else DEFAULT_CONFIG_PATH,
        webhook_url=_optional("GOOGLE_CHAT_WEBHOOK_URL"),
        http_timeout=_float_from_env("SCOUT_HTTP_TIMEOUT", 10.0),
        fetch_workers=_int_from_env("SCOUT_FETCH_WORKERS", 4),
        unipile_dsn=os.getenv("UNIPILE_DSN") or "api6.unipile.com:13670",
        unipile_api_key=_optional("UNIPILE_API_KEY"),
        unipile_account_id=_optional("UNIPILE_ACCOUNT_ID"),
        reddit_client_id=_optional("REDDIT_CLIENT_ID"),
        reddit_client_secret=_optional("REDDIT_CLIENT_SECRET"),
        openrouter_api_key=_optional("OPENROUTER_API_KEY"),
        draft_model=os.getenv("SCOUT_DRAFT_MODEL") or "anthropic/claude-sonnet-4",
    )

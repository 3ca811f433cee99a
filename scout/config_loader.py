"""
Load ``config/scouts.yaml`` into immutable ``SourceConfig`` objects.

String values may reference environment variables as ``${NAME}``; missing
variables expand to an empty string.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml

from scout.errors import ConfigError
from scout.models import SourceSpec
from scout.scoring import RuleTable

logger = logging.getLogger(__name__)

ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
DEFAULT_DAILY_CAP = 50
DEFAULT_ALERT_LIMIT = 5
DEFAULT_SCHEDULE = "*/15 * * * *"
SOURCE_KEYS = {"kind", "id", "queries", "fallback"}


@dataclass(frozen=True)
class GroupSpec:
    """
    Named bundle of extra queries (e.g. one industry) that can be selected per run.
    ``sources`` limits the group to specific source ids; empty means all.
    """

    name: str
    queries: Tuple[str, ...] = ()
    sources: Tuple[str, ...] = ()
    label: str = ""

    def applies_to(self, source_id: str) -> bool:
        return not self.sources or source_id in self.sources


@dataclass(frozen=True)
class SourceConfig:
    platform_id: str
    key_prefix: str
    sources: Tuple[SourceSpec, ...]
    rules: RuleTable
    daily_cap: int = DEFAULT_DAILY_CAP
    alert_threshold: int = 60
    persist_threshold: int = 40
    alert_limit: int = DEFAULT_ALERT_LIMIT
    groups: Dict[str, GroupSpec] = field(default_factory=dict, hash=False, compare=False)
    card_title: str = ""
    schedule: str = DEFAULT_SCHEDULE
    alert_high_value_only: bool = False
    draft_categories: Tuple[str, ...] = ()

    def select_groups(self, names: Optional[Iterable[str]] = None) -> Tuple[GroupSpec, ...]:
        if names is None:
            return tuple(self.groups.values())
        selected = []
        for name in names:
            group = self.groups.get(name)
            if group is None:
                logger.warning("Unknown group %s for scout %s; ignoring", name, self.platform_id)
                continue
            selected.append(group)
        return tuple(selected)

    def queries_for(self, spec: SourceSpec, groups: Iterable[GroupSpec] = ()) -> Tuple[str, ...]:
        queries = list(spec.queries)
        for group in groups:
            if group.applies_to(spec.source_id):
                queries.extend(q for q in group.queries if q not in queries)
        return tuple(queries)


def _expand_env(data: Any) -> Any:
    if isinstance(data, str):
        return ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), ""), data)
    if isinstance(data, dict):
        return {k: _expand_env(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env(item) for item in data]
    return data


def _string_tuple(value: Any, what: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        raise ConfigError(f"{what} must be a list")
    return tuple(str(v) for v in value if str(v).strip())


def _parse_source(name: str, raw: Any) -> SourceSpec:
    if not isinstance(raw, dict) or not raw.get("kind"):
        raise ConfigError(f"Scout {name}: every source needs a 'kind'")
    kind = str(raw["kind"])
    source_id = str(raw.get("id") or kind)
    options = {k: v for k, v in raw.items() if k not in SOURCE_KEYS}
    if raw.get("fallback"):
        options["fallback"] = _parse_source(name, raw["fallback"])
    return SourceSpec(
        kind=kind,
        source_id=source_id,
        queries=_string_tuple(raw.get("queries"), f"Scout {name}: {source_id}.queries"),
        options=options,
    )


def _parse_groups(name: str, raw: Any) -> Dict[str, GroupSpec]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Scout {name}: groups must be a mapping")
    groups: Dict[str, GroupSpec] = {}
    for group_name, body in raw.items():
        if isinstance(body, list):
            body = {"queries": body}
        if not isinstance(body, dict):
            raise ConfigError(f"Scout {name}: group {group_name} must be a mapping or list")
        groups[str(group_name)] = GroupSpec(
            name=str(group_name),
            queries=_string_tuple(body.get("queries"), f"Scout {name}: group {group_name}.queries"),
            sources=_string_tuple(body.get("sources"), f"Scout {name}: group {group_name}.sources"),
            label=str(body.get("label") or group_name),
        )
    return groups


def parse_scout(name: str, raw: Dict[str, Any]) -> SourceConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"Scout {name} must be a mapping")
    sources = tuple(_parse_source(name, s) for s in raw.get("sources") or [])
    if not sources:
        raise ConfigError(f"Scout {name} defines no sources")

    try:
        daily_cap = int(raw.get("daily_cap", DEFAULT_DAILY_CAP))
        alert_threshold = int(raw.get("alert_threshold", 60))
        persist_threshold = int(raw.get("persist_threshold", 40))
        alert_limit = int(raw.get("alert_limit", DEFAULT_ALERT_LIMIT))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Scout {name}: numeric setting is not an integer: {exc}") from exc
    if daily_cap <= 0:
        raise ConfigError(f"Scout {name}: daily_cap must be positive")
    if alert_threshold < persist_threshold:
        raise ConfigError(
            f"Scout {name}: alert_threshold ({alert_threshold}) is below persist_threshold ({persist_threshold})"
        )
    if alert_limit <= 0:
        raise ConfigError(f"Scout {name}: alert_limit must be positive")

    try:
        rules = RuleTable.from_dict(raw.get("rules"))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Scout {name}: malformed rules: {exc}") from exc

    platform_id = str(raw.get("platform") or name)
    return SourceConfig(
        platform_id=platform_id,
        key_prefix=str(raw.get("key_prefix") or platform_id),
        sources=sources,
        rules=rules,
        daily_cap=daily_cap,
        alert_threshold=alert_threshold,
        persist_threshold=persist_threshold,
        alert_limit=alert_limit,
        groups=_parse_groups(name, raw.get("groups")),
        card_title=str(raw.get("card_title") or f"{platform_id} scout"),
        schedule=str(raw.get("schedule") or DEFAULT_SCHEDULE),
        alert_high_value_only=bool(raw.get("alert_high_value_only", False)),
        draft_categories=_string_tuple(raw.get("draft_categories"), f"Scout {name}: draft_categories"),
    )


def parse_scouts(data: Any) -> Dict[str, SourceConfig]:
    if not isinstance(data, dict):
        raise ConfigError("scouts config must be a mapping")
    scouts = data.get("scouts", data)
    if not isinstance(scouts, dict):
        raise ConfigError("'scouts' must be a mapping of name -> scout")
    return {str(name): parse_scout(str(name), body) for name, body in _expand_env(scouts).items()}


def load_scouts(path: Path) -> Dict[str, SourceConfig]:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"scouts config not found at {config_path}")
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"scouts config {config_path} is not valid YAML: {exc}") from exc
    scouts = parse_scouts(data)
    logger.info("Loaded %d scouts from %s", len(scouts), config_path)
    return scouts

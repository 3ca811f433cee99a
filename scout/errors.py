"""
Error taxonomy for the scout pipeline.

Duplicates and an exhausted daily cap are normal outcomes and are reported
through return values, never through these exceptions.
"""
from __future__ import annotations

from typing import Optional


class ScoutError(Exception):
    """Base class for every error raised by the pipeline."""


class ConfigError(ScoutError):
    """Invalid scout definition or missing credentials."""


class TransportError(ScoutError):
    """Upstream unreachable, non-2xx, timed out or returned an unreadable document."""

    def __init__(self, message: str, *, url: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(ScoutError):
    """A single upstream entry is malformed; the entry is skipped, not the feed."""


class PersistenceError(ScoutError):
    """Writing a topic or a seen record failed."""


class AlertDeliveryError(ScoutError):
    """The webhook rejected or never received the alert card."""

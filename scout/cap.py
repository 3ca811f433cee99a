"""
Per-platform daily cap on newly persisted items (UTC day window).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from scout.store import Store

logger = logging.getLogger(__name__)


def utc_midnight(now: datetime) -> datetime:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class CapEnforcer:
    """
    Capacity is read from the store once per run and then tracked locally;
    ``consume`` is called after every successful insert.
    """

    def __init__(self, store: Store, platform: str, daily_cap: int) -> None:
        self.store = store
        self.platform = platform
        self.daily_cap = daily_cap
        self._remaining: Optional[int] = None

    def remaining(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        used = self.store.count_seen_since(self.platform, utc_midnight(now))
        self._remaining = max(0, self.daily_cap - used)
        logger.debug("%s cap: %d used, %d remaining", self.platform, used, self._remaining)
        return self._remaining

    def consume(self) -> int:
        if self._remaining is None:
            self.remaining()
        self._remaining = max(0, (self._remaining or 0) - 1)
        return self._remaining

    @property
    def exhausted(self) -> bool:
        return self._remaining is not None and self._remaining <= 0

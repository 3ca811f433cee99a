"""
Dedup records and persisted topics (SQLAlchemy Core; SQLite or PostgreSQL).

Dedup relies on ``UNIQUE(platform, post_id)``: the insert that wins the
constraint owns the item, everything else is a duplicate.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from scout.errors import PersistenceError
from scout.models import Topic

logger = logging.getLogger(__name__)

metadata = MetaData()

seen_posts_table = Table(
    "seen_posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("platform", String(64), nullable=False, index=True),
    Column("post_id", String(255), nullable=False),
    Column("url", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, index=True),
    UniqueConstraint("platform", "post_id", name="uq_seen_posts_platform_post"),
)

topics_table = Table(
    "topics",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("source", String(64), nullable=False, index=True),
    Column("source_url", Text, nullable=True),
    Column("relevance_score", Float, nullable=False),
    Column("content", Text, nullable=True),
    Column("created_at", DateTime, nullable=False),
    Column("processed", Boolean, nullable=False, default=False),
)


def _utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Store:
    def __init__(self, database_url: str) -> None:
        url = make_url(database_url)
        connect_args: Dict[str, Any] = {}
        if url.get_backend_name() == "sqlite":
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            connect_args["timeout"] = 30
        self.engine: Engine = create_engine(database_url, future=True, connect_args=connect_args)
        self.init_db()

    def init_db(self) -> None:
        metadata.create_all(self.engine)

    def _insert_ignore(self, table: Table, **values: Any):
        dialect = self.engine.dialect.name
        if dialect == "sqlite":
            return sqlite.insert(table).values(**values).on_conflict_do_nothing(index_elements=["platform", "post_id"])
        if dialect == "postgresql":
            return (
                postgresql.insert(table)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["platform", "post_id"])
            )
        return table.insert().values(**values)

    def _seen_values(self, platform: str, key: str, url: Optional[str], now: Optional[datetime]) -> Dict[str, Any]:
        return {
            "platform": platform,
            "post_id": key,
            "url": url,
            "created_at": _utc_naive(now or _utcnow()),
        }

    def is_seen(self, platform: str, key: str) -> bool:
        stmt = select(seen_posts_table.c.id).where(
            seen_posts_table.c.platform == platform,
            seen_posts_table.c.post_id == key,
        )
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt.limit(1)).first() is not None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"seen lookup failed for {platform}/{key}: {exc}") from exc

    def mark_seen(self, platform: str, key: str, url: Optional[str] = None, now: Optional[datetime] = None) -> bool:
        """Return True only for the insert that wins the unique constraint."""
        stmt = self._insert_ignore(seen_posts_table, **self._seen_values(platform, key, url, now))
        try:
            with self.engine.begin() as conn:
                return conn.execute(stmt).rowcount == 1
        except IntegrityError:
            return False
        except SQLAlchemyError as exc:
            raise PersistenceError(f"mark_seen failed for {platform}/{key}: {exc}") from exc

    def record(self, platform: str, key: str, url: Optional[str], topic: Topic, now: Optional[datetime] = None) -> bool:
        """
        Insert the seen record and its topic in one transaction.

        Returns False (and writes nothing) when the key was already claimed.
        A topic insert failure rolls the seen record back and raises
        ``PersistenceError`` so the item is retried on the next run.
        """
        seen_stmt = self._insert_ignore(seen_posts_table, **self._seen_values(platform, key, url, now))
        topic_stmt = topics_table.insert().values(
            title=topic.title,
            source=topic.source,
            source_url=topic.source_url,
            relevance_score=topic.relevance_score,
            content=json.dumps(topic.content, ensure_ascii=False, default=str),
            created_at=_utc_naive(topic.created_at),
            processed=False,
        )
        try:
            with self.engine.begin() as conn:
                if conn.execute(seen_stmt).rowcount != 1:
                    return False
                conn.execute(topic_stmt)
        except IntegrityError as exc:
            if "seen_posts" in str(exc):
                return False
            raise PersistenceError(f"topic insert failed for {platform}/{key}: {exc}") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"topic insert failed for {platform}/{key}: {exc}") from exc
        return True

    def count_seen_since(self, platform: str, since: datetime) -> int:
        stmt = select(func.count()).select_from(seen_posts_table).where(
            seen_posts_table.c.platform == platform,
            seen_posts_table.c.created_at >= _utc_naive(since),
        )
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"seen count failed for {platform}: {exc}") from exc

    def count_topics(self, source: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(topics_table)
        if source is not None:
            stmt = stmt.where(topics_table.c.source == source)
        with self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())

    def recent_topics(self, source: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
        stmt = select(topics_table).order_by(topics_table.c.created_at.desc(), topics_table.c.id.desc()).limit(limit)
        if source is not None:
            stmt = stmt.where(topics_table.c.source == source)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        topics = []
        for row in rows:
            entry = dict(row)
            entry["content"] = json.loads(entry["content"]) if entry.get("content") else {}
            topics.append(entry)
        return topics

import shutil
import tempfile
import threading
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from scout.cap import CapEnforcer, utc_midnight
from scout.errors import PersistenceError
from scout.models import Topic
from scout.store import Store

NOW = datetime(2025, 3, 14, 15, 30, tzinfo=timezone.utc)


def _topic(title="Post", source="hackernews"):
    return Topic(
        title=title,
        source=source,
        source_url="https://example.com/post",
        relevance_score=0.92,
        content={"category": "high_intent", "matchedKeywords": ["ai sdr"]},
        created_at=NOW,
    )


class StoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp()
        self.db_url = f"sqlite:///{Path(self.tmpdir) / 'scout.db'}"
        self.store = Store(self.db_url)

    def tearDown(self) -> None:
        self.store.engine.dispose()
        shutil.rmtree(self.tmpdir, ignore_errors=True)


class DedupStoreTests(StoreTestCase):
    def test_mark_seen_is_idempotent(self):
        self.assertTrue(self.store.mark_seen("hackernews", "hn_abc123", "https://x", now=NOW))
        self.assertFalse(self.store.mark_seen("hackernews", "hn_abc123", "https://x", now=NOW))
        self.assertTrue(self.store.is_seen("hackernews", "hn_abc123"))
        self.assertEqual(self.store.count_seen_since("hackernews", utc_midnight(NOW)), 1)

    def test_same_key_on_other_platform_is_independent(self):
        self.assertTrue(self.store.mark_seen("hackernews", "shared", now=NOW))
        self.assertTrue(self.store.mark_seen("devto", "shared", now=NOW))
        self.assertFalse(self.store.is_seen("linkedin", "shared"))

    def test_record_writes_seen_and_topic_once(self):
        self.assertTrue(self.store.record("hackernews", "hn_abc123", "https://x", _topic(), now=NOW))
        self.assertFalse(self.store.record("hackernews", "hn_abc123", "https://x", _topic(), now=NOW))
        self.assertEqual(self.store.count_topics("hackernews"), 1)

        topics = self.store.recent_topics("hackernews")
        self.assertEqual(topics[0]["content"]["matchedKeywords"], ["ai sdr"])
        self.assertFalse(topics[0]["processed"])

    def test_concurrent_writers_produce_one_record(self):
        other = Store(self.db_url)
        barrier = threading.Barrier(6)
        results = []
        lock = threading.Lock()

        def worker(store):
            barrier.wait()
            ok = store.record("hackernews", "hn_race", "https://x", _topic(), now=NOW)
            with lock:
                results.append(ok)

        threads = [threading.Thread(target=worker, args=(self.store if i % 2 else other,)) for i in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        other.engine.dispose()

        self.assertEqual(results.count(True), 1)
        self.assertEqual(self.store.count_topics(), 1)
        self.assertEqual(self.store.count_seen_since("hackernews", utc_midnight(NOW)), 1)

    def test_topic_failure_rolls_back_seen_record(self):
        bad_topic = Topic(
            title=None,  # violates NOT NULL on topics.title
            source="hackernews",
            source_url="https://x",
            relevance_score=0.5,
            content={},
            created_at=NOW,
        )
        with self.assertRaises(PersistenceError):
            self.store.record("hackernews", "hn_rollback", "https://x", bad_topic, now=NOW)
        self.assertFalse(self.store.is_seen("hackernews", "hn_rollback"))
        # the next run can still claim the item
        self.assertTrue(self.store.record("hackernews", "hn_rollback", "https://x", _topic(), now=NOW))

    def test_database_errors_surface_as_persistence_error(self):
        with patch.object(self.store.engine, "connect", side_effect=OperationalError("SELECT", {}, Exception("down"))):
            with self.assertRaises(PersistenceError):
                self.store.is_seen("hackernews", "hn_1")


class CapEnforcerTests(StoreTestCase):
    def _fill(self, count, when=NOW, platform="technews"):
        for idx in range(count):
            self.store.mark_seen(platform, f"{platform}-{idx}-{when.isoformat()}", now=when)

    def test_remaining_counts_only_today(self):
        self._fill(3, when=NOW - timedelta(days=1))
        self._fill(2)
        cap = CapEnforcer(self.store, "technews", daily_cap=5)
        self.assertEqual(cap.remaining(NOW), 3)
        self.assertFalse(cap.exhausted)

    def test_remaining_is_floored_at_zero(self):
        self._fill(4)
        cap = CapEnforcer(self.store, "technews", daily_cap=3)
        self.assertEqual(cap.remaining(NOW), 0)
        self.assertTrue(cap.exhausted)

    def test_consume_reaches_exhaustion(self):
        self._fill(1)
        cap = CapEnforcer(self.store, "technews", daily_cap=3)
        self.assertEqual(cap.remaining(NOW), 2)
        self.assertEqual(cap.consume(), 1)
        self.assertFalse(cap.exhausted)
        self.assertEqual(cap.consume(), 0)
        self.assertTrue(cap.exhausted)

    def test_other_platforms_do_not_count(self):
        self._fill(5, platform="devto")
        cap = CapEnforcer(self.store, "technews", daily_cap=5)
        self.assertEqual(cap.remaining(NOW), 5)

    def test_utc_midnight_handles_offsets(self):
        local = datetime(2025, 3, 15, 1, 0, tzinfo=timezone(timedelta(hours=5)))
        self.assertEqual(utc_midnight(local), datetime(2025, 3, 14, tzinfo=timezone.utc))


if __name__ == "__main__":
    unittest.main()

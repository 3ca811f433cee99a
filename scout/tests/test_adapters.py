import json
import time
import unittest
from unittest.mock import MagicMock

from scout.adapters.devto import DevToAdapter
from scout.adapters.google_news import GoogleNewsRssAdapter
from scout.adapters.hackernews import HackerNewsAdapter
from scout.adapters.next_data import NextDataAdapter, dig, extract_data_island
from scout.adapters.reddit import RedditAdapter
from scout.adapters.rss import RssAdapter, split_feed_query
from scout.adapters.unipile import UnipileSearchAdapter
from scout.errors import ConfigError, TransportError
from scout.rate_limiter import RateLimiter

SAMPLE_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>TechCrunch</title>
    <item>
      <title>AI startup raises Series A for sales automation</title>
      <link>https://techcrunch.com/2025/03/14/ai-sales/</link>
      <pubDate>Fri, 14 Mar 2025 12:00:00 GMT</pubDate>
      <description><![CDATA[<p>The company <b>announced</b> funding.</p>]]></description>
      <dc:creator>Jane Reporter</dc:creator>
    </item>
    <item>
      <title></title>
      <link>https://techcrunch.com/missing-title</link>
    </item>
    <item>
      <title>Second story</title>
      <link>https://techcrunch.com/2025/03/14/second/</link>
    </item>
  </channel>
</rss>
"""

NEXT_DATA_PAGE = """<html><head></head><body>
<script id="__NEXT_DATA__" type="application/json">{payload}</script>
</body></html>"""


def _response(content=b"", text="", payload=None):
    response = MagicMock()
    response.content = content
    response.text = text
    response.json.return_value = payload
    return response


def _quiet(**kwargs):
    return dict(query_delay=0, rate_limiter=RateLimiter(sleep=lambda _: None), **kwargs)


class RssAdapterTests(unittest.TestCase):
    def test_fetch_parses_items_and_skips_malformed_entries(self):
        http = MagicMock()
        http.get.return_value = _response(content=SAMPLE_FEED)
        adapter = RssAdapter("technews", http=http, **_quiet())

        items = adapter.fetch("TechCrunch|https://techcrunch.com/feed/")

        http.get.assert_called_once_with("https://techcrunch.com/feed/")
        self.assertEqual(len(items), 2)
        first = items[0]
        self.assertEqual(first.title, "AI startup raises Series A for sales automation")
        self.assertEqual(first.body, "The company announced funding.")
        self.assertEqual(first.author, "Jane Reporter")
        self.assertEqual(first.published_at.year, 2025)
        self.assertIsNone(first.external_id)
        self.assertEqual(first.metadata["feed"], "TechCrunch")

    def test_unreadable_document_is_a_transport_error(self):
        http = MagicMock()
        http.get.return_value = _response(content=b"<html><body>not a feed")
        adapter = RssAdapter("technews", http=http, **_quiet())
        with self.assertRaises(TransportError):
            adapter.fetch("https://example.com/feed")

    def test_split_feed_query(self):
        self.assertEqual(split_feed_query("TC|https://tc.com/feed"), ("TC", "https://tc.com/feed"))
        self.assertEqual(split_feed_query("https://tc.com/feed"), ("https://tc.com/feed", "https://tc.com/feed"))


class FetchManyTests(unittest.TestCase):
    def test_errors_are_scoped_to_their_query(self):
        http = MagicMock()

        def fake_get(url):
            if "broken" in url:
                raise TransportError("GET returned HTTP 500", url=url, status_code=500)
            return _response(content=SAMPLE_FEED)

        http.get.side_effect = fake_get
        adapter = RssAdapter("technews", http=http, **_quiet())

        results = list(adapter.fetch_many(["https://a.com/feed", "https://broken.com/feed", "https://b.com/feed"]))

        self.assertEqual([r.ok for r in results], [True, False, True])
        self.assertIn("500", results[1].error)
        self.assertEqual(len(results[2].items), 2)

    def test_inter_query_delay_is_applied(self):
        sleeps = []
        limiter = RateLimiter(clock=lambda: 100.0, sleep=sleeps.append)
        http = MagicMock()
        http.get.return_value = _response(content=SAMPLE_FEED)
        adapter = RssAdapter("technews", http=http, query_delay=0.3, rate_limiter=limiter)

        list(adapter.fetch_many(["https://a.com/feed", "https://b.com/feed"]))

        self.assertEqual(len(sleeps), 1)
        self.assertAlmostEqual(sleeps[0], 0.3, places=5)

    def test_limit_caps_items_per_query(self):
        http = MagicMock()
        http.get.return_value = _response(content=SAMPLE_FEED)
        adapter = RssAdapter("technews", http=http, **_quiet(limit=1))
        results = list(adapter.fetch_many(["https://a.com/feed"]))
        self.assertEqual(len(results[0].items), 1)


class GoogleNewsAdapterTests(unittest.TestCase):
    def test_builds_search_url_and_tags_provider(self):
        http = MagicMock()
        http.get.return_value = _response(content=SAMPLE_FEED)
        adapter = GoogleNewsRssAdapter("google-news", http=http, **_quiet())

        items = adapter.fetch("AI sales automation")

        called_url = http.get.call_args[0][0]
        self.assertTrue(called_url.startswith("https://news.google.com/rss/search?q=AI+sales+automation"))
        self.assertIn("ceid=US%3Aen", called_url)
        self.assertEqual(items[0].metadata.get("provider"), "google-news")


class HackerNewsAdapterTests(unittest.TestCase):
    def test_maps_hits_to_items(self):
        http = MagicMock()
        http.get_json.return_value = {
            "hits": [
                {
                    "objectID": "abc123",
                    "title": "Ask HN: looking for SDR automation",
                    "story_text": "We need an AI SDR",
                    "url": None,
                    "author": "pg",
                    "points": 42,
                    "num_comments": 7,
                    "created_at_i": 1700000000,
                },
                {"objectID": "bad", "title": ""},
            ]
        }
        adapter = HackerNewsAdapter("hackernews", http=http, **_quiet())

        items = adapter.fetch("SDR")

        params = http.get_json.call_args.kwargs["params"]
        self.assertEqual(params["tags"], "story")
        self.assertTrue(params["numericFilters"].startswith("created_at_i>"))
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].external_id, "abc123")
        self.assertEqual(items[0].url, "https://news.ycombinator.com/item?id=abc123")
        self.assertEqual(items[0].engagement.likes, 42)
        self.assertEqual(items[0].engagement.comments, 7)

    def test_non_string_title_skips_only_that_hit(self):
        http = MagicMock()
        http.get_json.return_value = {"hits": [{"objectID": "1", "title": 7}, {"objectID": "2", "title": "fine"}]}
        adapter = HackerNewsAdapter("hackernews", http=http, **_quiet())

        results = list(adapter.fetch_many(["SDR"]))

        self.assertTrue(results[0].ok)
        self.assertEqual([item.external_id for item in results[0].items], ["2"])

    def test_non_object_payload_is_transport_error(self):
        http = MagicMock()
        http.get_json.return_value = ["unexpected"]
        with self.assertRaises(TransportError):
            HackerNewsAdapter("hackernews", http=http, **_quiet()).fetch("SDR")


class DevToAdapterTests(unittest.TestCase):
    def test_maps_articles_with_tags_and_engagement(self):
        http = MagicMock()
        http.get_json.return_value = [
            {
                "id": 99,
                "title": "Build an AI agent for sales",
                "description": "Step by step",
                "url": "https://dev.to/x/build",
                "tag_list": ["ai", "python"],
                "user": {"name": "Dev Writer", "username": "dev"},
                "positive_reactions_count": 120,
                "comments_count": 12,
                "reading_time_minutes": 6,
            },
            {"title": "missing id"},
        ]
        adapter = DevToAdapter("devto", http=http, **_quiet())

        items = adapter.fetch("#ai")

        self.assertEqual(http.get_json.call_args.kwargs["params"]["tag"], "ai")
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].external_id, "99")
        self.assertEqual(items[0].tags, ("ai", "python"))
        self.assertEqual(items[0].author, "Dev Writer")
        self.assertEqual(items[0].engagement.likes, 120)


class NextDataAdapterTests(unittest.TestCase):
    def _page(self, posts):
        return NEXT_DATA_PAGE.format(payload=json.dumps({"props": {"pageProps": {"posts": posts}}}))

    def test_extracts_posts_from_data_island(self):
        http = MagicMock()
        http.get_text.return_value = self._page(
            [
                {
                    "id": 7,
                    "name": "OutboundBot",
                    "tagline": "AI SDR for founders",
                    "slug": "outboundbot",
                    "votesCount": 320,
                    "commentsCount": 25,
                    "topics": [{"name": "Sales"}, {"name": "Artificial Intelligence"}],
                },
                {"id": 8, "tagline": "no name"},
            ]
        )
        adapter = NextDataAdapter("producthunt-homepage", http=http, **_quiet())

        items = adapter.fetch("https://www.producthunt.com/")

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].url, "https://www.producthunt.com/posts/outboundbot")
        self.assertEqual(items[0].external_id, "7")
        self.assertEqual(items[0].tags, ("Sales", "Artificial Intelligence"))
        self.assertEqual(items[0].engagement.likes, 320)

    def test_non_string_name_skips_only_that_post(self):
        http = MagicMock()
        http.get_text.return_value = self._page(
            [
                {"id": 1, "name": 12345, "slug": "numbers"},
                {"id": 2, "name": "Good one", "slug": "good-one"},
            ]
        )
        adapter = NextDataAdapter("producthunt-homepage", http=http, **_quiet())

        results = list(adapter.fetch_many(["https://www.producthunt.com/"]))

        self.assertIsNone(results[0].error)
        self.assertEqual([item.title for item in results[0].items], ["Good one"])

    def test_missing_island_is_transport_error(self):
        with self.assertRaises(TransportError):
            extract_data_island("<html><body>nothing here</body></html>")

    def test_dig_walks_dicts_and_lists(self):
        payload = {"a": {"b": [{"c": 1}, {"c": 2}]}}
        self.assertEqual(dig(payload, "a.b.1.c"), 2)
        self.assertIsNone(dig(payload, "a.x.c"))


class RedditAdapterTests(unittest.TestCase):
    def _listing(self, *posts):
        return {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": post} for post in posts]}}

    def _adapter(self, http):
        return RedditAdapter("reddit", client_id="cid", client_secret="csecret", http=http, **_quiet())

    def test_requires_credentials(self):
        with self.assertRaises(ConfigError):
            RedditAdapter("reddit", client_id="cid", client_secret="")

    def test_token_then_listing(self):
        now = time.time()
        http = MagicMock()
        http.post_form.return_value = _response(payload={"access_token": "tok-1", "expires_in": 3600})
        http.get_json.return_value = self._listing(
            {
                "id": "p1",
                "title": "Looking for an AI SDR for a two person startup",
                "selftext": None,
                "author": "founder",
                "subreddit": "startups",
                "permalink": "/r/startups/comments/p1/looking/",
                "score": 14,
                "num_comments": 9,
                "created_utc": now - 600,
            },
            {"id": "p2", "title": "Old news", "permalink": "/r/startups/comments/p2/old/", "created_utc": now - 86400},
            {"id": "p3", "title": 3, "permalink": "/r/startups/comments/p3/x/", "created_utc": now},
        )
        adapter = self._adapter(http)

        items = adapter.fetch("startups")
        adapter.fetch("r/SaaS")

        http.post_form.assert_called_once()
        args, kwargs = http.post_form.call_args
        self.assertEqual(args[1], {"grant_type": "client_credentials"})
        self.assertEqual(kwargs["auth"], ("cid", "csecret"))
        first_call, second_call = http.get_json.call_args_list
        self.assertEqual(first_call.args[0], "https://oauth.reddit.com/r/startups/new")
        self.assertEqual(first_call.kwargs["headers"], {"Authorization": "Bearer tok-1"})
        self.assertEqual(first_call.kwargs["params"], {"limit": 25})
        self.assertEqual(second_call.args[0], "https://oauth.reddit.com/r/SaaS/new")

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].external_id, "p1")
        self.assertEqual(items[0].url, "https://reddit.com/r/startups/comments/p1/looking/")
        self.assertEqual(items[0].body, "")
        self.assertEqual(items[0].engagement.likes, 14)
        self.assertEqual(items[0].metadata["subreddit"], "startups")

    def test_missing_token_is_transport_error(self):
        http = MagicMock()
        http.post_form.return_value = _response(payload={"error": "invalid_grant"})
        results = list(self._adapter(http).fetch_many(["startups"]))
        self.assertFalse(results[0].ok)
        self.assertIn("access_token", results[0].error)
        http.get_json.assert_not_called()


class UnipileAdapterTests(unittest.TestCase):
    def test_requires_credentials(self):
        with self.assertRaises(ConfigError):
            UnipileSearchAdapter("linkedin", dsn="api.example.com", api_key="", account_id="acc")

    def test_posts_search_and_maps_results(self):
        http = MagicMock()
        http.post_json.return_value = _response(
            payload={
                "items": [
                    {
                        "social_id": "urn:li:activity:1",
                        "share_url": "https://www.linkedin.com/posts/1",
                        "text": "Anyone recommend an outbound automation tool for a small team?",
                        "reaction_counter": 12,
                        "comment_counter": 6,
                        "author": {"name": "Sam Founder", "headline": "CEO"},
                    },
                    {"social_id": "urn:li:activity:2", "share_url": ""},
                ]
            }
        )
        adapter = UnipileSearchAdapter(
            "linkedin", dsn="api.example.com:1234", api_key="secret", account_id="acc-1", http=http, **_quiet()
        )

        items = adapter.fetch("#salesautomation")

        args, kwargs = http.post_json.call_args
        self.assertEqual(args[0], "https://api.example.com:1234/api/v1/linkedin/search")
        self.assertEqual(args[1]["keywords"], "#salesautomation")
        self.assertEqual(kwargs["headers"], {"X-API-KEY": "secret"})
        self.assertEqual(kwargs["params"], {"account_id": "acc-1"})
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].external_id, "urn:li:activity:1")
        self.assertTrue(items[0].title.startswith("Sam Founder: Anyone recommend"))
        self.assertEqual(items[0].engagement.comments, 6)


if __name__ == "__main__":
    unittest.main()

import unittest

from pulpit.db import IN_MEMORY_URL, Database
from pulpit.deep_links import _PATH_PREFIXES, DeepLinks, build_query_string
from pulpit.errors import NotFoundError
from pulpit.schemas import ShareRequest
from pulpit.services.sharing import SharingService, build_share_message, method_share_url, truncate_for_twitter
from pulpit.tests.support import ApiTestCase, auth_headers, make_article, make_sermon, make_user


class DeepLinkTests(unittest.TestCase):
    def setUp(self):
        self.links = DeepLinks()

    def test_generate(self):
        self.assertEqual(self.links.generate("sermon", "abc"), "pulpit-app://sermon/abc")
        self.assertEqual(self.links.generate("invitation", "XY12"), "pulpit-app://invite/XY12")
        self.assertEqual(self.links.generate("podcast", "abc"), "pulpit-app://")
        self.assertEqual(
            self.links.generate("article", "a1", {"campaign": "easter 2025"}, web_fallback=True),
            "pulpit-app://article/a1?campaign=easter%202025 (https://tvffellowship.com/article/a1?campaign=easter%202025)",
        )
        self.assertEqual(self.links.web("category", "c1"), "https://tvffellowship.com/category/c1")

    def test_query_string_skips_empty_values(self):
        self.assertEqual(build_query_string({"a": "1", "b": None, "c": ""}), "?a=1")
        self.assertEqual(build_query_string({}), "")

    def test_parse_content_links(self):
        parsed = self.links.parse("pulpit-app://sermon/abc?campaign=spring&ref=app_share")
        self.assertEqual(parsed.screen, "sermon")
        self.assertEqual(parsed.params, {"id": "abc"})
        self.assertEqual(parsed.metadata, {"source": "app", "campaign": "spring", "referrer": "app_share"})

        parsed = self.links.parse("https://www.tvffellowship.com/article/a1")
        self.assertEqual((parsed.screen, parsed.params, parsed.metadata), ("article", {"id": "a1"}, {"source": "web"}))

    def test_parse_other_screens(self):
        category = self.links.parse("pulpit-app://category/c9?ref=friend")
        self.assertEqual(category.params, {"category": "c9", "tab": "sermons"})
        self.assertNotIn("referrer", category.metadata)

        invite = self.links.parse("https://tvffellowship.com/invite/ABCD1234")
        self.assertEqual((invite.screen, invite.params), ("invitation", {"invitation_code": "ABCD1234"}))

        tab = self.links.parse("pulpit-app://articles")
        self.assertEqual((tab.screen, tab.params), ("dashboard", {"tab": "articles"}))

        home = self.links.parse("pulpit-app://")
        self.assertEqual((home.screen, home.metadata), ("dashboard", {"source": "direct"}))

    def test_parse_rejects_unknown_links(self):
        self.assertIsNone(self.links.parse("https://elsewhere.example.com/sermon/abc"))
        self.assertIsNone(self.links.parse("pulpit-app://unknown/thing"))
        self.assertIsNone(self.links.parse("ftp://tvffellowship.com/sermon/abc"))
        self.assertIsNone(self.links.parse(""))

    def test_every_generated_link_parses(self):
        for link_type in _PATH_PREFIXES:
            with self.subTest(link_type=link_type):
                self.assertIsNotNone(self.links.parse(self.links.generate(link_type, "x1")))
                self.assertIsNotNone(self.links.parse(self.links.web(link_type, "x1")))

        series = self.links.parse("pulpit-app://series/s7?campaign=advent")
        self.assertEqual((series.screen, series.params), ("series", {"id": "s7"}))
        self.assertEqual(series.metadata, {"source": "app", "campaign": "advent"})

    def test_round_trip_of_shareable_link(self):
        url = self.links.shareable("sermon", "abc", "content_share", "app_share")
        app_url = url.split(" ")[0]
        parsed = self.links.parse(app_url)
        self.assertEqual(parsed.metadata["campaign"], "content_share")
        self.assertEqual(parsed.metadata["referrer"], "app_share")


class SharingTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_URL)
        self.sharing = SharingService(self.db, DeepLinks())
        self.sermon = make_sermon(self.db, description="On trusting God.")

    def test_share_message(self):
        message = build_share_message("sermon", self.sermon)
        self.assertTrue(message.startswith("Check out this sermon from"))
        self.assertIn('"Walking in Faith"\nby Pastor James\n2025-01-05', message)
        self.assertIn("On trusting God.", message)
        self.assertTrue(message.endswith("Duration: 30:00"))
        self.assertEqual(build_share_message("sermon", self.sermon, "Listen!"), "Listen!")

    def test_channel_urls(self):
        self.assertEqual(method_share_url("whatsapp", "Hi there", "https://x.test/a"), "https://wa.me/?text=Hi%20there%0A%0Ahttps%3A%2F%2Fx.test%2Fa")
        self.assertTrue(method_share_url("email", "Hi", "https://x.test", "Title").startswith("mailto:?subject="))
        self.assertIsNone(method_share_url("native", "Hi", "https://x.test"))
        self.assertIsNone(method_share_url("copy", "Hi", "https://x.test"))

    def test_twitter_truncation(self):
        self.assertEqual(len(truncate_for_twitter("x" * 400)), 200)
        self.assertEqual(truncate_for_twitter("short"), "short")

    def test_share_records_event(self):
        result = self.sharing.share(ShareRequest(content_type="sermon", content_id=self.sermon.id, method="sms"))
        self.assertTrue(result["success"])
        self.assertTrue(result["url"].startswith(f"pulpit-app://sermon/{self.sermon.id}?campaign=content_share&ref=app_share"))
        self.assertTrue(result["share_url"].startswith("sms:?body="))
        self.sharing.record_event("sermon", self.sermon.id, "email", success=False, error="cancelled")

        analytics = self.sharing.share_analytics(self.sermon.id)
        self.assertEqual(analytics, {"total_shares": 2, "by_method": {"sms": 1, "email": 1}, "success_rate": 50.0})
        self.assertEqual(self.sharing.share_analytics("nothing")["success_rate"], 0.0)

    def test_share_missing_content(self):
        with self.assertRaises(NotFoundError):
            self.sharing.share(ShareRequest(content_type="article", content_id="missing"))


class SharingApiTests(ApiTestCase):
    def test_share_anonymously(self):
        article = make_article(self.db, excerpt="Hope for today")
        response = self.client.post(
            "/api/share", json={"content_type": "article", "content_id": article.id, "method": "whatsapp"}
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertIn("Hope for today", body["message"])
        self.assertTrue(body["share_url"].startswith("https://wa.me/?text="))

    def test_share_analytics_requires_permission(self):
        member = make_user(self.db)
        response = self.client.get("/api/share/analytics/abc", headers=auth_headers(member))
        self.assertEqual(response.status_code, 403)

    def test_deep_link_endpoints(self):
        generated = self.client.post("/api/deep-links", json={"type": "sermon", "id": "s1"})
        self.assertEqual(generated.json(), {"url": "pulpit-app://sermon/s1"})

        parsed = self.client.post("/api/deep-links/parse", json={"url": "pulpit-app://sermon/s1"})
        self.assertEqual(parsed.json(), {"screen": "sermon", "params": {"id": "s1"}, "metadata": {"source": "app"}})

        unknown = self.client.post("/api/deep-links/parse", json={"url": "https://example.com/x"})
        self.assertEqual(unknown.status_code, 400)
        self.assertEqual(unknown.json(), {"detail": "Unrecognized deep link"})


if __name__ == "__main__":
    unittest.main()

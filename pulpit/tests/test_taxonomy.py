import unittest

from pulpit.db import IN_MEMORY_URL, Database, SermonRow
from pulpit.errors import ConflictError, NotFoundError, ValidationFailed
from pulpit.schemas import CategoryIn, CategoryUpdate, SeriesIn, TagIn, TopicIn
from pulpit.services.taxonomy import TaxonomyService
from pulpit.shared.types import AdminRole, UserRole
from pulpit.tests.support import ApiTestCase, auth_headers, make_article, make_sermon, make_user


class TaxonomyServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_URL)
        self.taxonomy = TaxonomyService(self.db)

    def test_names_are_unique_ignoring_case(self):
        tag = self.taxonomy.create_tag(TagIn(name="Prayer"))
        with self.assertRaises(ConflictError):
            self.taxonomy.create_tag(TagIn(name=" prayer "))
        self.taxonomy.create_topic(TopicIn(name="Hope"))
        with self.assertRaises(ConflictError):
            self.taxonomy.create_topic(TopicIn(name="HOPE"))
        # Topics and tags do not share a namespace.
        self.taxonomy.create_topic(TopicIn(name="Prayer"))
        self.assertEqual([row.id for row in self.taxonomy.list_tags()], [tag.id])

    def test_assign_topics(self):
        sermon = make_sermon(self.db)
        grace = self.taxonomy.create_topic(TopicIn(name="Grace", sort_order=2))
        love = self.taxonomy.create_topic(TopicIn(name="Love", sort_order=1))

        topics = self.taxonomy.assign_topics_to_sermon(sermon.id, [grace.id, love.id, grace.id])
        self.assertEqual([row.name for row in topics], ["Love", "Grace"])

        with self.assertRaises(ValidationFailed):
            self.taxonomy.assign_topics_to_sermon(sermon.id, [grace.id, "missing"])
        self.assertEqual(len(self.taxonomy.topics_for("sermon", sermon.id)), 2)

        with self.assertRaises(NotFoundError):
            self.taxonomy.assign_topics_to_article("missing", [grace.id])

    def test_content_by_topics_lists_each_once(self):
        grace = self.taxonomy.create_topic(TopicIn(name="Grace"))
        love = self.taxonomy.create_topic(TopicIn(name="Love"))
        both = make_sermon(self.db, title="Both")
        draft = make_sermon(self.db, title="Draft", is_published=False)
        self.taxonomy.assign_topics_to_sermon(both.id, [grace.id, love.id])
        self.taxonomy.assign_topics_to_sermon(draft.id, [grace.id])

        self.assertEqual([row.id for row in self.taxonomy.sermons_by_topics([grace.id, love.id])], [both.id])
        self.assertEqual(len(self.taxonomy.sermons_by_topics([grace.id], published_only=False)), 2)
        self.assertEqual(self.taxonomy.sermons_by_topics([]), [])

        article = make_article(self.db)
        self.taxonomy.assign_topics_to_article(article.id, [love.id])
        self.assertEqual([row.id for row in self.taxonomy.articles_by_topics([love.id])], [article.id])

        self.taxonomy.delete_topic(love.id)
        self.assertEqual(self.taxonomy.topics_for("article", article.id), [])

    def test_delete_series_unlinks_content(self):
        series = self.taxonomy.create_series(SeriesIn(name="Romans"))
        sermon = make_sermon(self.db)
        article = make_article(self.db)
        self.taxonomy.assign_sermon_to_series(sermon.id, series.id)
        self.taxonomy.assign_series_to_article(article.id, [series.id])
        self.assertEqual([row.id for row in self.taxonomy.sermons_by_series(series.id)], [sermon.id])
        self.assertEqual(self.taxonomy.series_sermon_counts()[0][1], 1)

        self.taxonomy.delete_series(series.id)
        with self.db.Session() as session:
            self.assertIsNone(session.get(SermonRow, sermon.id).series_id)
        self.assertEqual(self.taxonomy.series_for_article(article.id), [])

        with self.assertRaises(ValidationFailed):
            self.taxonomy.assign_sermon_to_series(sermon.id, series.id)

    def test_categories(self):
        parent = self.taxonomy.create_category(CategoryIn(name="Teaching", sort_order=1))
        child = self.taxonomy.create_category(CategoryIn(name="Bible Study", parent_id=parent.id, sort_order=2))
        self.taxonomy.create_category(CategoryIn(name="Hidden", is_active=False))
        self.assertEqual([row.name for row in self.taxonomy.list_categories()], ["Teaching", "Bible Study"])
        self.assertEqual(len(self.taxonomy.list_categories(include_inactive=True)), 3)

        with self.assertRaises(ValidationFailed):
            self.taxonomy.update_category(child.id, CategoryUpdate(parent_id=child.id))
        with self.assertRaises(ValidationFailed):
            self.taxonomy.create_category(CategoryIn(name="Orphan", parent_id="missing"))

        sermon = make_sermon(self.db, category_id=parent.id)
        self.taxonomy.delete_category(parent.id)
        self.assertIsNone(self.taxonomy.get_category(child.id).parent_id)
        with self.db.Session() as session:
            self.assertIsNone(session.get(SermonRow, sermon.id).category_id)


class TaxonomyApiTests(ApiTestCase):
    def test_category_permissions(self):
        member = make_user(self.db)
        manager = make_user(
            self.db, email="cm@example.com", role=UserRole.ADMIN, admin_role=AdminRole.CONTENT_MANAGER
        )
        payload = {"name": "Youth"}
        self.assertEqual(
            self.client.post("/api/categories", json=payload, headers=auth_headers(member)).status_code, 403
        )
        created = self.client.post("/api/categories", json=payload, headers=auth_headers(manager))
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["name"], "Youth")
        self.assertEqual([row["name"] for row in self.client.get("/api/categories").json()], ["Youth"])

    def test_tag_conflict_and_topic_lookup(self):
        manager = auth_headers(
            make_user(self.db, email="cm@example.com", role=UserRole.ADMIN, admin_role=AdminRole.CONTENT_MANAGER)
        )
        self.client.post("/api/tags", json={"name": "Worship"}, headers=manager)
        duplicate = self.client.post("/api/tags", json={"name": "worship"}, headers=manager)
        self.assertEqual(duplicate.status_code, 409)

        topic = self.client.post("/api/topics", json={"name": "Faith"}, headers=manager).json()
        sermon = make_sermon(self.db)
        assigned = self.client.put(f"/api/sermons/{sermon.id}/topics", json={"ids": [topic["id"]]}, headers=manager)
        self.assertEqual([row["name"] for row in assigned.json()], ["Faith"])

        listed = self.client.get("/api/topics/sermons", params={"ids": [topic["id"]]})
        self.assertEqual([row["id"] for row in listed.json()], [sermon.id])
        self.assertEqual(self.client.get("/api/topics/missing").status_code, 404)


if __name__ == "__main__":
    unittest.main()

import unittest
from datetime import date

from sqlalchemy import update

from pulpit.db import (
    IN_MEMORY_URL,
    ArticleRow,
    ArticleSeriesRow,
    Database,
    SeriesRow,
    SermonTagRow,
    SermonTopicRow,
    TagRow,
    TopicRow,
    UserContentRow,
)
from pulpit.errors import NotFoundError
from pulpit.listing import ContentQuery
from pulpit.services.library import LibraryService
from pulpit.shared.types import SortField
from pulpit.tests.support import ApiTestCase, auth_headers, make_article, make_sermon, make_user


class LibraryServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_URL)
        self.library = LibraryService(self.db)
        self.user = make_user(self.db)
        self.sermon = make_sermon(self.db, title="Abide")
        self.article = make_article(self.db, title="Bread of Life")

    def test_save_is_idempotent(self):
        first = self.library.save(self.user.id, "sermon", self.sermon.id)
        second = self.library.save(self.user.id, "sermon", self.sermon.id)
        self.assertEqual(first.id, second.id)
        self.assertEqual(self.library.saved_count(self.user.id), 1)

        # A favorite is tracked separately from a bookmark.
        self.library.save(self.user.id, "sermon", self.sermon.id, "favorite")
        self.assertEqual(self.library.saved_count(self.user.id), 2)
        self.assertTrue(self.library.is_saved(self.user.id, "sermon", self.sermon.id, "favorite"))

    def test_save_unknown_content(self):
        with self.assertRaises(NotFoundError):
            self.library.save(self.user.id, "article", "missing")

    def test_list_carries_content(self):
        self.library.save(self.user.id, "sermon", self.sermon.id)
        self.library.save(self.user.id, "article", self.article.id)

        page = self.library.list_saved(self.user.id, params=ContentQuery(published=None, sort_by="title", sort_order="asc"))
        self.assertEqual(page.total, 2)
        self.assertEqual([item["content"]["title"] for item in page.items], ["Abide", "Bread of Life"])
        self.assertEqual(page.items[0]["content_type"], "sermon")

        only_articles = self.library.list_saved(self.user.id, "article")
        self.assertEqual([item["content_id"] for item in only_articles.items], [self.article.id])

        matching = self.library.list_saved(self.user.id, params=ContentQuery(published=None, query="bread"))
        self.assertEqual(matching.total, 1)

    def test_deleted_content_is_dropped(self):
        self.library.save(self.user.id, "sermon", self.sermon.id)
        self.library.save(self.user.id, "article", self.article.id)
        with self.db.Session() as session:
            session.delete(session.get(ArticleRow, self.article.id))
            session.commit()
        page = self.library.list_saved(self.user.id)
        self.assertEqual([item["content_id"] for item in page.items], [self.sermon.id])

    def test_unpublished_content_stays_listed(self):
        draft = make_sermon(self.db, title="Draft", is_published=False)
        self.library.save(self.user.id, "sermon", draft.id)
        self.assertEqual(self.library.list_saved(self.user.id).total, 1)

    def test_taxonomy_filters(self):
        tagged = make_sermon(self.db, title="Tagged")
        untagged = make_sermon(self.db, title="Untagged")
        with self.db.Session() as session:
            grace = TagRow(name="grace")
            prayer = TopicRow(name="Prayer")
            advent = SeriesRow(name="Advent")
            session.add_all([grace, prayer, advent])
            session.flush()
            session.add(SermonTagRow(sermon_id=tagged.id, tag_id=grace.id))
            session.add(SermonTopicRow(sermon_id=tagged.id, topic_id=prayer.id))
            session.add(ArticleSeriesRow(article_id=self.article.id, series_id=advent.id))
            session.commit()
        self.library.save(self.user.id, "sermon", untagged.id)
        self.library.save(self.user.id, "sermon", tagged.id)
        self.library.save(self.user.id, "article", self.article.id)

        def titles(**filters):
            page = self.library.list_saved(self.user.id, params=ContentQuery(published=None, **filters))
            return [item["content"]["title"] for item in page.items]

        self.assertEqual(titles(tags=["grace"]), ["Tagged"])
        self.assertEqual(titles(tags=[grace.id]), ["Tagged"])
        self.assertEqual(titles(topics=[prayer.id]), ["Tagged"])
        self.assertEqual(titles(series=advent.id), ["Bread of Life"])
        self.assertEqual(titles(tags=["unknown"]), [])

    def test_sort_orders(self):
        zeal = make_sermon(self.db, title="Zeal", preacher="Aaron Cole", date=date(2024, 6, 1))
        self.library.save(self.user.id, "sermon", self.sermon.id)
        self.library.save(self.user.id, "article", self.article.id)
        self.library.save(self.user.id, "sermon", zeal.id)
        saved_order = {self.article.id: 300.0, self.sermon.id: 200.0, zeal.id: 100.0}
        with self.db.Session() as session:
            for content_id, saved_at in saved_order.items():
                session.execute(
                    update(UserContentRow)
                    .where(UserContentRow.content_id == content_id)
                    .values(created_at=saved_at)
                )
            session.commit()

        def titles(**sort):
            page = self.library.list_saved(self.user.id, params=ContentQuery(published=None, **sort))
            return [item["content"]["title"] for item in page.items]

        newest_saved = ["Bread of Life", "Abide", "Zeal"]
        self.assertEqual([item["content"]["title"] for item in self.library.list_saved(self.user.id).items], newest_saved)
        self.assertEqual(titles(sort_by=SortField.SAVED_AT), newest_saved)
        self.assertEqual(titles(sort_by=SortField.SAVED_AT, sort_order="asc"), list(reversed(newest_saved)))
        self.assertEqual(titles(sort_by=SortField.DATE, sort_order="asc"), ["Zeal", "Abide", "Bread of Life"])
        self.assertEqual(titles(sort_by=SortField.AUTHOR, sort_order="asc"), ["Zeal", "Abide", "Bread of Life"])
        self.assertEqual(titles(sort_by=SortField.TITLE, sort_order="desc"), ["Zeal", "Bread of Life", "Abide"])

    def test_unsave(self):
        self.library.save(self.user.id, "sermon", self.sermon.id)
        self.assertTrue(self.library.unsave(self.user.id, "sermon", self.sermon.id))
        self.assertFalse(self.library.unsave(self.user.id, "sermon", self.sermon.id))
        self.assertFalse(self.library.is_saved(self.user.id, "sermon", self.sermon.id))


class LibraryApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = auth_headers(make_user(self.db))
        self.sermon = make_sermon(self.db)

    def test_save_list_unsave(self):
        payload = {"content_type": "sermon", "content_id": self.sermon.id}
        self.assertEqual(self.client.post("/api/library", json=payload, headers=self.headers).json(), {"saved": True})
        self.client.post("/api/library", json=payload, headers=self.headers)

        listed = self.client.get("/api/library", headers=self.headers).json()
        self.assertEqual(listed["total"], 1)
        self.assertEqual(listed["items"][0]["content"]["title"], "Walking in Faith")
        self.assertEqual(self.client.get("/api/library/count", headers=self.headers).json(), {"count": 1})

        status = self.client.get("/api/library/status", params=payload, headers=self.headers)
        self.assertEqual(status.json(), {"saved": True})

        removed = self.client.delete("/api/library", params=payload, headers=self.headers)
        self.assertEqual(removed.json(), {"saved": False})
        self.assertEqual(self.client.get("/api/library", headers=self.headers).json()["total"], 0)

    def test_save_missing_content(self):
        response = self.client.post(
            "/api/library", json={"content_type": "article", "content_id": "nope"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"detail": "Article not found"})


if __name__ == "__main__":
    unittest.main()

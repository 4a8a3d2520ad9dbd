import unittest
from datetime import date

from sqlalchemy import select

from pulpit.db import IN_MEMORY_URL, ArticleRow, Database, SermonRow
from pulpit.listing import ContentQuery, apply_content_query, make_page, paginate, paginate_list, sort_items
from pulpit.schemas import TagIn, TopicIn
from pulpit.services.taxonomy import TaxonomyService
from pulpit.shared.types import SortField, SortOrder
from pulpit.shared.utils import date_to_ts
from pulpit.tests.support import make_article, make_sermon


class PageHelperTests(unittest.TestCase):
    def test_has_more(self):
        self.assertTrue(make_page([1, 2], total=3, page=1, limit=2).has_more)
        self.assertFalse(make_page([3], total=3, page=2, limit=2).has_more)
        self.assertFalse(make_page([], total=0, page=1, limit=20).has_more)

    def test_paginate_list(self):
        page = paginate_list(list(range(5)), page=2, limit=2)
        self.assertEqual(page.items, [2, 3])
        self.assertEqual(page.total, 5)
        self.assertTrue(page.has_more)

        past_the_end = paginate_list(list(range(5)), page=4, limit=2)
        self.assertEqual(past_the_end.items, [])
        self.assertFalse(past_the_end.has_more)

    def test_sort_items_keeps_missing_last(self):
        items = [{"v": 2}, {"v": None}, {"v": 3}, {"v": 1}]
        ordered = sort_items(items, key=lambda item: item["v"], order=SortOrder.ASC)
        self.assertEqual([item["v"] for item in ordered], [1, 2, 3, None])
        ordered = sort_items(items, key=lambda item: item["v"], order=SortOrder.DESC)
        self.assertEqual([item["v"] for item in ordered], [3, 2, 1, None])

    def test_query_limits(self):
        with self.assertRaises(ValueError):
            ContentQuery(limit=0)
        with self.assertRaises(ValueError):
            ContentQuery(page=0)


class ContentQueryTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_URL)
        self.first = make_sermon(self.db, "Amazing Grace", date=date(2025, 1, 5), downloads=10)
        self.second = make_sermon(self.db, "Bread of Life", date=date(2025, 2, 2), downloads=30)
        self.third = make_sermon(self.db, "Called to Serve", date=date(2025, 3, 9), downloads=20)
        self.draft = make_sermon(self.db, "Draft Sermon", is_published=False)

    def run_query(self, **params):
        query = ContentQuery(**params)
        stmt = apply_content_query(select(SermonRow), SermonRow, query)
        with self.db.Session() as session:
            return paginate(session, stmt, query.page, query.limit)

    def titles(self, page):
        return [row.title for row in page.items]

    def test_published_only_newest_first(self):
        page = self.run_query()
        self.assertEqual(self.titles(page), ["Called to Serve", "Bread of Life", "Amazing Grace"])
        self.assertEqual(page.total, 3)

    def test_drafts_included_when_published_is_none(self):
        self.assertEqual(self.run_query(published=None).total, 4)

    def test_pagination(self):
        first = self.run_query(limit=2)
        self.assertEqual(len(first.items), 2)
        self.assertTrue(first.has_more)
        second = self.run_query(limit=2, page=2)
        self.assertEqual(self.titles(second), ["Amazing Grace"])
        self.assertFalse(second.has_more)

    def test_text_search_is_case_insensitive(self):
        page = self.run_query(query="bread")
        self.assertEqual(self.titles(page), ["Bread of Life"])

    def test_date_range(self):
        page = self.run_query(date_from=date(2025, 2, 1), date_to=date(2025, 2, 28))
        self.assertEqual(self.titles(page), ["Bread of Life"])

    def test_sort_by_title_and_popularity(self):
        page = self.run_query(sort_by=SortField.TITLE, sort_order=SortOrder.ASC)
        self.assertEqual(self.titles(page), ["Amazing Grace", "Bread of Life", "Called to Serve"])
        page = self.run_query(sort_by=SortField.POPULARITY)
        self.assertEqual(self.titles(page), ["Bread of Life", "Called to Serve", "Amazing Grace"])

    def test_tag_filter_matches_name_or_id(self):
        taxonomy = TaxonomyService(self.db)
        faith = taxonomy.create_tag(TagIn(name="Faith"))
        taxonomy.assign_tags("sermon", self.second.id, [faith.id])

        self.assertEqual(self.titles(self.run_query(tags=["Faith"])), ["Bread of Life"])
        self.assertEqual(self.titles(self.run_query(tags=[faith.id])), ["Bread of Life"])

    def test_topic_filter(self):
        taxonomy = TaxonomyService(self.db)
        hope = taxonomy.create_topic(TopicIn(name="Hope"))
        taxonomy.assign_topics_to_sermon(self.third.id, [hope.id])
        self.assertEqual(self.titles(self.run_query(topics=[hope.id])), ["Called to Serve"])

    def test_article_date_range_uses_publish_day(self):
        make_article(self.db, "Late Night", published_at=date_to_ts(date(2025, 4, 1)) + 23 * 3600)
        make_article(self.db, "Next Morning", published_at=date_to_ts(date(2025, 4, 2)) + 3600)
        query = ContentQuery(date_from=date(2025, 4, 1), date_to=date(2025, 4, 1))
        stmt = apply_content_query(select(ArticleRow), ArticleRow, query)
        with self.db.Session() as session:
            page = paginate(session, stmt, 1, 20)
        self.assertEqual([row.title for row in page.items], ["Late Night"])


if __name__ == "__main__":
    unittest.main()

"""Read-through / write-invalidate behaviour of ArticleService."""

from __future__ import annotations

import datetime
import json
import uuid

from django.test import TestCase
from rest_framework.exceptions import NotFound, PermissionDenied

from articles.models import Article
from articles.repositories import ArticleRepository
from articles.services import ArticleService
from core.cache import RedisCache
from tests.utils import BrokenRedis, FakeRedis, create_user

TTL = 60


class ArticleServiceCacheTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.author = create_user("author", "Str0ng!Pass", first_name="Ada", last_name="Byron")
        cls.other = create_user("other", "Str0ng!Pass", first_name="Bob", last_name="Stone")
        cls.article = Article.objects.create(
            author=cls.author,
            title="Original",
            description="first draft",
            published_at=datetime.date(2024, 1, 10),
        )

    def setUp(self):
        self.redis = FakeRedis()
        self.service = ArticleService(ArticleRepository(), RedisCache(self.redis, prefix="test:"), TTL)

    def _list_keys(self) -> list[str]:
        return self.redis.keys_matching("test:article_list:*")

    async def test_get_by_id_populates_cache_with_ttl(self):
        payload = await self.service.get_by_id(self.article.id)

        key = f"test:article:{self.article.id}"
        self.assertEqual(payload["title"], "Original")
        self.assertEqual(payload["author"]["firstName"], "Ada")
        self.assertEqual(json.loads(await self.redis.get(key)), payload)
        self.assertEqual(self.redis.ttls[key], TTL)

    async def test_cache_hit_is_trusted_without_reading_the_store(self):
        await self.service.get_by_id(self.article.id)
        # Bypass the service so the cache is not invalidated.
        await Article.objects.filter(id=self.article.id).aupdate(title="Changed behind the cache")

        payload = await self.service.get_by_id(self.article.id)

        self.assertEqual(payload["title"], "Original")

    async def test_get_missing_article_not_found(self):
        with self.assertRaises(NotFound):
            await self.service.get_by_id(uuid.uuid4())

    async def test_update_invalidates_single_article_key(self):
        before = await self.service.get_by_id(self.article.id)

        await self.service.update(self.article.id, {"title": "Revised"}, self.author.id)
        after = await self.service.get_by_id(self.article.id)

        self.assertEqual(before["title"], "Original")
        self.assertEqual(after["title"], "Revised")

    async def test_update_sweeps_every_list_page(self):
        await self.service.list({"limit": 20, "offset": 0})
        await self.service.list({"limit": 5, "offset": 0, "orderBy": {"title": "asc"}})
        self.assertEqual(len(self._list_keys()), 2)

        await self.service.update(self.article.id, {"description": None}, self.author.id)

        self.assertEqual(self._list_keys(), [])

    async def test_update_by_non_author_is_forbidden(self):
        with self.assertRaises(PermissionDenied):
            await self.service.update(self.article.id, {"title": "Hijack"}, self.other.id)

        refreshed = await Article.objects.aget(id=self.article.id)
        self.assertEqual(refreshed.title, "Original")

    async def test_update_missing_article_not_found(self):
        with self.assertRaises(NotFound):
            await self.service.update(uuid.uuid4(), {"title": "Nothing"}, self.author.id)

    async def test_create_sweeps_list_cache(self):
        first = await self.service.list({"limit": 20, "offset": 0})
        self.assertEqual(first["total"], 1)

        created = await self.service.create(
            {"title": "Second", "published_at": datetime.date(2024, 2, 1)}, self.author.id
        )
        second = await self.service.list({"limit": 20, "offset": 0})

        self.assertEqual(created["author"]["id"], str(self.author.id))
        self.assertEqual(second["total"], 2)
        self.assertIn("Second", [item["title"] for item in second["data"]])

    async def test_delete_invalidates_and_removes(self):
        await self.service.get_by_id(self.article.id)
        await self.service.list({"limit": 20, "offset": 0})

        await self.service.delete(self.article.id, self.author.id)

        self.assertIsNone(await self.redis.get(f"test:article:{self.article.id}"))
        self.assertEqual(self._list_keys(), [])
        with self.assertRaises(NotFound):
            await self.service.get_by_id(self.article.id)

    async def test_delete_by_non_author_is_forbidden(self):
        with self.assertRaises(PermissionDenied):
            await self.service.delete(self.article.id, self.other.id)

        self.assertTrue(await Article.objects.filter(id=self.article.id).aexists())

    async def test_delete_missing_article_not_found(self):
        with self.assertRaises(NotFound):
            await self.service.delete(uuid.uuid4(), self.author.id)

    async def test_list_key_ignores_key_insertion_order(self):
        first = {"limit": 20, "offset": 0, "where": {"title": {"contains": "Orig"}}}
        second = {"where": {"title": {"contains": "Orig"}}, "offset": 0, "limit": 20}

        await self.service.list(first)
        await self.service.list(second)

        self.assertEqual(self.service.list_key(first), self.service.list_key(second))
        self.assertEqual(len(self._list_keys()), 1)

    async def test_list_applies_filters(self):
        await Article.objects.acreate(
            author=self.other, title="Unrelated", published_at=datetime.date(2023, 5, 1)
        )

        result = await self.service.list(
            {"limit": 20, "offset": 0, "where": {"authorId": {"equals": str(self.other.id)}}}
        )

        self.assertEqual(result["total"], 1)
        self.assertEqual(result["data"][0]["title"], "Unrelated")

    async def test_sweep_without_cached_lists_is_noop(self):
        self.assertEqual(await self.service._invalidate_lists(), 0)


class ArticleServiceCacheOutageTests(TestCase):
    """A dead cache never breaks a request."""

    @classmethod
    def setUpTestData(cls):
        cls.author = create_user("outage", "Str0ng!Pass")
        cls.article = Article.objects.create(
            author=cls.author, title="Still served", published_at=datetime.date(2024, 3, 3)
        )

    def setUp(self):
        self.service = ArticleService(ArticleRepository(), RedisCache(BrokenRedis(), prefix="test:"), TTL)

    async def test_reads_fall_back_to_database(self):
        with self.assertLogs("articles.services", level="WARNING"):
            payload = await self.service.get_by_id(self.article.id)
            listing = await self.service.list({"limit": 20, "offset": 0})

        self.assertEqual(payload["title"], "Still served")
        self.assertEqual(listing["total"], 1)

    async def test_writes_succeed_when_invalidation_fails(self):
        created = await self.service.create(
            {"title": "New", "published_at": datetime.date(2024, 4, 4)}, self.author.id
        )
        updated = await self.service.update(created["id"], {"title": "Newer"}, self.author.id)
        await self.service.delete(created["id"], self.author.id)

        self.assertEqual(updated["title"], "Newer")
        self.assertFalse(await Article.objects.filter(id=created["id"]).aexists())

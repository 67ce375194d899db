"""End-to-end tests for the article endpoints with an in-memory cache."""

from __future__ import annotations

import datetime
import json
import uuid
from unittest import mock

from django.test import TestCase
from rest_framework.test import APIClient

from articles.models import Article
from tests.utils import FakeRedis, auth_client, create_user


class ArticleEndpointTests(TestCase):
    """Ownership rules and cache coherence through the HTTP surface."""

    @classmethod
    def setUpClass(cls):
        """Patch the Redis client factory to use an in-memory fake."""
        super().setUpClass()
        cls.patcher = mock.patch("articles.services.get_redis_client", side_effect=lambda: cls.fake_redis)
        cls.patcher.start()

    @classmethod
    def tearDownClass(cls):
        """Stop the Redis patch after all tests complete."""
        cls.patcher.stop()
        super().tearDownClass()

    @classmethod
    def setUpTestData(cls):
        cls.author = create_user("writer", "Str0ng!Pass", first_name="Wanda", last_name="Writer")
        cls.stranger = create_user("stranger", "Str0ng!Pass", first_name="Sam", last_name="Stranger")
        cls.article = Article.objects.create(
            author=cls.author,
            title="Hello",
            description="intro",
            published_at=datetime.date(2024, 5, 1),
        )

    def setUp(self):
        type(self).fake_redis = FakeRedis()
        self.anonymous = APIClient()
        self.author_client = auth_client(self.author, "writer")
        self.stranger_client = auth_client(self.stranger, "stranger")

    def _detail_url(self, article_id=None) -> str:
        return f"/articles/{article_id or self.article.id}"

    def test_list_is_public(self):
        response = self.anonymous.get("/articles")
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["total"], 1)
        self.assertEqual(body["data"][0]["author"]["lastName"], "Writer")

    def test_list_with_json_filters(self):
        response = self.anonymous.get(
            "/articles",
            {"where": json.dumps({"title": {"contains": "nothing"}}), "orderBy": json.dumps({"title": "asc"})},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"data": [], "total": 0})

    def test_list_rejects_malformed_where(self):
        response = self.anonymous.get("/articles", {"where": "{not json"})

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["message"].startswith("where:"))

    def test_list_rejects_unknown_filter_field(self):
        response = self.anonymous.get("/articles", {"where": json.dumps({"secret": {"equals": 1}})})

        self.assertEqual(response.status_code, 400)

    def test_list_rejects_operands_of_the_wrong_type(self):
        for where in (
            {"authorId": {"equals": "not-a-uuid"}},
            {"publishedAt": {"lt": 5}},
            {"publishedAt": {"equals": "yesterday"}},
        ):
            with self.subTest(where=where):
                response = self.anonymous.get("/articles", {"where": json.dumps(where)})

                self.assertEqual(response.status_code, 400)
                self.assertTrue(response.json()["message"].startswith("where:"))

    def test_list_filters_on_null_equals(self):
        response = self.anonymous.get("/articles", {"where": json.dumps({"description": {"equals": None}})})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total"], 0)

    def test_list_rejects_oversized_page(self):
        response = self.anonymous.get("/articles", {"limit": 1000})

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["message"].startswith("limit:"))

    def test_get_by_id(self):
        response = self.anonymous.get(self._detail_url())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["publishedAt"], "2024-05-01")

    def test_get_unknown_id_404(self):
        response = self.anonymous.get(self._detail_url(uuid.uuid4()))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Article not found")

    def test_create_requires_authentication(self):
        response = self.anonymous.post(
            "/articles", {"title": "Nope", "publishedAt": "2024-01-01"}, format="json"
        )

        self.assertEqual(response.status_code, 401)

    def test_create_sets_author_and_refreshes_list(self):
        self.anonymous.get("/articles")

        response = self.author_client.post(
            "/articles", {"title": "Fresh", "publishedAt": "2024-07-07"}, format="json"
        )
        listing = self.anonymous.get("/articles").json()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["author"]["id"], str(self.author.id))
        self.assertEqual(listing["total"], 2)

    def test_create_missing_title_400(self):
        response = self.author_client.post("/articles", {"publishedAt": "2024-07-07"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["message"].startswith("title:"))

    def test_update_by_author_is_visible_on_next_read(self):
        before = self.anonymous.get(self._detail_url()).json()

        response = self.author_client.patch(self._detail_url(), {"title": "Hello again"}, format="json")
        after = self.anonymous.get(self._detail_url()).json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(before["title"], "Hello")
        self.assertEqual(after["title"], "Hello again")

    def test_update_by_stranger_forbidden(self):
        response = self.stranger_client.patch(self._detail_url(), {"title": "Mine now"}, format="json")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(Article.objects.get(id=self.article.id).title, "Hello")

    def test_update_with_empty_body_400(self):
        response = self.author_client.patch(self._detail_url(), {}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "At least one field must be provided")

    def test_delete_by_stranger_forbidden(self):
        response = self.stranger_client.delete(self._detail_url())

        self.assertEqual(response.status_code, 403)
        self.assertTrue(Article.objects.filter(id=self.article.id).exists())

    def test_delete_by_author(self):
        self.anonymous.get(self._detail_url())

        response = self.author_client.delete(self._detail_url())

        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.anonymous.get(self._detail_url()).status_code, 404)
        self.assertEqual(self.fake_redis.keys_matching("*article:*"), [])

    def test_deleting_author_cascades_to_articles(self):
        self.author.delete()

        self.assertFalse(Article.objects.filter(id=self.article.id).exists())
        self.assertEqual(self.anonymous.get(self._detail_url()).status_code, 404)

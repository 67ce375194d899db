"""Article CRUD with a Redis read-through cache.

Reads consult the cache first and populate it on a miss. Writes invalidate
after the database write has returned: the single-article key precisely,
the list family by sweeping ``article_list:*`` (query shapes are
unbounded). Cache failures are logged and never reach the caller; entries
expire after ``ttl_seconds`` regardless, which bounds staleness.
"""

import json
import logging
from typing import Any, Mapping

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from core.cache import CacheUnavailable, RedisCache
from core.exceptions import InternalError
from core.filters import build_order_by, build_where_condition, query_fingerprint
from core.redis_client import get_redis_client

from .repositories import ArticleRepository
from .serializers import ORDER_FIELDS, WHERE_FIELDS, ArticleSerializer

ARTICLE_KEY = "article"
ARTICLE_LIST_KEY = "article_list"


class ArticleService:
    def __init__(
        self,
        repository: ArticleRepository,
        cache: RedisCache,
        ttl_seconds: int,
        logger: logging.Logger | None = None,
    ):
        self.repository = repository
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)

    # reads

    async def get_by_id(self, article_id) -> dict[str, Any]:
        key = self.article_key(article_id)
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        article = await self.repository.find_by_id(article_id, with_author=True)
        if article is None:
            raise NotFound("Article not found")

        payload = ArticleSerializer(article).data
        await self._cache_set(key, payload)
        return payload

    async def list(self, query: Mapping[str, Any]) -> dict[str, Any]:
        key = self.list_key(query)
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        try:
            where = build_where_condition(query.get("where"), WHERE_FIELDS)
            order = build_order_by(query.get("orderBy"), ORDER_FIELDS)
        except ValueError as exc:
            raise ValidationError({"where": [str(exc)]}) from exc

        try:
            entities, total = await self.repository.find_and_count_all(
                where, order, limit=query.get("limit", 20), offset=query.get("offset", 0)
            )
        except (DjangoValidationError, TypeError, ValueError) as exc:
            # Operand does not fit the column type, e.g. a non-UUID authorId.
            self.logger.debug("Rejected filter operand: %s", exc)
            raise ValidationError({"where": ["Filter value does not match the field type"]}) from exc

        payload = {"data": ArticleSerializer(entities, many=True).data, "total": total}
        await self._cache_set(key, payload)
        return payload

    # writes

    async def create(self, data: Mapping[str, Any], author_id) -> dict[str, Any]:
        article = await self.repository.create(author_id=author_id, **data)
        if article is None:
            raise InternalError("Failed to create article")

        self.logger.info("Article created: %s", article.id)
        await self._invalidate_lists()

        created = await self.repository.find_by_id(article.id, with_author=True)
        if created is None:
            raise InternalError("Failed to create article")
        return ArticleSerializer(created).data

    async def update(self, article_id, data: Mapping[str, Any], author_id) -> dict[str, Any]:
        affected = await self.repository.update({"id": article_id, "author_id": author_id}, **data)
        if affected is None:
            raise InternalError("Failed to update article")
        if affected == 0:
            await self._raise_missing_or_foreign(article_id, author_id, "update")

        article = await self.repository.find_by_id(article_id, with_author=True)
        if article is None:
            raise NotFound("Article not found")

        self.logger.info("Article updated: %s", article_id)
        await self._invalidate_article(article_id)
        await self._invalidate_lists()
        return ArticleSerializer(article).data

    async def delete(self, article_id, author_id) -> None:
        article = await self.repository.find_by_id(article_id)
        if article is None:
            raise NotFound("Article not found")
        if article.author_id != author_id:
            raise PermissionDenied("You are not permitted to delete this article")

        deleted = await self.repository.delete({"id": article_id, "author_id": author_id})
        if not deleted:
            raise InternalError("Failed to delete article")

        self.logger.info("Article deleted: %s", article_id)
        await self._invalidate_article(article_id)
        await self._invalidate_lists()

    async def _raise_missing_or_foreign(self, article_id, author_id, action: str) -> None:
        article = await self.repository.find_by_id(article_id)
        if article is not None and article.author_id != author_id:
            raise PermissionDenied(f"You are not permitted to {action} this article")
        raise NotFound("Article not found")

    # cache protocol

    def article_key(self, article_id) -> str:
        return self.cache.build_key(ARTICLE_KEY, str(article_id))

    def list_key(self, query: Mapping[str, Any]) -> str:
        return self.cache.build_key(ARTICLE_LIST_KEY, query_fingerprint(query))

    async def _cache_get(self, key: str) -> Any | None:
        try:
            raw = await self.cache.get(key)
        except CacheUnavailable as exc:
            self.logger.warning("Cache read failed, falling back to database: %s", exc)
            return None
        if raw is None:
            self.logger.debug("Cache miss: %s", key)
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            self.logger.warning("Discarding undecodable cache entry %s", key)
            return None
        self.logger.debug("Cache hit: %s", key)
        return value

    async def _cache_set(self, key: str, value: Any) -> None:
        try:
            await self.cache.set_with_ttl(key, json.dumps(value), self.ttl_seconds)
        except CacheUnavailable as exc:
            self.logger.warning("Cache populate failed for %s: %s", key, exc)

    async def _invalidate_article(self, article_id) -> None:
        try:
            await self.cache.delete(self.article_key(article_id))
        except CacheUnavailable as exc:
            self.logger.warning("Cache invalidation failed for article %s: %s", article_id, exc)

    async def _invalidate_lists(self) -> int:
        """Drop every cached list page; returns the number of keys removed."""
        try:
            keys = await self.cache.keys(self.cache.build_key(ARTICLE_LIST_KEY, "*"))
            return await self.cache.delete_many(keys)
        except CacheUnavailable as exc:
            self.logger.warning("Article list cache sweep failed: %s", exc)
            return 0


def build_article_service() -> ArticleService:
    """Wire an ArticleService from settings and the per-loop Redis client."""
    return ArticleService(
        repository=ArticleRepository(),
        cache=RedisCache(client_factory=get_redis_client, prefix=settings.REDIS_KEY_PREFIX),
        ttl_seconds=settings.ARTICLE_CACHE_TTL,
    )


__all__ = ["ArticleService", "build_article_service"]

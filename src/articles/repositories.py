"""Async persistence for articles.

Reads by id let database errors propagate (the API answers 503); list and
write failures are logged and reported as empty/``None`` results. Filter
operands the column cannot hold raise Django's ``ValidationError`` (or
``TypeError``) to the caller.
"""

import logging
from typing import Any, Mapping, Sequence

from django.db import DatabaseError
from django.db.models import Q
from django.utils import timezone

from .models import Article


class ArticleRepository:
    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _alive():
        return Article.objects.filter(deleted_at__isnull=True)

    async def find_by_id(self, article_id, with_author: bool = False) -> Article | None:
        queryset = self._alive()
        if with_author:
            queryset = queryset.select_related("author")
        return await queryset.filter(id=article_id).afirst()

    async def find_and_count_all(
        self, where: Q, order: Sequence[str], limit: int, offset: int
    ) -> tuple[list[Article], int]:
        queryset = self._alive().filter(where).select_related("author").order_by(*order)
        try:
            total = await queryset.acount()
            entities = [article async for article in queryset[offset:offset + limit]]
        except DatabaseError as exc:
            self.logger.error("Article list query failed: %s", exc)
            return [], 0
        return entities, total

    async def create(self, **data) -> Article | None:
        try:
            return await Article.objects.acreate(**data)
        except DatabaseError as exc:
            self.logger.error("Article insert failed: %s", exc)
            return None

    async def update(self, where: Mapping[str, Any], **patch) -> int | None:
        """Apply ``patch`` to live articles matching ``where``; return rows affected."""
        patch.setdefault("updated_at", timezone.now())
        try:
            return await self._alive().filter(**where).aupdate(**patch)
        except DatabaseError as exc:
            self.logger.error("Article update failed: %s", exc)
            return None

    async def delete(self, where: Mapping[str, Any]) -> int | None:
        try:
            deleted, _ = await Article.objects.filter(**where).adelete()
        except DatabaseError as exc:
            self.logger.error("Article delete failed: %s", exc)
            return None
        return deleted


__all__ = ["ArticleRepository"]

"""Async persistence for users and their credentials.

Write failures are logged and reported as ``None`` so the service decides
which error the caller sees. Unique-constraint violations are the exception:
they propagate as ``IntegrityError`` so registration can answer 409.
"""

import logging
from typing import Any, Mapping

from asgiref.sync import sync_to_async
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from .models import Credential, User


class CredentialRepository:
    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    async def find_by_login(self, login: str) -> Credential | None:
        try:
            return await Credential.objects.filter(
                login=login, user__deleted_at__isnull=True
            ).afirst()
        except DatabaseError as exc:
            self.logger.error("Credential lookup by login failed: %s", exc)
            return None

    async def find_by_user_id(self, user_id) -> Credential | None:
        try:
            return await Credential.objects.filter(
                user_id=user_id, user__deleted_at__isnull=True
            ).afirst()
        except DatabaseError as exc:
            self.logger.error("Credential lookup for user %s failed: %s", user_id, exc)
            return None

    async def create_account(
        self, user_fields: Mapping[str, Any], credential_fields: Mapping[str, Any]
    ) -> Credential | None:
        """Create the user profile and its credential in one transaction."""
        return await sync_to_async(self._create_account)(user_fields, credential_fields)

    def _create_account(
        self, user_fields: Mapping[str, Any], credential_fields: Mapping[str, Any]
    ) -> Credential | None:
        try:
            with transaction.atomic():
                user = User.objects.create(**user_fields)
                return Credential.objects.create(user=user, **credential_fields)
        except IntegrityError:
            raise
        except DatabaseError as exc:
            self.logger.error("Account creation rolled back: %s", exc)
            return None

    async def update(self, where: Mapping[str, Any], **patch) -> int | None:
        """Apply ``patch`` to credentials matching ``where``; return rows affected."""
        patch.setdefault("updated_at", timezone.now())
        try:
            return await Credential.objects.filter(**where).aupdate(**patch)
        except DatabaseError as exc:
            self.logger.error("Credential update failed: %s", exc)
            return None


__all__ = ["CredentialRepository"]

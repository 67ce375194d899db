"""User profile and login credentials.

Credentials live in their own table, one-to-one with the profile, so the
profile carries no secrets. Deleting a user cascades to the credential row.
"""

import uuid

from django.db import models


class User(models.Model):
    """Profile of a registered user; also serves as the request principal."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    first_name = models.CharField(max_length=250)
    last_name = models.CharField(max_length=250)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "users"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.first_name} {self.last_name}"

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_anonymous(self) -> bool:
        return False


class Credential(models.Model):
    """Login, password digest and the digest of the current refresh token.

    ``refresh_token_hash`` is set while a session is active and cleared on
    logout.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="credential")
    login = models.CharField(max_length=255, unique=True)
    password_hash = models.CharField(max_length=128)
    refresh_token_hash = models.CharField(max_length=128, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "user_credentials"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.login

    @property
    def has_active_session(self) -> bool:
        return bool(self.refresh_token_hash)


__all__ = ["User", "Credential"]

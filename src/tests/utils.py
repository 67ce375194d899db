"""Shared helpers for tests (user creation, token helpers, fake Redis)."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Dict

from redis.exceptions import ConnectionError as RedisConnectionError
from rest_framework.test import APIClient

from authentication.hashing import BcryptHasher
from authentication.models import Credential, User
from authentication.services import TokenService


class FakeRedis:
    """Minimal async Redis stub supporting the commands used by RedisCache."""

    def __init__(self):
        self._store: Dict[str, str] = {}
        self.ttls: Dict[str, int | None] = {}

    async def get(self, key: str):
        """Return stored value for key or None, matching Redis GET semantics."""
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        """Mimic Redis SET; the TTL is recorded but never enforced."""
        self._store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def scan_iter(self, match: str | None = None):
        for key in list(self._store):
            if match is None or fnmatchcase(key, match):
                yield key

    def keys_matching(self, pattern: str) -> list[str]:
        return [key for key in self._store if fnmatchcase(key, pattern)]


class BrokenRedis:
    """Redis stub whose every command fails as if the server were down."""

    async def get(self, key: str):
        raise RedisConnectionError("redis down")

    async def set(self, key: str, value: str, ex: int | None = None):
        raise RedisConnectionError("redis down")

    async def delete(self, *keys: str):
        raise RedisConnectionError("redis down")

    async def scan_iter(self, match: str | None = None):
        raise RedisConnectionError("redis down")
        yield  # pragma: no cover - makes this an async generator


def create_user(login: str, password: str, first_name: str = "Test", last_name: str = "User") -> User:
    """Create a user with a credential row holding a bcrypt password digest."""

    user = User.objects.create(first_name=first_name, last_name=last_name)
    Credential.objects.create(
        user=user,
        login=login,
        password_hash=BcryptHasher.from_settings().hash_sync(password),
    )
    return user


def auth_client(user: User, login: str = "user") -> APIClient:
    """Return an APIClient authenticated with a fresh access token."""

    tokens = TokenService.from_settings().generate_tokens(user.id, login)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens.access_token}")
    return client

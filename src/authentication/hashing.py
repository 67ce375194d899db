"""Salted one-way digests for passwords and refresh tokens (bcrypt)."""

import hashlib

import bcrypt
from asgiref.sync import sync_to_async
from django.conf import settings


class BcryptHasher:
    """bcrypt with a configurable cost factor.

    Values are SHA-256 pre-hashed first: bcrypt only reads 72 bytes, and
    refresh JWTs share a long common prefix.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    @classmethod
    def from_settings(cls) -> "BcryptHasher":
        return cls(rounds=settings.BCRYPT_ROUNDS)

    @staticmethod
    def _prehash(value: str) -> bytes:
        return hashlib.sha256(value.encode()).hexdigest().encode()

    def hash_sync(self, value: str) -> str:
        """Hash ``value`` and return the utf-8 bcrypt digest."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._prehash(value), salt).decode()

    def verify_sync(self, value: str, digest: str | None) -> bool:
        """Verify ``value`` against a stored digest; empty digests never match."""
        if not digest:
            return False
        try:
            return bcrypt.checkpw(self._prehash(value), digest.encode("utf-8"))
        except ValueError:
            # Malformed stored digest.
            return False

    async def make(self, value: str) -> str:
        return await sync_to_async(self.hash_sync, thread_sensitive=False)(value)

    async def verify(self, value: str, digest: str | None) -> bool:
        return await sync_to_async(self.verify_sync, thread_sensitive=False)(value, digest)


__all__ = ["BcryptHasher"]

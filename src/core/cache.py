"""Thin async key-value cache over Redis with TTL and pattern sweeps."""

from redis.exceptions import RedisError


class CacheUnavailable(Exception):
    """Raised when Redis cannot serve a cache command."""


class RedisCache:
    """Cache commands used by the read-through services.

    Every key is namespaced with ``prefix``. Redis errors are re-raised as
    :class:`CacheUnavailable` so callers can decide whether a failure matters.
    Pass either a ready ``client`` or a ``client_factory`` called on every
    command, for clients that are bound to the running event loop.
    """

    def __init__(self, client=None, prefix: str = "", *, client_factory=None):
        if client is None and client_factory is None:
            raise ValueError("RedisCache needs a client or a client_factory")
        self._client = client
        self._client_factory = client_factory
        self.prefix = prefix

    @property
    def client(self):
        if self._client is not None:
            return self._client
        return self._client_factory()

    def build_key(self, family: str, *parts: str) -> str:
        """Return ``{prefix}{family}:{part1}:{part2}...``."""
        return f"{self.prefix}{family}:{':'.join(str(part) for part in parts)}"

    async def get(self, key: str) -> str | None:
        try:
            return await self.client.get(key)
        except RedisError as exc:
            raise CacheUnavailable(f"GET {key} failed") from exc

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.client.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise CacheUnavailable(f"SET {key} failed") from exc

    async def delete(self, key: str) -> int:
        try:
            return await self.client.delete(key)
        except RedisError as exc:
            raise CacheUnavailable(f"DEL {key} failed") from exc

    async def keys(self, pattern: str) -> list[str]:
        """Collect keys matching ``pattern`` with SCAN rather than blocking KEYS."""
        try:
            return [key async for key in self.client.scan_iter(match=pattern)]
        except RedisError as exc:
            raise CacheUnavailable(f"SCAN {pattern} failed") from exc

    async def delete_many(self, keys: list[str]) -> int:
        if not keys:
            return 0
        try:
            return await self.client.delete(*keys)
        except RedisError as exc:
            raise CacheUnavailable(f"DEL of {len(keys)} keys failed") from exc


__all__ = ["RedisCache", "CacheUnavailable"]

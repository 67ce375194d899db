"""Shared async Redis client factory for the article cache."""

import asyncio

from redis.asyncio import Redis
from django.conf import settings

_clients: dict[asyncio.AbstractEventLoop, Redis] = {}


def get_redis_client() -> Redis:
    """Return the ``redis.asyncio`` client bound to the running event loop.

    Pooled connections belong to the loop that opened them. Under ASGI one
    loop serves every request and the client is built once; under WSGI each
    ``async_to_sync`` call runs on a fresh loop and gets its own client.
    Must be called from a coroutine.
    """

    loop = asyncio.get_running_loop()
    client = _clients.get(loop)
    if client is None:
        for stale in [known for known in _clients if known.is_closed()]:
            del _clients[stale]
        client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
        _clients[loop] = client
    return client


__all__ = ["get_redis_client"]

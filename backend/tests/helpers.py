"""
Shared test helpers: the multipart event POST and an in-memory Redis double.
"""

from typing import Optional

import redis.asyncio as redis
from httpx import AsyncClient


async def post_event(client: AsyncClient, form: dict, files: Optional[dict] = None):
    return await client.post("/api/v1/events/", data=form, files=files)


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the cache."""

    def __init__(self, broken: bool = False):
        self.store = {}
        self.broken = broken

    def _check(self):
        if self.broken:
            raise redis.ConnectionError("Connection refused")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value

    async def delete(self, key):
        self._check()
        return 1 if self.store.pop(key, None) is not None else 0

    async def info(self, section):
        self._check()
        return {"keyspace_hits": 3, "keyspace_misses": 1}

    async def aclose(self):
        pass

"""
Redis cache for the event listing.

CACHING STRATEGY
================

What we cache:
  - The full listing response, JSON-serialized, under one key
    ("events:list:all"); the listing has no pagination or filters.

Invalidation:
  - Every event create, update and delete drops the key
    once its transaction has committed
  - TTL (REDIS_CACHE_TTL) as a safety net

Failure policy:
  - The cache fails open. A Redis outage is logged and the request is
    served from the database; it never turns into an error response.

Bookings do not touch the listing payload, so they do not invalidate it.
"""

import json
from typing import Optional

import redis.asyncio as redis
from fastapi import Request

from devevent.core.config import Settings
from devevent.core.logging import get_logger
from devevent.core.metrics import record_cache_operation

logger = get_logger(__name__)

EVENT_LIST_KEY = "events:list:all"


class EventListCache:
    def __init__(self, settings: Settings, client: Optional[redis.Redis] = None):
        self.settings = settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return self.settings.REDIS_ENABLED

    async def client(self) -> Optional[redis.Redis]:
        """Get or create the Redis connection. None when disabled or down."""
        if not self.enabled:
            return None

        if self._client is None:
            candidate = redis.from_url(
                self.settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            try:
                await candidate.ping()
            except redis.RedisError as e:
                logger.error("redis_connection_failed", error=str(e))
                await candidate.aclose()
                return None
            logger.info("redis_connected")
            self._client = candidate

        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_events(self) -> Optional[dict]:
        client = await self.client()
        if not client:
            return None

        try:
            data = await client.get(EVENT_LIST_KEY)
        except redis.RedisError as e:
            record_cache_operation("get", "error")
            logger.error("cache_get_error", key=EVENT_LIST_KEY, error=str(e))
            return None

        if data is None:
            record_cache_operation("get", "miss")
            return None
        record_cache_operation("get", "hit")
        return json.loads(data)

    async def set_events(self, data: dict) -> None:
        client = await self.client()
        if not client:
            return

        try:
            await client.setex(EVENT_LIST_KEY, self.settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
            record_cache_operation("set", "ok")
        except redis.RedisError as e:
            record_cache_operation("set", "error")
            logger.error("cache_set_error", key=EVENT_LIST_KEY, error=str(e))

    async def invalidate(self) -> None:
        client = await self.client()
        if not client:
            return

        try:
            deleted = await client.delete(EVENT_LIST_KEY)
            record_cache_operation("invalidate", "ok")
            logger.info("cache_invalidated", keys_deleted=deleted)
        except redis.RedisError as e:
            record_cache_operation("invalidate", "error")
            logger.error("cache_invalidation_error", error=str(e))

    async def stats(self) -> dict:
        """Redis keyspace statistics for /health."""
        client = await self.client()
        if not client:
            return {"status": "disabled" if not self.enabled else "unavailable"}

        try:
            info = await client.info("stats")
        except redis.RedisError as e:
            return {"status": "error", "error": str(e)}

        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }


def get_event_cache(request: Request) -> EventListCache:
    return request.app.state.event_cache

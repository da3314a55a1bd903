"""
Redis caching service for the seat map.

CACHING STRATEGY
================

What we cache:
  - The full seat listing (GET /api/seats), JSON-serialized
  - Cache key: "seats:list:v<generation>", generation held in
    "seats:list:generation"

Why:
  - The seat map is polled by every client rendering the auditorium
  - It only changes on approve, release and inventory init

Invalidation strategy:
  - Bump the generation after every committed approval, release or init
  - A reader pins the generation before querying the database, so a map
    read just before an approval committed is stored under the retired
    generation and never served afterwards
  - TTL as safety net

The cache is advisory only. The allocation engine never reads it; seat
availability checks always go to the database inside the approval
transaction, so a stale cached map can mislead a UI but never an approval.
Every Redis error is logged and counted, then treated as a miss.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from auditorium.core.config import get_settings
from auditorium.core.logging import get_logger
from auditorium.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

SEAT_LIST_KEY = "seats:list"


class SeatMapCache:
    """Lazily connected Redis client scoped to the seat map key."""

    def __init__(self, url: str, ttl: int, enabled: bool = True, key: str = SEAT_LIST_KEY):
        self.url = url
        self.ttl = ttl
        self.enabled = enabled
        self.key = key
        self.generation_key = f"{key}:generation"
        self._client: Optional[redis.Redis] = None

    async def connect(self) -> Optional[redis.Redis]:
        """Return a live client, or None when Redis is disabled or unreachable."""
        if not self.enabled:
            return None
        if self._client is not None:
            return self._client

        client = redis.from_url(
            self.url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.error("redis_connection_failed", url=self.url, error=str(e))
            await client.aclose()
            return None

        logger.info("redis_connected", url=self.url)
        self._client = client
        return client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def current_key(self) -> Optional[str]:
        """
        Versioned key for the current seat map generation.

        Read it before loading seats from the database and store under it
        afterwards; if an invalidation lands in between, the write goes to a
        retired key nobody reads.
        """
        client = await self.connect()
        if client is None:
            return None
        try:
            generation = await client.get(self.generation_key)
        except RedisError as e:
            record_cache_operation("get", "error")
            logger.error("cache_generation_error", key=self.generation_key, error=str(e))
            return None
        return f"{self.key}:v{generation or 0}"

    async def load(self, key: Optional[str]) -> Optional[list[dict[str, Any]]]:
        client = await self.connect()
        if client is None or key is None:
            return None
        try:
            raw = await client.get(key)
        except RedisError as e:
            record_cache_operation("get", "error")
            logger.error("cache_get_error", key=key, error=str(e))
            return None

        record_cache_operation("get", "hit" if raw else "miss")
        return json.loads(raw) if raw else None

    async def store(self, key: Optional[str], seats: list[dict[str, Any]]) -> None:
        client = await self.connect()
        if client is None or key is None:
            return
        try:
            await client.setex(key, self.ttl, json.dumps(seats, default=str))
        except RedisError as e:
            record_cache_operation("set", "error")
            logger.error("cache_set_error", key=key, error=str(e))
            return
        record_cache_operation("set", "ok")

    async def invalidate(self) -> None:
        """Retire the current generation; its map expires with its TTL."""
        client = await self.connect()
        if client is None:
            return
        try:
            generation = await client.incr(self.generation_key)
            await client.delete(f"{self.key}:v{generation - 1}")
        except RedisError as e:
            record_cache_operation("invalidate", "error")
            logger.error("cache_invalidation_error", key=self.generation_key, error=str(e))
            return
        record_cache_operation("invalidate", "ok")
        logger.debug("cache_invalidated", generation=generation)

    async def stats(self) -> dict[str, Any]:
        """Server-side hit/miss counters for the health endpoint."""
        client = await self.connect()
        if client is None:
            return {"status": "disabled" if not self.enabled else "unavailable"}
        try:
            info = await client.info("stats")
        except RedisError as e:
            return {"status": "error", "error": str(e)}

        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }


seat_cache = SeatMapCache(settings.REDIS_URL, settings.REDIS_CACHE_TTL, settings.REDIS_ENABLED)

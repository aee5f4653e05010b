"""
Rate-Limit Counter Stores

Two interchangeable backends for `FixedWindowRateLimiter`:

``InMemoryRateLimitStore``
    Process-local dict guarded by an asyncio lock. Used when no Redis URL is
    configured; counters reset on restart and are not shared between
    instances.

``RedisRateLimitStore``
    Shared counters in Redis for multi-instance deployments. Each key is
    updated inside a WATCH/MULTI transaction and expires on its own when the
    window ends.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from redis.asyncio import Redis
from redis.exceptions import WatchError

from .limiter import EntryUpdate, RateLimitDecision, RateLimitEntry

logger = logging.getLogger("assistant.ratelimit")


class InMemoryRateLimitStore:
    """
    Concurrency-safe in-memory counter map.
    """

    def __init__(self, purge_threshold: int = 10_000) -> None:
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = asyncio.Lock()
        self._purge_threshold = purge_threshold

    async def apply(self, key: str, now: datetime, update: EntryUpdate) -> RateLimitDecision:
        async with self._lock:
            decision, new_entry = update(self._entries.get(key))
            if new_entry is not None:
                self._entries[key] = new_entry
            if len(self._entries) > self._purge_threshold:
                self._purge_expired(now)
            return decision

    def _purge_expired(self, now: datetime) -> None:
        expired = [k for k, e in self._entries.items() if now > e.reset_at]
        for k in expired:
            del self._entries[k]

    def clear(self) -> None:
        """Drop all counters (for tests and administrative resets)."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisRateLimitStore:
    """
    Redis-backed counter map with optimistic per-key transactions.

    Values are stored as JSON ``{"count": int, "resetAt": epoch_ms}`` under
    ``<prefix><key>`` with a TTL equal to the time left in the window.
    """

    KEY_PREFIX = "ratelimit:ai:"
    MAX_RETRIES = 10

    def __init__(
        self,
        client: Redis,
        prefix: str = KEY_PREFIX,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._client = client
        self._prefix = prefix
        self._max_retries = max_retries

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisRateLimitStore":
        return cls(Redis.from_url(redis_url, decode_responses=True))

    async def apply(self, key: str, now: datetime, update: EntryUpdate) -> RateLimitDecision:
        redis_key = f"{self._prefix}{key}"

        async with self._client.pipeline(transaction=True) as pipe:
            for _ in range(self._max_retries):
                try:
                    await pipe.watch(redis_key)
                    entry = self._decode(await pipe.get(redis_key))
                    decision, new_entry = update(entry)

                    if new_entry is None:
                        await pipe.unwatch()
                        return decision

                    pipe.multi()
                    pipe.set(
                        redis_key,
                        self._encode(new_entry),
                        px=self._ttl_ms(new_entry, now),
                    )
                    await pipe.execute()
                    return decision
                except WatchError:
                    # Another request touched the key between WATCH and EXEC
                    logger.debug("Rate-limit key %s changed concurrently; re-reading", redis_key)
                    continue

        logger.warning(
            "Rate-limit key %s still contended after %d attempts; denying request",
            redis_key,
            self._max_retries,
        )
        return RateLimitDecision(allowed=False, remaining=0, reset_at=decision.reset_at)

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @staticmethod
    def _encode(entry: RateLimitEntry) -> str:
        return json.dumps({
            "count": entry.count,
            "resetAt": int(entry.reset_at.timestamp() * 1000),
        })

    @staticmethod
    def _decode(raw: Optional[Union[str, bytes]]) -> Optional[RateLimitEntry]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            data = json.loads(raw)
            return RateLimitEntry(
                count=int(data["count"]),
                reset_at=datetime.fromtimestamp(data["resetAt"] / 1000, tz=timezone.utc),
            )
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable rate-limit value: %r", raw)
            return None

    @staticmethod
    def _ttl_ms(entry: RateLimitEntry, now: datetime) -> int:
        return max(1, int((entry.reset_at - now).total_seconds() * 1000))

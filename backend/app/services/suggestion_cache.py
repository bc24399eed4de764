"""Suggestion cache - Redis-backed, keyed by the unordered partner pair.

An entry is only valid on the day it was generated, because suggestion dates
are relative to "today", and only for the slot sets it was computed from.
Redis being unavailable never fails a request.
"""

import hashlib
import json
import logging
from datetime import date

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.config import settings
from app.core.overlap import Slot
from app.core.suggestions import SuggestionResult

logger = logging.getLogger(__name__)


def slot_fingerprint(slots_by_user: dict[int, list[Slot]]) -> str:
    """Stable digest of each user's weekly slots, independent of argument order."""
    canonical = [
        [user_id, sorted((s.day, s.start_unit, s.end_unit) for s in slots)]
        for user_id, slots in sorted(slots_by_user.items())
    ]
    return hashlib.sha1(json.dumps(canonical).encode()).hexdigest()


class SuggestionCache:
    def __init__(self, redis: aioredis.Redis, ttl: int | None = None):
        self.redis = redis
        self.ttl = ttl or settings.SUGGESTION_CACHE_TTL

    def _key(self, user_a: int, user_b: int) -> str:
        low, high = sorted((user_a, user_b))
        return f"suggestions:{low}:{high}"

    async def get(
        self, user_a: int, user_b: int, today: date, fingerprint: str
    ) -> SuggestionResult | None:
        try:
            raw = await self.redis.get(self._key(user_a, user_b))
        except RedisError as e:
            logger.warning("Suggestion cache read failed: %s", e)
            return None
        if not raw:
            return None

        entry = json.loads(raw)
        if entry.get("generated_on") != today.isoformat() or entry.get("fingerprint") != fingerprint:
            return None
        return SuggestionResult.model_validate(entry["result"])

    async def set(
        self, user_a: int, user_b: int, today: date, fingerprint: str, result: SuggestionResult
    ) -> None:
        entry = {
            "generated_on": today.isoformat(),
            "fingerprint": fingerprint,
            "result": result.model_dump(mode="json"),
        }
        try:
            await self.redis.set(self._key(user_a, user_b), json.dumps(entry), ex=self.ttl)
        except RedisError as e:
            logger.warning("Suggestion cache write failed: %s", e)

    async def invalidate(self, user_a: int, user_b: int) -> None:
        """Drop the pair's entry, e.g. after either partner changed availability."""
        try:
            await self.redis.delete(self._key(user_a, user_b))
        except RedisError as e:
            logger.warning("Suggestion cache invalidation failed: %s", e)

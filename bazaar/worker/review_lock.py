"""Redis run lock so two auto-review passes never overlap."""

import json
import logging
from typing import Any, Dict, Optional
from uuid import uuid4

import redis.asyncio as redis
from redis.exceptions import RedisError

from bazaar.db.models import utcnow

logger = logging.getLogger(__name__)

LOCK_KEY = "bazaar:auto_review:lock"

# KEYS[1] lock key, ARGV[1] run id, ARGV[2] token.
# 1 = released, 0 = nothing held, -1 = held by someone else
_RELEASE_IF_OWNER = """
local held = redis.call('GET', KEYS[1])
if not held then return 0 end
local ok, owner = pcall(cjson.decode, held)
if ok and owner.run_id == ARGV[1] and owner.token == ARGV[2] then
    return redis.call('DEL', KEYS[1])
end
return -1
"""


class ReviewLockManager:
    """
    Holds ``LOCK_KEY`` for the length of one auto-review run.

    The value records which run owns the lock and a random token; only a
    caller presenting both can release it. The TTL frees the lock if the
    owning process dies mid-run.
    """

    def __init__(self, redis_url: str, ttl_seconds: int = 1800):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._redis: Optional[redis.Redis] = None

    async def _client(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    async def close(self):
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def acquire(self, run_id: str, ttl_seconds: Optional[int] = None) -> Optional[str]:
        """Take the lock for ``run_id``; returns the release token, or None if busy."""
        client = await self._client()
        token = uuid4().hex
        owner = {"run_id": run_id, "token": token, "started_at": utcnow().isoformat()}

        if await client.set(LOCK_KEY, json.dumps(owner), nx=True, ex=ttl_seconds or self.ttl_seconds):
            logger.info(f"Auto-review run {run_id} holds the review lock")
            return token

        info = await self.get_lock_info()
        holder = (info or {}).get("run_id", "unknown")
        logger.info(f"Auto-review run {run_id} skipped, lock held by {holder}")
        return None

    async def release(self, run_id: str, token: Optional[str]) -> bool:
        """Release the lock if ``run_id``/``token`` still own it."""
        if not token:
            logger.warning(f"Run {run_id} tried to release the review lock without a token")
            return False

        client = await self._client()
        try:
            outcome = await client.eval(_RELEASE_IF_OWNER, 1, LOCK_KEY, run_id, token)
        except RedisError as e:
            logger.error(f"Could not release review lock for run {run_id}: {e}")
            return False

        if outcome == -1:
            logger.warning(f"Run {run_id} does not own the review lock; left in place")
            return False
        logger.info(f"Auto-review run {run_id} released the review lock")
        return True

    async def force_unlock(self) -> bool:
        """Drop the lock regardless of owner (operator recovery)."""
        client = await self._client()
        try:
            removed = await client.delete(LOCK_KEY)
        except RedisError as e:
            logger.error(f"Could not force-release review lock: {e}")
            return False
        if removed:
            logger.warning("Review lock force-released")
        return True

    async def get_lock_info(self) -> Optional[Dict[str, Any]]:
        client = await self._client()
        raw = await client.get(LOCK_KEY)
        if raw is None:
            return None

        ttl = await client.ttl(LOCK_KEY)
        info: Dict[str, Any] = {"ttl_seconds": ttl if ttl > 0 else None}
        try:
            info.update(json.loads(raw))
        except json.JSONDecodeError:
            info["raw_value"] = raw
        return info

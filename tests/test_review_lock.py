"""Tests for the auto-review run lock (requires Redis)."""

import os

import pytest
import redis.asyncio as redis

from bazaar.worker.review_lock import ReviewLockManager

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/15")


async def _redis_available() -> bool:
    try:
        client = redis.from_url(REDIS_URL, decode_responses=True)
        await client.ping()
        await client.aclose()
        return True
    except Exception:
        return False


@pytest.mark.asyncio
async def test_lock_acquire_release():
    if not await _redis_available():
        pytest.skip("Redis not available")

    manager = ReviewLockManager(redis_url=REDIS_URL)
    await manager.force_unlock()

    token = await manager.acquire("run_a", ttl_seconds=30)
    assert token is not None

    info = await manager.get_lock_info()
    assert info["run_id"] == "run_a"
    assert info["token"] == token
    assert 0 < info["ttl_seconds"] <= 30

    # A concurrent run is turned away
    assert await manager.acquire("run_b", ttl_seconds=30) is None

    assert await manager.release("run_a", token) is True
    assert await manager.get_lock_info() is None
    await manager.close()


@pytest.mark.asyncio
async def test_lock_token_mismatch():
    if not await _redis_available():
        pytest.skip("Redis not available")

    manager = ReviewLockManager(redis_url=REDIS_URL)
    await manager.force_unlock()

    token = await manager.acquire("run_token", ttl_seconds=30)
    assert token is not None

    assert await manager.release("run_token", "bad_token") is False
    assert await manager.release("run_token", None) is False
    assert await manager.get_lock_info() is not None

    assert await manager.release("run_token", token) is True
    await manager.close()

"""Tests for the task runner and scheduler wiring."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from bazaar.review.auto_review import ReviewStats
from bazaar.worker.scheduler import setup_scheduler
from bazaar.worker.tasks import TaskRunner


class _Session:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def _container(config, stats=None, error=None, lock=None):
    pipeline = MagicMock()
    pipeline.run = AsyncMock(return_value=stats or ReviewStats(approved=2), side_effect=error)

    container = MagicMock()
    container.config = config
    container.review_lock = lock
    container.session_factory = _Session
    container.services.return_value.auto_review = pipeline
    return container, pipeline


@pytest.mark.asyncio
async def test_run_without_lock(config):
    container, pipeline = _container(config)

    stats = await TaskRunner(container).run_auto_review(limit=5, hours_ago=12)

    assert stats.approved == 2
    pipeline.run.assert_awaited_once_with(limit=5, hours_ago=12)


@pytest.mark.asyncio
async def test_run_skipped_when_lock_held(config):
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=None)
    lock.release = AsyncMock()
    container, pipeline = _container(config, lock=lock)

    assert await TaskRunner(container).run_auto_review() is None
    pipeline.run.assert_not_awaited()
    lock.release.assert_not_awaited()


@pytest.mark.asyncio
async def test_lock_released_after_failure(config):
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value="tok")
    lock.release = AsyncMock(return_value=True)
    container, _ = _container(config, error=RuntimeError("db down"), lock=lock)
    runner = TaskRunner(container)

    with pytest.raises(RuntimeError):
        await runner.run_auto_review()
    run_id = lock.acquire.await_args.args[0]
    lock.release.assert_awaited_once_with(run_id, "tok")

    # The scheduled entry point logs instead of raising
    await runner.scheduled_auto_review()


def test_scheduler_job_only_when_enabled(config):
    runner = TaskRunner(MagicMock())

    assert setup_scheduler(runner, config).get_jobs() == []

    enabled = config.model_copy(update={"auto_review_enabled": True, "auto_review_interval_minutes": 5})
    [job] = setup_scheduler(runner, enabled).get_jobs()
    assert job.id == "auto_review"
    assert job.trigger.interval.total_seconds() == 300

"""Background task entry points."""

import logging
from typing import Optional
from uuid import uuid4

from bazaar import metrics
from bazaar.container import ServiceContainer
from bazaar.logging_config import get_logger
from bazaar.review.auto_review import ReviewStats

logger = logging.getLogger(__name__)


class TaskRunner:
    """
    Runs auto-review passes outside the request cycle.

    Each run opens its own database session and, when Redis is configured,
    holds the review lock so scheduled and manual runs never overlap.
    """

    def __init__(self, container: ServiceContainer):
        self.container = container

    async def run_auto_review(
        self,
        trigger: str = "manual",
        limit: Optional[int] = None,
        hours_ago: Optional[int] = None,
    ) -> Optional[ReviewStats]:
        """
        Run one auto-review pass.

        Returns:
            Review counts, or None if another run holds the lock
        """
        config = self.container.config
        limit = limit or config.auto_review_limit
        run_id = uuid4().hex
        lock = self.container.review_lock

        run_logger = get_logger(__name__, run_id=run_id, trigger=trigger)

        token = None
        if lock is not None:
            token = await lock.acquire(run_id)
            if token is None:
                run_logger.info("Auto-review skipped: another run is in progress")
                metrics.auto_review_runs_total.labels(trigger=trigger, status="skipped").inc()
                return None

        try:
            async with self.container.session_factory() as session:
                services = self.container.services(session)
                stats = await services.auto_review.run(limit=limit, hours_ago=hours_ago)
            run_logger.info(f"Auto-review run finished: {stats.to_dict()}")
            metrics.auto_review_runs_total.labels(trigger=trigger, status="success").inc()
            return stats
        except Exception:
            metrics.auto_review_runs_total.labels(trigger=trigger, status="error").inc()
            run_logger.exception("Auto-review run failed")
            raise
        finally:
            if lock is not None:
                await lock.release(run_id, token)

    async def scheduled_auto_review(self):
        """APScheduler entry point; failures are logged, never raised into the scheduler."""
        try:
            await self.run_auto_review(
                trigger="scheduled",
                limit=self.container.config.auto_review_limit,
                hours_ago=self.container.config.auto_review_hours_ago,
            )
        except Exception as e:
            logger.error(f"Scheduled auto-review failed: {e}")

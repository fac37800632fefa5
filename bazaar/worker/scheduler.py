"""APScheduler job definitions."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from bazaar.config import Settings
from bazaar.worker.tasks import TaskRunner

logger = logging.getLogger(__name__)


def setup_scheduler(task_runner: TaskRunner, config: Settings) -> AsyncIOScheduler:
    """
    Setup and configure APScheduler.

    Scheduling overview:
    - Auto-review runs every ``auto_review_interval_minutes`` when enabled

    Returns:
        Configured scheduler instance (not started)
    """
    scheduler = AsyncIOScheduler()

    if config.auto_review_enabled:
        interval = max(1, int(config.auto_review_interval_minutes))
        scheduler.add_job(
            task_runner.scheduled_auto_review,
            IntervalTrigger(minutes=interval),
            id="auto_review",
            name="AI review of pending listings",
            max_instances=1,  # Prevent overlapping runs
            coalesce=True,
            misfire_grace_time=300,
            replace_existing=True,
        )
        logger.info(f"Scheduler configured: auto-review every {interval} minutes")
    else:
        logger.info("Scheduler configured: auto-review disabled")

    return scheduler

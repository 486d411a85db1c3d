"""
Scheduler for recurring background work.
Uses APScheduler to publish due social posts and purge expired staging
sessions.
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from inflio.config import settings
from inflio.database import get_session_context
from inflio.services.staging_service import staging_service
from inflio.social.social_service import social_service
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

PUBLISH_JOB_ID = "publish_due_posts"
CLEANUP_JOB_ID = "cleanup_staging_sessions"

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler()
    return _scheduler


async def publish_due_posts_job() -> None:
    """Publish every scheduled post whose time has come."""
    try:
        async with get_session_context() as session:
            await social_service.publish_due_posts(session)
    except Exception as e:
        logger.error("Scheduled publishing failed", error=str(e))


async def cleanup_staging_sessions_job() -> None:
    try:
        async with get_session_context() as session:
            await staging_service.cleanup_expired_sessions(session)
    except Exception as e:
        logger.error("Staging cleanup failed", error=str(e))


def register_jobs(scheduler: AsyncIOScheduler) -> None:
    scheduler.add_job(
        publish_due_posts_job,
        trigger=IntervalTrigger(minutes=settings.publish_interval_minutes),
        id=PUBLISH_JOB_ID,
        replace_existing=True,
        name="Publish due social posts",
    )
    scheduler.add_job(
        cleanup_staging_sessions_job,
        trigger=CronTrigger.from_crontab(settings.staging_cleanup_cron),
        id=CLEANUP_JOB_ID,
        replace_existing=True,
        name="Remove expired staging sessions",
    )
    logger.info(
        "Scheduler jobs registered",
        publish_interval_minutes=settings.publish_interval_minutes,
        cleanup_cron=settings.staging_cleanup_cron,
    )


async def start_scheduler() -> None:
    """Register jobs and start the scheduler."""
    scheduler = get_scheduler()
    if not scheduler.running:
        register_jobs(scheduler)
        scheduler.start()
        logger.info("Scheduler started")


async def stop_scheduler() -> None:
    scheduler = get_scheduler()
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

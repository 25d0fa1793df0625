"""Background jobs: holdings change detection and cache housekeeping."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from portfolio_dashboard.config import CACHE_PURGE_INTERVAL, CHANGE_POLL_INTERVAL
from portfolio_dashboard.services.cache import portfolio_cache, token_cache
from portfolio_dashboard.services.container import get_change_watcher

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def poll_holdings_changes():
    """Notify change subscribers whose holdings were modified remotely."""
    watcher = get_change_watcher()
    if not watcher.subscriber_count():
        return
    try:
        changed = await watcher.poll()
        if changed:
            logger.info(f"Detected holdings changes for {changed} user(s)")
    except Exception as e:
        logger.error(f"Failed to poll holdings changes: {e}")


def purge_expired_cache():
    removed = portfolio_cache.purge_expired() + token_cache.purge_expired()
    if removed:
        logger.debug(f"Purged {removed} expired cache entries")


def start_scheduler():
    """Start the background scheduler."""
    scheduler.add_job(
        poll_holdings_changes,
        trigger=IntervalTrigger(seconds=CHANGE_POLL_INTERVAL),
        id="poll_holdings_changes",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        purge_expired_cache,
        trigger=IntervalTrigger(seconds=CACHE_PURGE_INTERVAL),
        id="purge_expired_cache",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started, polling holdings every {CHANGE_POLL_INTERVAL}s")


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")

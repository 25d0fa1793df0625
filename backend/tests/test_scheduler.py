"""Tests for background jobs."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from portfolio_dashboard.tasks import scheduler


@pytest.mark.asyncio
async def test_poll_skipped_without_subscribers():
    watcher = MagicMock()
    watcher.subscriber_count.return_value = 0
    watcher.poll = AsyncMock()
    with patch("portfolio_dashboard.tasks.scheduler.get_change_watcher", return_value=watcher):
        await scheduler.poll_holdings_changes()
    watcher.poll.assert_not_awaited()


@pytest.mark.asyncio
async def test_poll_runs_for_subscribers():
    watcher = MagicMock()
    watcher.subscriber_count.return_value = 2
    watcher.poll = AsyncMock(return_value=1)
    with patch("portfolio_dashboard.tasks.scheduler.get_change_watcher", return_value=watcher):
        await scheduler.poll_holdings_changes()
    watcher.poll.assert_awaited_once()


@pytest.mark.asyncio
async def test_poll_errors_are_contained():
    watcher = MagicMock()
    watcher.subscriber_count.return_value = 1
    watcher.poll = AsyncMock(side_effect=RuntimeError("boom"))
    with patch("portfolio_dashboard.tasks.scheduler.get_change_watcher", return_value=watcher):
        await scheduler.poll_holdings_changes()


def test_purge_expired_cache():
    with patch.object(scheduler.portfolio_cache, "purge_expired", return_value=2) as p, \
         patch.object(scheduler.token_cache, "purge_expired", return_value=1) as t:
        scheduler.purge_expired_cache()
    p.assert_called_once()
    t.assert_called_once()

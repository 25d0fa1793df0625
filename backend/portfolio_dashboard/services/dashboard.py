"""Dashboard view model: quarters, the selected quarter's holdings, and the summary."""

import asyncio
import logging
from collections.abc import AsyncIterator

from portfolio_dashboard.errors import PortfolioFetchError
from portfolio_dashboard.models.dashboard import (
    DashboardError,
    DashboardLoading,
    DashboardReady,
    DashboardState,
    DashboardView,
    HoldingRow,
)
from portfolio_dashboard.models.user import AuthUser
from portfolio_dashboard.services.aggregation import parse_quarter_key, position_metrics
from portfolio_dashboard.services.changes import ChangeWatcher
from portfolio_dashboard.services.portfolio import PortfolioService

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load portfolio data. Please try again."


def _empty_message(selected_quarter: str | None) -> str:
    if selected_quarter:
        return f"No portfolio data available for {selected_quarter}"
    return "You don't have any portfolio holdings yet"


class DashboardService:
    def __init__(self, portfolio: PortfolioService, watcher: ChangeWatcher):
        self._portfolio = portfolio
        self._watcher = watcher

    async def load(self, user: AuthUser, quarter: str | None = None) -> DashboardState:
        """Build the dashboard for `quarter` (a "Q1 2024" label) or the newest quarter.

        Fetch failures become an error state rather than an exception.
        Raises ValueError for a malformed quarter label.
        """
        if quarter:
            parse_quarter_key(quarter)

        try:
            quarters = await self._portfolio.get_available_quarters(user)
            selected = quarter or (quarters[0] if quarters else None)
            q, year = parse_quarter_key(selected) if selected else (None, None)
            holdings = await self._portfolio.get_user_portfolio(user, q, year)
            summary = await self._portfolio.get_portfolio_summary(user)
        except PortfolioFetchError as e:
            logger.error(f"Error loading dashboard for user {user.id}: {e}")
            return DashboardError(message=LOAD_ERROR_MESSAGE)

        return DashboardReady(
            view=DashboardView(
                quarters=quarters,
                selected_quarter=selected,
                holdings=[HoldingRow(holding=h, metrics=position_metrics(h)) for h in holdings],
                summary=summary,
                empty_message=None if holdings else _empty_message(selected),
            )
        )

    async def refresh(self, user: AuthUser, quarter: str | None = None) -> DashboardState:
        """Manual refresh: drop the user's cached holdings, then load."""
        self._portfolio.invalidate(user.id)
        return await self.load(user, quarter)

    async def stream(
        self, user: AuthUser, quarter: str | None = None
    ) -> AsyncIterator[DashboardState]:
        """Yield the dashboard now and again after every remote change.

        The change baseline is taken before the first load, and the first load
        skips the cache, so nothing committed before the stream opened is
        missed or shown stale.

        Change signals go through a queue that this generator alone consumes,
        so re-fetches for one stream run strictly one after another. Signals
        that pile up during a fetch are collapsed into a single reload.
        """
        if quarter:
            parse_quarter_key(quarter)

        signals: asyncio.Queue = asyncio.Queue()
        yield DashboardLoading()
        subscription = await self._watcher.subscribe(user, signals.put_nowait)
        try:
            self._portfolio.invalidate(user.id)
            yield await self.load(user, quarter)
            while True:
                payload = await signals.get()
                while not signals.empty():
                    signals.get_nowait()
                logger.info(f"Holdings changed for user {user.id}, reloading: {payload}")
                self._portfolio.invalidate(user.id)
                yield await self.load(user, quarter)
        finally:
            subscription.unsubscribe()

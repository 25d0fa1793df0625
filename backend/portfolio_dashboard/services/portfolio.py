"""Portfolio data access: holdings queries, cached, scoped to the caller."""

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from portfolio_dashboard.config import HOLDINGS_TABLE, SUMMARY_FUNCTION
from portfolio_dashboard.errors import PortfolioFetchError, SupabaseError
from portfolio_dashboard.models.holding import Holding
from portfolio_dashboard.models.portfolio import (
    PortfolioSummary,
    PortfolioTotals,
    QuarterPerformance,
)
from portfolio_dashboard.models.user import AuthUser
from portfolio_dashboard.services import aggregation
from portfolio_dashboard.services.cache import CacheService
from portfolio_dashboard.services.supabase import SupabaseClient

logger = logging.getLogger(__name__)

_holdings_adapter = TypeAdapter(list[Holding])


def _cache_key(user_id: str, quarter: str | None, year: int | None) -> str:
    return f"portfolio:{user_id}:{quarter or '*'}:{year or '*'}"


class PortfolioService:
    """Reads a user's holdings and derives their portfolio figures.

    Totals, quarterly performance and the quarter list are all derived from
    the same (cached) fetch of the user's full holdings, so figures returned
    together always describe one snapshot.
    """

    def __init__(self, client: SupabaseClient, cache: CacheService):
        self._client = client
        self._cache = cache

    async def _select(
        self,
        user: AuthUser,
        columns: str,
        filters: dict[str, Any] | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        try:
            return await self._client.select(
                HOLDINGS_TABLE,
                user.access_token,
                columns=columns,
                filters={"user_id": user.id, **(filters or {})},
                order=order,
            )
        except SupabaseError as e:
            raise PortfolioFetchError(str(e), status_code=e.status_code) from e

    async def get_user_portfolio(
        self, user: AuthUser, quarter: str | None = None, year: int | None = None
    ) -> list[Holding]:
        """Holdings for the user, newest first, optionally narrowed to a quarter/year."""
        key = _cache_key(user.id, quarter, year)
        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        filters: dict[str, Any] = {}
        if quarter:
            filters["quarter"] = quarter
        if year:
            filters["year"] = year

        try:
            rows = await self._select(user, "*", filters, order="created_at.desc")
            holdings = _holdings_adapter.validate_python(rows)
        except ValidationError as e:
            logger.error(f"Malformed holdings payload for user {user.id}: {e}")
            raise PortfolioFetchError("Malformed holdings payload") from e
        except PortfolioFetchError as e:
            logger.error(f"Error fetching portfolio for user {user.id}: {e}")
            raise

        self._cache.set(key, tuple(holdings))
        return holdings

    async def get_portfolio_summary(self, user: AuthUser) -> PortfolioSummary:
        """Totals over all of the user's holdings plus quarterly performance."""
        try:
            holdings = await self.get_user_portfolio(user)
        except PortfolioFetchError as e:
            logger.error(f"Error calculating portfolio summary for user {user.id}: {e}")
            raise

        totals = aggregation.summarize(holdings)
        return PortfolioSummary(
            **totals.model_dump(),
            quarterly_performance=aggregation.quarterly_performance(holdings),
        )

    async def get_quarterly_performance(self, user: AuthUser) -> list[QuarterPerformance]:
        """Per-quarter returns. Failures degrade to an empty list."""
        try:
            holdings = await self.get_user_portfolio(user)
        except PortfolioFetchError as e:
            logger.error(f"Error fetching quarterly performance for user {user.id}: {e}")
            return []
        return aggregation.quarterly_performance(holdings)

    async def get_available_quarters(self, user: AuthUser) -> list[str]:
        """Quarter labels the user has holdings in. Failures degrade to an empty list."""
        try:
            holdings = await self.get_user_portfolio(user)
        except PortfolioFetchError as e:
            logger.error(f"Error fetching quarters for user {user.id}: {e}")
            return []
        return aggregation.list_quarters(holdings)

    async def get_server_summary(self, user: AuthUser) -> PortfolioTotals:
        """Totals computed by the remote summary function."""
        try:
            data = await self._client.rpc(
                SUMMARY_FUNCTION, user.access_token, {"target_user_id": user.id}
            )
        except SupabaseError as e:
            logger.error(f"Error fetching server summary for user {user.id}: {e}")
            raise PortfolioFetchError(str(e), status_code=e.status_code) from e

        row = data[0] if isinstance(data, list) and data else data or {}
        # SUM over no rows is NULL
        return PortfolioTotals(
            total_value=float(row.get("total_value") or 0),
            total_cost=float(row.get("total_cost") or 0),
            total_gain_loss=float(row.get("total_gain_loss") or 0),
            total_gain_loss_percent=float(row.get("total_gain_loss_percent") or 0),
            total_shares=int(row.get("total_shares") or 0),
        )

    async def get_change_markers(self, user: AuthUser) -> dict[str, str]:
        """Map of holding id -> updated_at, used to detect remote changes."""
        rows = await self._select(user, "id,updated_at")
        return {str(r["id"]): str(r.get("updated_at")) for r in rows}

    def invalidate(self, user_id: str) -> int:
        return self._cache.delete_prefix(f"portfolio:{user_id}:")

"""Portfolio API routes."""

import logging
from contextlib import aclosing

from fastapi import APIRouter, Depends, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from portfolio_dashboard.api.deps import (
    get_current_user,
    get_dashboard_service,
    get_portfolio_service,
)
from portfolio_dashboard.api.schemas import (
    HoldingRowResponse,
    PortfolioSummaryResponse,
    PortfolioTotalsResponse,
    QuarterPerformanceResponse,
)
from portfolio_dashboard.models.dashboard import DashboardState
from portfolio_dashboard.models.user import AuthUser
from portfolio_dashboard.services.aggregation import parse_quarter_key, position_metrics
from portfolio_dashboard.services.dashboard import DashboardService
from portfolio_dashboard.services.portfolio import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])


def _check_quarter_label(quarter: str | None) -> None:
    if quarter:
        try:
            parse_quarter_key(quarter)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))


@router.get("/holdings", response_model=list[HoldingRowResponse])
async def list_holdings(
    quarter: str | None = None,
    year: int | None = None,
    user: AuthUser = Depends(get_current_user),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    holdings = await portfolio.get_user_portfolio(user, quarter, year)
    return [HoldingRowResponse.build(h, position_metrics(h)) for h in holdings]


@router.get("/summary", response_model=PortfolioSummaryResponse)
async def get_summary(
    user: AuthUser = Depends(get_current_user),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    summary = await portfolio.get_portfolio_summary(user)
    return PortfolioSummaryResponse.build(summary)


@router.get("/summary/server", response_model=PortfolioTotalsResponse)
async def get_server_summary(
    user: AuthUser = Depends(get_current_user),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    """Totals as computed by the database's summary function."""
    totals = await portfolio.get_server_summary(user)
    return PortfolioTotalsResponse.build(totals)


@router.get("/quarterly", response_model=list[QuarterPerformanceResponse])
async def get_quarterly_performance(
    user: AuthUser = Depends(get_current_user),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    performance = await portfolio.get_quarterly_performance(user)
    return [QuarterPerformanceResponse.build(q) for q in performance]


@router.get("/quarters", response_model=list[str])
async def get_quarters(
    user: AuthUser = Depends(get_current_user),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    return await portfolio.get_available_quarters(user)


@router.get("/dashboard", response_model=DashboardState)
async def get_dashboard(
    quarter: str | None = None,
    user: AuthUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    _check_quarter_label(quarter)
    return await dashboard.load(user, quarter)


@router.post("/refresh", response_model=DashboardState)
async def refresh_dashboard(
    quarter: str | None = None,
    user: AuthUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    """Drop cached holdings for the caller and rebuild the dashboard."""
    _check_quarter_label(quarter)
    return await dashboard.refresh(user, quarter)


@router.get("/stream")
async def stream_dashboard(
    request: Request,
    quarter: str | None = None,
    user: AuthUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service),
) -> EventSourceResponse:
    """Server-Sent Events: the dashboard state, re-sent whenever holdings change."""
    _check_quarter_label(quarter)

    async def event_generator():
        async with aclosing(dashboard.stream(user, quarter)) as states:
            async for state in states:
                if await request.is_disconnected():
                    logger.info(f"Dashboard stream closed by client for user {user.id}")
                    break
                yield {"event": state.status, "data": state.model_dump_json()}

    return EventSourceResponse(event_generator(), ping=15)

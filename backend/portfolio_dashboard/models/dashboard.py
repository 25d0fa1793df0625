"""Dashboard view state: loading, error or ready."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from portfolio_dashboard.models.holding import Holding
from portfolio_dashboard.models.portfolio import PortfolioSummary, PositionMetrics


class HoldingRow(BaseModel):
    holding: Holding
    metrics: PositionMetrics


class DashboardView(BaseModel):
    quarters: list[str]
    selected_quarter: str | None = None
    holdings: list[HoldingRow]
    summary: PortfolioSummary
    empty_message: str | None = None


class DashboardLoading(BaseModel):
    status: Literal["loading"] = "loading"


class DashboardError(BaseModel):
    status: Literal["error"] = "error"
    message: str
    retryable: bool = True


class DashboardReady(BaseModel):
    status: Literal["ready"] = "ready"
    view: DashboardView


DashboardState = Annotated[
    Union[DashboardLoading, DashboardError, DashboardReady],
    Field(discriminator="status"),
]

"""Pydantic schemas for API request/response."""

from pydantic import BaseModel

from portfolio_dashboard.models.holding import Holding
from portfolio_dashboard.models.portfolio import (
    PortfolioSummary,
    PortfolioTotals,
    PositionMetrics,
    QuarterPerformance,
)


class CredentialsRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class SignUpPendingResponse(BaseModel):
    status: str = "confirmation_required"
    email: str


class HoldingRowResponse(BaseModel):
    id: str
    stock_symbol: str
    company_name: str
    shares: int
    purchase_price: float
    current_price: float
    quarter: str
    year: int
    created_at: str
    updated_at: str
    value: float
    cost: float
    gain_loss: float
    gain_loss_percent: float

    @classmethod
    def build(cls, holding: Holding, metrics: PositionMetrics) -> "HoldingRowResponse":
        return cls(
            id=holding.id,
            stock_symbol=holding.stock_symbol,
            company_name=holding.company_name,
            shares=holding.shares,
            purchase_price=holding.purchase_price,
            current_price=holding.current_price,
            quarter=holding.quarter,
            year=holding.year,
            created_at=holding.created_at,
            updated_at=holding.updated_at,
            value=round(metrics.value, 2),
            cost=round(metrics.cost, 2),
            gain_loss=round(metrics.gain_loss, 2),
            gain_loss_percent=round(metrics.gain_loss_percent, 4),
        )


class QuarterPerformanceResponse(BaseModel):
    quarter: str
    total_value: float
    total_cost: float
    performance: float

    @classmethod
    def build(cls, q: QuarterPerformance) -> "QuarterPerformanceResponse":
        return cls(
            quarter=q.quarter,
            total_value=round(q.total_value, 2),
            total_cost=round(q.total_cost, 2),
            performance=round(q.performance, 4),
        )


class PortfolioTotalsResponse(BaseModel):
    total_value: float
    total_cost: float
    total_gain_loss: float
    total_gain_loss_percent: float
    total_shares: int

    @classmethod
    def build(cls, totals: PortfolioTotals) -> "PortfolioTotalsResponse":
        return cls(
            total_value=round(totals.total_value, 2),
            total_cost=round(totals.total_cost, 2),
            total_gain_loss=round(totals.total_gain_loss, 2),
            total_gain_loss_percent=round(totals.total_gain_loss_percent, 4),
            total_shares=totals.total_shares,
        )


class PortfolioSummaryResponse(PortfolioTotalsResponse):
    quarterly_performance: list[QuarterPerformanceResponse]

    @classmethod
    def build(cls, summary: PortfolioSummary) -> "PortfolioSummaryResponse":
        totals = PortfolioTotalsResponse.build(summary)
        return cls(
            **totals.model_dump(),
            quarterly_performance=[
                QuarterPerformanceResponse.build(q) for q in summary.quarterly_performance
            ],
        )

"""Derived portfolio figures (never persisted)."""

from pydantic import BaseModel


class PositionMetrics(BaseModel):
    value: float
    cost: float
    gain_loss: float
    gain_loss_percent: float


class PortfolioTotals(BaseModel):
    total_value: float = 0.0
    total_cost: float = 0.0
    total_gain_loss: float = 0.0
    total_gain_loss_percent: float = 0.0
    total_shares: int = 0


class QuarterPerformance(BaseModel):
    quarter: str  # composite label, e.g. "Q1 2024"
    total_value: float
    total_cost: float
    performance: float


class PortfolioSummary(PortfolioTotals):
    quarterly_performance: list[QuarterPerformance] = []

"""Portfolio aggregation: totals, per-position metrics and quarterly grouping.

Everything here is a pure function of the holdings passed in.
"""

from collections.abc import Iterable

from portfolio_dashboard.models.holding import HoldingFigures
from portfolio_dashboard.models.portfolio import (
    PortfolioTotals,
    PositionMetrics,
    QuarterPerformance,
)


def gain_loss_percent(value: float, cost: float) -> float:
    """Percent return on cost, 0 when there is no cost basis."""
    if cost <= 0:
        return 0.0
    return (value - cost) / cost * 100


def quarter_key(quarter: str, year: int) -> str:
    return f"{quarter} {year}"


def parse_quarter_key(key: str) -> tuple[str, int]:
    """Split a composite label like "Q1 2024" into ("Q1", 2024)."""
    parts = key.split()
    if len(parts) != 2:
        raise ValueError(f"Invalid quarter label: {key!r}")
    quarter, year = parts
    try:
        return quarter, int(year)
    except ValueError:
        raise ValueError(f"Invalid quarter label: {key!r}") from None


def position_metrics(holding: HoldingFigures) -> PositionMetrics:
    value = holding.shares * holding.current_price
    cost = holding.shares * holding.purchase_price
    return PositionMetrics(
        value=value,
        cost=cost,
        gain_loss=value - cost,
        gain_loss_percent=gain_loss_percent(value, cost),
    )


def summarize(holdings: Iterable[HoldingFigures]) -> PortfolioTotals:
    """Reduce holdings to total value, cost, gain/loss and share count."""
    total_value = 0.0
    total_cost = 0.0
    total_shares = 0

    for h in holdings:
        total_value += h.shares * h.current_price
        total_cost += h.shares * h.purchase_price
        total_shares += h.shares

    return PortfolioTotals(
        total_value=total_value,
        total_cost=total_cost,
        total_gain_loss=total_value - total_cost,
        total_gain_loss_percent=gain_loss_percent(total_value, total_cost),
        total_shares=total_shares,
    )


def quarterly_performance(
    holdings: Iterable[HoldingFigures],
) -> list[QuarterPerformance]:
    """Group holdings by "<quarter> <year>" and compute each group's return.

    Groups are ordered by descending label (plain string order).
    """
    groups: dict[str, tuple[float, float]] = {}
    for h in holdings:
        key = quarter_key(h.quarter, h.year)
        value, cost = groups.get(key, (0.0, 0.0))
        groups[key] = (
            value + h.shares * h.current_price,
            cost + h.shares * h.purchase_price,
        )

    return [
        QuarterPerformance(
            quarter=key,
            total_value=value,
            total_cost=cost,
            performance=gain_loss_percent(value, cost),
        )
        for key, (value, cost) in sorted(groups.items(), reverse=True)
    ]


def list_quarters(rows: Iterable[HoldingFigures]) -> list[str]:
    """Distinct quarter labels, newest label first."""
    return sorted({quarter_key(r.quarter, r.year) for r in rows}, reverse=True)

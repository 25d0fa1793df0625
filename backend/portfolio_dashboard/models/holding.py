"""Holding models mirroring the portfolio_holdings table."""

from pydantic import BaseModel, Field


class HoldingFigures(BaseModel):
    """The period and price columns aggregation works on."""

    shares: int = Field(gt=0)
    purchase_price: float = Field(gt=0)
    current_price: float = Field(gt=0)
    quarter: str
    year: int = Field(ge=2020)


class Holding(HoldingFigures):
    id: str
    user_id: str
    stock_symbol: str
    company_name: str
    created_at: str
    updated_at: str

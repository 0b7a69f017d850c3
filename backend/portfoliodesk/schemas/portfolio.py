from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field

from portfoliodesk.schemas.batch import BatchSummary
from portfoliodesk.schemas.quote import CamelModel

Exchange = Literal["NSE", "BSE"]


class Holding(CamelModel):
    symbol: str = Field(min_length=1)
    name: str = ""
    sector: str = "Other"
    exchange: Exchange = "NSE"
    purchase_price: float = Field(ge=0)
    quantity: float = Field(ge=0)


class HoldingValuation(CamelModel):
    symbol: str
    name: str
    sector: str
    exchange: Exchange
    purchase_price: float
    quantity: float
    investment: float
    current_price: float
    price_available: bool
    present_value: float
    gain_loss: float
    gain_loss_percent: float
    portfolio_percentage: float = 0.0


class SectorSummary(CamelModel):
    sector: str
    total_investment: float
    total_present_value: float
    gain_loss: float
    symbols: list[str] = Field(default_factory=list)


class PortfolioValuation(CamelModel):
    holdings: list[HoldingValuation] = Field(default_factory=list)
    sector_summaries: list[SectorSummary] = Field(default_factory=list)
    total_investment: float = 0.0
    total_present_value: float = 0.0
    total_gain_loss: float = 0.0


class PortfolioValuationRequest(CamelModel):
    holdings: list[Holding] = Field(min_length=1)
    bust_cache: bool = False


class PortfolioValuationResponse(PortfolioValuation):
    quote_summary: Optional[BatchSummary] = None

from __future__ import annotations

from typing import Optional

from pydantic import Field

from portfoliodesk.schemas.quote import CamelModel


class FundamentalsRequest(CamelModel):
    symbols: list[str] = Field(min_length=1)


class FundamentalResult(CamelModel):
    symbol: str
    pe_ratio: Optional[float] = Field(default=None, alias="peRatio")
    eps: Optional[float] = None
    market_cap: Optional[float] = None
    book_value: Optional[float] = None
    dividend_yield: Optional[float] = None
    latest_earnings: Optional[str] = None
    success: bool
    error: Optional[str] = None


class FundamentalsResponse(CamelModel):
    results: list[FundamentalResult] = Field(default_factory=list)

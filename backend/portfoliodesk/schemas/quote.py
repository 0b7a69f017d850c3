from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


DataQuality = Literal["complete", "partial", "basic"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuoteRequest(BaseModel):
    provider_symbol: str
    caller_symbol: str


class QuoteResult(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    symbol: str
    price: float
    previous_close: Optional[float] = None
    change_percent: Optional[float] = None
    pe_ratio: Optional[float] = Field(default=None, alias="peRatio")
    forward_pe: Optional[float] = Field(default=None, alias="forwardPE")
    earnings_per_share: Optional[float] = None
    forward_eps: Optional[float] = Field(default=None, alias="forwardEPS")
    market_cap: Optional[float] = None
    dividend_yield: Optional[float] = None
    book_value: Optional[float] = None
    price_to_book: Optional[float] = None
    beta: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    avg_volume: Optional[float] = None
    success: bool
    error: Optional[str] = None
    from_cache: bool = False
    data_quality: Optional[DataQuality] = None

    def for_caller(self, caller_symbol: str) -> QuoteResult:
        return self.model_copy(update={"symbol": caller_symbol})

    @classmethod
    def failure(cls, symbol: str, error: str) -> QuoteResult:
        return cls(symbol=symbol, price=0.0, success=False, error=error, from_cache=False)


class CacheStats(CamelModel):
    size: int
    max_size: int
    expired_entries: int = 0
    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0


class CacheInfo(CamelModel):
    size: int
    max_size: int

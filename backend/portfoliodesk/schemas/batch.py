from __future__ import annotations

from pydantic import Field

from portfoliodesk.schemas.quote import CacheInfo, CamelModel, QuoteResult


class DataQualityCounts(CamelModel):
    complete: int = 0
    partial: int = 0
    basic: int = 0


class FinancialMetricCounts(CamelModel):
    with_pe: int = Field(default=0, alias="withPE")
    with_eps: int = Field(default=0, alias="withEPS")
    with_dividend: int = 0
    with_book_value: int = 0


class BatchSummary(CamelModel):
    total: int
    successful: int
    failed: int
    from_cache: int
    from_api: int = Field(alias="fromAPI")
    # Percentage of results served from cache, one decimal.
    cache_hit_rate: float
    data_quality: DataQualityCounts = Field(default_factory=DataQualityCounts)
    financial_metrics: FinancialMetricCounts = Field(default_factory=FinancialMetricCounts)


class QuoteBatch(CamelModel):
    results: list[QuoteResult] = Field(default_factory=list)
    summary: BatchSummary


class PriceBatchResponse(QuoteBatch):
    cache: CacheInfo

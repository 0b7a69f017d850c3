from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from portfoliodesk.cache import QuoteCache
from portfoliodesk.jobs.queue import ConcurrencyQueue
from portfoliodesk.schemas.batch import (
    BatchSummary,
    DataQualityCounts,
    FinancialMetricCounts,
    QuoteBatch,
)
from portfoliodesk.schemas.quote import CacheInfo, QuoteRequest, QuoteResult
from portfoliodesk.symbols.resolver import resolve_symbol

logger = logging.getLogger(__name__)


class BatchValidationError(ValueError):
    """Raised for batch-level problems, before any provider call is made."""


def summarize(results: list[QuoteResult]) -> BatchSummary:
    total = len(results)
    successful = sum(1 for result in results if result.success)
    from_cache = sum(1 for result in results if result.from_cache)
    return BatchSummary(
        total=total,
        successful=successful,
        failed=total - successful,
        from_cache=from_cache,
        from_api=successful - from_cache,
        cache_hit_rate=round(from_cache / total * 100, 1) if total else 0.0,
        data_quality=DataQualityCounts(
            complete=sum(1 for result in results if result.data_quality == "complete"),
            partial=sum(1 for result in results if result.data_quality == "partial"),
            basic=sum(1 for result in results if result.data_quality == "basic"),
        ),
        financial_metrics=FinancialMetricCounts(
            with_pe=sum(1 for result in results if result.pe_ratio is not None),
            with_eps=sum(1 for result in results if result.earnings_per_share is not None),
            with_dividend=sum(1 for result in results if result.dividend_yield is not None),
            with_book_value=sum(1 for result in results if result.book_value is not None),
        ),
    )


class QuoteBatchOrchestrator:
    def __init__(
        self,
        queue: ConcurrencyQueue,
        cache: QuoteCache,
        *,
        max_symbols: int = 50,
        resolver: Callable[[str], str] = resolve_symbol,
    ) -> None:
        self.queue = queue
        self.cache = cache
        self.max_symbols = max_symbols
        self.resolver = resolver

    def validate(self, symbols: Any) -> list[Any]:
        if not isinstance(symbols, list):
            raise BatchValidationError("Symbols must be an array")
        if not symbols:
            raise BatchValidationError("Symbols array cannot be empty")
        if len(symbols) > self.max_symbols:
            raise BatchValidationError(
                f"Maximum {self.max_symbols} symbols allowed per request"
            )
        return symbols

    def _submit(self, item: Any) -> asyncio.Future[QuoteResult]:
        if not isinstance(item, str) or not item.strip():
            future: asyncio.Future[QuoteResult] = asyncio.get_running_loop().create_future()
            future.set_result(QuoteResult.failure(str(item), "Invalid symbol format"))
            return future
        request = QuoteRequest(provider_symbol=self.resolver(item.strip()), caller_symbol=item)
        return self.queue.add(request)

    async def fetch_batch(self, symbols: Any, *, bust_cache: bool = False) -> QuoteBatch:
        items = self.validate(symbols)

        if bust_cache:
            self.cache.clear()
            logger.info("Quote cache cleared by request")
        self.cache.cleanup()

        # 1. Dispatch every symbol; cache hits resolve immediately
        handles = [self._submit(item) for item in items]

        # 2. Completion order is irrelevant, gather keeps input order
        results = list(await asyncio.gather(*handles))

        summary = summarize(results)
        logger.info(
            "Quote batch: total=%d successful=%d failed=%d from_cache=%d",
            summary.total,
            summary.successful,
            summary.failed,
            summary.from_cache,
        )
        return QuoteBatch(results=results, summary=summary)

    def cache_info(self) -> CacheInfo:
        return self.cache.info()

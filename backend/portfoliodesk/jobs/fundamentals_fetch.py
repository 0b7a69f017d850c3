from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from portfoliodesk.jobs.quote_batch import BatchValidationError
from portfoliodesk.providers.errors import FetchError
from portfoliodesk.providers.selector import safe_number
from portfoliodesk.schemas.fundamentals import FundamentalResult

logger = logging.getLogger(__name__)

_MISSING_MARKERS = {"", "none", "-", "n/a"}


class OverviewSource(Protocol):
    async def fetch_overview(self, symbol: str) -> dict[str, Any]: ...


def _field(payload: dict[str, Any], key: str) -> float | None:
    value = payload.get(key)
    if isinstance(value, str) and value.strip().lower() in _MISSING_MARKERS:
        return None
    return safe_number(value)


def parse_overview(symbol: str, payload: dict[str, Any]) -> FundamentalResult:
    eps = _field(payload, "EPS")
    latest_earnings = None
    if eps is not None:
        latest_earnings = f"EPS: {eps:g}"
        quarter = payload.get("LatestQuarter")
        if isinstance(quarter, str) and quarter.strip():
            latest_earnings = f"{latest_earnings} ({quarter.strip()})"
    return FundamentalResult(
        symbol=symbol,
        pe_ratio=_field(payload, "PERatio"),
        eps=eps,
        market_cap=_field(payload, "MarketCapitalization"),
        book_value=_field(payload, "BookValue"),
        dividend_yield=_field(payload, "DividendYield"),
        latest_earnings=latest_earnings,
        success=True,
    )


class FundamentalsFetcher:
    """Sequential overview fetches, spaced to stay inside the provider's per-minute budget."""

    def __init__(
        self,
        source: OverviewSource,
        *,
        request_delay: float = 12.0,
        max_symbols: int = 10,
    ) -> None:
        self.source = source
        self.request_delay = request_delay
        self.max_symbols = max_symbols

    async def fetch_one(self, symbol: str) -> FundamentalResult:
        try:
            payload = await self.source.fetch_overview(symbol.strip().upper())
        except FetchError as exc:
            logger.warning("Fundamentals fetch failed for %s: %s", symbol, exc)
            return FundamentalResult(symbol=symbol, success=False, error=str(exc))
        except Exception as exc:
            logger.exception("Unexpected error fetching fundamentals for %s", symbol)
            return FundamentalResult(
                symbol=symbol, success=False, error=str(exc) or "Unknown error"
            )
        return parse_overview(symbol, payload)

    async def fetch_many(self, symbols: list[str]) -> list[FundamentalResult]:
        if len(symbols) > self.max_symbols:
            raise BatchValidationError(
                f"Maximum {self.max_symbols} symbols allowed per request"
            )
        results: list[FundamentalResult] = []
        for index, symbol in enumerate(symbols):
            if index and self.request_delay > 0:
                await asyncio.sleep(self.request_delay)
            results.append(await self.fetch_one(symbol))
        return results

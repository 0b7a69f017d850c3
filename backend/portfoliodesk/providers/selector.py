from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from portfoliodesk.providers.errors import FetchError, InvalidQuoteError
from portfoliodesk.schemas.quote import DataQuality, QuoteResult

logger = logging.getLogger(__name__)

OutcomeSource = Literal["primary", "fallback", "failed"]

_VALUATION_FIELDS = ("trailingPE", "forwardPE", "trailingEps")
_EXTENDED_FIELDS = ("bookValue", "beta", "dividendYield")


class QuoteSource(Protocol):
    async def fetch_quote_summary(self, symbol: str) -> dict[str, Any]: ...

    async def fetch_basic_quote(self, symbol: str) -> dict[str, Any]: ...


@dataclass(frozen=True)
class FetchOutcome:
    source: OutcomeSource
    fields: dict[str, Any] = field(default_factory=dict)
    error: FetchError | None = None


def safe_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def is_valid_quote(fields: dict[str, Any]) -> bool:
    return safe_number(fields.get("regularMarketPrice")) is not None


def classify_quality(fields: dict[str, Any]) -> DataQuality:
    # Zero counts as missing, matching how the provider reports unknown ratios.
    has_valuation = any(safe_number(fields.get(name)) for name in _VALUATION_FIELDS)
    has_extended = any(safe_number(fields.get(name)) for name in _EXTENDED_FIELDS)
    if has_valuation and has_extended:
        return "complete"
    if has_valuation or has_extended:
        return "partial"
    return "basic"


class ProviderClient:
    """Enriched quote first, basic quote second, failure last."""

    def __init__(self, source: QuoteSource) -> None:
        self.source = source
        self.call_count = 0

    async def attempt(self, symbol: str) -> FetchOutcome:
        try:
            return FetchOutcome("primary", await self.source.fetch_quote_summary(symbol))
        except FetchError as exc:
            logger.warning("Enriched quote failed for %s, trying basic quote: %s", symbol, exc)

        try:
            return FetchOutcome("fallback", await self.source.fetch_basic_quote(symbol))
        except FetchError as exc:
            logger.warning("Both enriched and basic quote failed for %s: %s", symbol, exc)
            return FetchOutcome("failed", error=exc)

    async def fetch_quote(self, provider_symbol: str) -> QuoteResult:
        self.call_count += 1
        outcome = await self.attempt(provider_symbol)
        if outcome.error is not None:
            raise outcome.error

        quote = outcome.fields
        if not is_valid_quote(quote):
            raise InvalidQuoteError()

        data_quality = classify_quality(quote) if outcome.source == "primary" else "basic"
        logger.debug(
            "Data quality for %s: %s (price=%s, trailingPE=%s, eps=%s)",
            provider_symbol,
            data_quality,
            quote.get("regularMarketPrice"),
            quote.get("trailingPE"),
            quote.get("trailingEps"),
        )

        return QuoteResult(
            symbol=provider_symbol,
            price=safe_number(quote.get("regularMarketPrice")),
            previous_close=safe_number(quote.get("regularMarketPreviousClose")),
            change_percent=safe_number(quote.get("regularMarketChangePercent")),
            pe_ratio=safe_number(quote.get("trailingPE")),
            forward_pe=safe_number(quote.get("forwardPE")),
            earnings_per_share=safe_number(quote.get("trailingEps")),
            forward_eps=safe_number(quote.get("forwardEps")),
            market_cap=safe_number(quote.get("marketCap")),
            dividend_yield=safe_number(quote.get("dividendYield")),
            book_value=safe_number(quote.get("bookValue")),
            price_to_book=safe_number(quote.get("priceToBook")),
            beta=safe_number(quote.get("beta")),
            fifty_two_week_high=safe_number(quote.get("fiftyTwoWeekHigh")),
            fifty_two_week_low=safe_number(quote.get("fiftyTwoWeekLow")),
            avg_volume=safe_number(quote.get("averageVolume")),
            success=True,
            from_cache=False,
            data_quality=data_quality,
        )

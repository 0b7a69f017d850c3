import asyncio
import math
from typing import Any

import pytest

from portfoliodesk.providers.errors import FetchError, InvalidQuoteError, RateLimitError
from portfoliodesk.providers.selector import (
    ProviderClient,
    classify_quality,
    safe_number,
)


class FakeSource:
    def __init__(
        self,
        summary: dict[str, Any] | Exception | None = None,
        basic: dict[str, Any] | Exception | None = None,
    ) -> None:
        self.summary = summary
        self.basic = basic
        self.summary_calls: list[str] = []
        self.basic_calls: list[str] = []

    async def fetch_quote_summary(self, symbol: str) -> dict[str, Any]:
        self.summary_calls.append(symbol)
        if isinstance(self.summary, Exception):
            raise self.summary
        return dict(self.summary or {})

    async def fetch_basic_quote(self, symbol: str) -> dict[str, Any]:
        self.basic_calls.append(symbol)
        if isinstance(self.basic, Exception):
            raise self.basic
        return dict(self.basic or {})


def test_safe_number_coercion() -> None:
    assert safe_number(None) is None
    assert safe_number(True) is None
    assert safe_number("abc") is None
    assert safe_number(float("nan")) is None
    assert safe_number(math.inf) is None
    assert safe_number({"raw": 1}) is None
    assert safe_number("12.5") == 12.5
    assert safe_number(7) == 7.0
    assert safe_number(0) == 0.0


def test_classify_quality_tiers() -> None:
    assert classify_quality({"trailingPE": 20.0, "beta": 1.1}) == "complete"
    assert classify_quality({"trailingEps": 3.2}) == "partial"
    assert classify_quality({"dividendYield": 0.02}) == "partial"
    assert classify_quality({"trailingPE": None, "beta": "n/a"}) == "basic"


def test_primary_path_returns_enriched_result() -> None:
    source = FakeSource(
        summary={
            "regularMarketPrice": 2700.0,
            "regularMarketPreviousClose": 2650.0,
            "trailingPE": 24.0,
            "trailingEps": 110.0,
            "bookValue": 1200.0,
            "averageVolume": "5000000",
            "marketCap": float("nan"),
        }
    )
    client = ProviderClient(source)

    result = asyncio.run(client.fetch_quote("RELIANCE.NS"))

    assert result.symbol == "RELIANCE.NS"
    assert result.price == 2700.0
    assert result.pe_ratio == 24.0
    assert result.earnings_per_share == 110.0
    assert result.book_value == 1200.0
    assert result.avg_volume == 5_000_000.0
    assert result.market_cap is None
    assert result.success is True
    assert result.from_cache is False
    assert result.data_quality == "complete"
    assert source.basic_calls == []
    assert client.call_count == 1


def test_falls_back_to_basic_quote() -> None:
    source = FakeSource(
        summary=FetchError("quoteSummary unavailable"),
        basic={"regularMarketPrice": 3500.0, "trailingPE": 28.0, "beta": 0.6},
    )
    client = ProviderClient(source)

    outcome = asyncio.run(client.attempt("TCS.NS"))
    result = asyncio.run(client.fetch_quote("TCS.NS"))

    assert outcome.source == "fallback"
    assert outcome.error is None
    assert result.price == 3500.0
    assert result.pe_ratio == 28.0
    assert result.data_quality == "basic"


def test_rate_limited_primary_still_falls_back() -> None:
    source = FakeSource(
        summary=RateLimitError("Provider rate limit exceeded (HTTP 429)"),
        basic={"regularMarketPrice": 10.0},
    )

    result = asyncio.run(ProviderClient(source).fetch_quote("ITC.NS"))

    assert result.price == 10.0
    assert source.summary_calls == ["ITC.NS"]
    assert source.basic_calls == ["ITC.NS"]


def test_both_paths_failing_raises_fallback_error() -> None:
    source = FakeSource(
        summary=FetchError("primary down"),
        basic=FetchError("fallback down"),
    )
    client = ProviderClient(source)

    outcome = asyncio.run(client.attempt("TCS.NS"))
    assert outcome.source == "failed"
    assert str(outcome.error) == "fallback down"

    with pytest.raises(FetchError, match="fallback down"):
        asyncio.run(client.fetch_quote("TCS.NS"))


@pytest.mark.parametrize("price", [None, "abc", float("nan"), True])
def test_invalid_price_is_rejected(price) -> None:
    source = FakeSource(summary={"regularMarketPrice": price, "trailingPE": 20.0})

    with pytest.raises(InvalidQuoteError, match="Invalid or incomplete quote data received"):
        asyncio.run(ProviderClient(source).fetch_quote("BADTICKER.NS"))

    assert source.basic_calls == []


def test_invalid_fallback_quote_is_rejected() -> None:
    source = FakeSource(summary=FetchError("down"), basic={"regularMarketPrice": None})

    with pytest.raises(InvalidQuoteError):
        asyncio.run(ProviderClient(source).fetch_quote("BADTICKER.NS"))

import asyncio
from typing import Any

import httpx
import pytest

from portfoliodesk.config.settings import ProviderSettings
from portfoliodesk.jobs import fundamentals_fetch
from portfoliodesk.jobs.fundamentals_fetch import FundamentalsFetcher, parse_overview
from portfoliodesk.jobs.quote_batch import BatchValidationError
from portfoliodesk.providers.alpha_vantage import AlphaVantageClient
from portfoliodesk.providers.errors import FetchError, RateLimitError

OVERVIEW = {
    "Symbol": "IBM",
    "PERatio": "22.5",
    "EPS": "9.1",
    "MarketCapitalization": "170000000000",
    "BookValue": "None",
    "DividendYield": "-",
    "LatestQuarter": "2024-06-30",
}


def run_overview(handler, symbol: str = "IBM", api_key: str | None = "demo-key"):
    config = ProviderSettings(alpha_vantage_api_key=api_key)

    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await AlphaVantageClient(http, config=config).fetch_overview(symbol)

    return asyncio.run(_run())


def test_overview_request_and_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=OVERVIEW)

    payload = run_overview(handler)

    assert payload["Symbol"] == "IBM"
    assert seen[0].url.params["function"] == "OVERVIEW"
    assert seen[0].url.params["symbol"] == "IBM"
    assert seen[0].url.params["apikey"] == "demo-key"


@pytest.mark.parametrize("key", ["Note", "Information"])
def test_quota_notice_raises_rate_limit(key: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={key: "Thank you for using Alpha Vantage!"})

    with pytest.raises(RateLimitError, match="API rate limit exceeded"):
        run_overview(handler)


def test_http_429_raises_rate_limit() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429)

    with pytest.raises(RateLimitError):
        run_overview(handler)


def test_error_message_is_surfaced() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Error Message": "Invalid API call."})

    with pytest.raises(FetchError, match="Invalid API call."):
        run_overview(handler)


def test_empty_overview_means_no_data() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    with pytest.raises(FetchError, match="No data found"):
        run_overview(handler, symbol="NOPE")


def test_missing_api_key_skips_request() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=OVERVIEW)

    with pytest.raises(FetchError, match="API key is not configured"):
        run_overview(handler, api_key=None)

    assert calls == []


def test_parse_overview_treats_placeholders_as_missing() -> None:
    result = parse_overview("ibm", OVERVIEW)

    assert result.symbol == "ibm"
    assert result.success is True
    assert result.pe_ratio == 22.5
    assert result.eps == 9.1
    assert result.market_cap == 170_000_000_000
    assert result.book_value is None
    assert result.dividend_yield is None
    assert result.latest_earnings == "EPS: 9.1 (2024-06-30)"


def test_parse_overview_without_eps_has_no_earnings_line() -> None:
    result = parse_overview("X", {"Symbol": "X", "EPS": "None"})

    assert result.eps is None
    assert result.latest_earnings is None


class FakeOverviewSource:
    def __init__(self, failures: dict[str, Exception] | None = None) -> None:
        self.failures = failures or {}
        self.calls: list[str] = []

    async def fetch_overview(self, symbol: str) -> dict[str, Any]:
        self.calls.append(symbol)
        if symbol in self.failures:
            raise self.failures[symbol]
        return {"Symbol": symbol, "PERatio": "10", "EPS": "1.5"}


def test_fetcher_spaces_calls_and_isolates_failures(monkeypatch) -> None:
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr(fundamentals_fetch.asyncio, "sleep", fake_sleep)
    source = FakeOverviewSource(failures={"BAD": RateLimitError("API rate limit exceeded")})
    fetcher = FundamentalsFetcher(source, request_delay=12.0)

    results = asyncio.run(fetcher.fetch_many([" aapl", "BAD", "msft"]))

    assert source.calls == ["AAPL", "BAD", "MSFT"]
    assert sleeps == [12.0, 12.0]
    assert [result.symbol for result in results] == [" aapl", "BAD", "msft"]
    assert results[0].pe_ratio == 10.0
    assert results[1].success is False
    assert results[1].error == "API rate limit exceeded"
    assert results[2].success is True


def test_fetcher_enforces_symbol_limit() -> None:
    source = FakeOverviewSource()
    fetcher = FundamentalsFetcher(source, request_delay=0, max_symbols=2)

    with pytest.raises(BatchValidationError, match="Maximum 2 symbols allowed per request"):
        asyncio.run(fetcher.fetch_many(["A", "B", "C"]))

    assert source.calls == []


def test_unexpected_source_error_is_recorded_per_symbol() -> None:
    source = FakeOverviewSource(failures={"ODD": KeyError("Symbol")})
    fetcher = FundamentalsFetcher(source, request_delay=0)

    results = asyncio.run(fetcher.fetch_many(["ODD", "IBM"]))

    assert results[0].symbol == "ODD"
    assert results[0].success is False
    assert "Symbol" in results[0].error
    assert results[1].success is True
    assert source.calls == ["ODD", "IBM"]

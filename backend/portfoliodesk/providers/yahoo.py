from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from portfoliodesk.config.settings import ProviderSettings, settings
from portfoliodesk.providers.errors import FetchError, RateLimitError

logger = logging.getLogger(__name__)

_SUMMARY_PATH = "/v10/finance/quoteSummary/"
_QUOTE_PATH = "/v7/finance/quote"
_CRUMB_PATH = "/v1/test/getcrumb"

_SUMMARY_MODULES = ("price", "summaryDetail", "defaultKeyStatistics", "financialData")

# (module, field) pairs flattened into one enriched quote dict.
_SUMMARY_FIELDS: tuple[tuple[str, str], ...] = (
    ("price", "regularMarketPrice"),
    ("price", "regularMarketPreviousClose"),
    ("price", "regularMarketChangePercent"),
    ("price", "marketCap"),
    ("summaryDetail", "trailingPE"),
    ("summaryDetail", "forwardPE"),
    ("summaryDetail", "dividendYield"),
    ("summaryDetail", "beta"),
    ("summaryDetail", "fiftyTwoWeekHigh"),
    ("summaryDetail", "fiftyTwoWeekLow"),
    ("summaryDetail", "averageVolume"),
    ("defaultKeyStatistics", "trailingEps"),
    ("defaultKeyStatistics", "forwardEps"),
    ("defaultKeyStatistics", "bookValue"),
    ("defaultKeyStatistics", "priceToBook"),
    ("defaultKeyStatistics", "enterpriseValue"),
    ("financialData", "totalRevenue"),
    ("financialData", "revenuePerShare"),
    ("financialData", "returnOnEquity"),
)

_BASIC_FIELDS = (
    "regularMarketPrice",
    "regularMarketPreviousClose",
    "regularMarketChangePercent",
    "marketCap",
    "trailingPE",
    "forwardPE",
    "fiftyTwoWeekHigh",
    "fiftyTwoWeekLow",
)


def _unwrap(value: Any) -> Any:
    # Formatted responses wrap numbers as {"raw": 1.0, "fmt": "1.00"}; empty dicts mean absent.
    if isinstance(value, dict):
        return value.get("raw")
    return value


def _error_description(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    for wrapper in ("quoteSummary", "quoteResponse", "finance"):
        section = payload.get(wrapper)
        if not isinstance(section, dict):
            continue
        error = section.get("error")
        if isinstance(error, dict):
            return str(error.get("description") or error.get("code") or "Provider error")
        if error:
            return str(error)
    return None


class YahooFinanceClient:
    """Async Yahoo Finance client exposing an enriched and a basic quote call."""

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        *,
        config: ProviderSettings | None = None,
    ) -> None:
        self._config = config or settings.providers
        self._http = http
        self._owns_http = http is None
        self._crumb: str | None = None
        self._crumb_lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                follow_redirects=True,
            )
        return self._http

    @property
    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._config.user_agent, "Accept": "application/json"}

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _get_crumb(self) -> str | None:
        if not self._config.yahoo_use_crumb:
            return None
        if self._crumb is None:
            async with self._crumb_lock:
                if self._crumb is None:
                    self._crumb = await self._fetch_crumb()
        return self._crumb or None

    async def _fetch_crumb(self) -> str:
        # An empty string marks a failed handshake so it is not repeated on every call.
        client = self._client()
        try:
            await client.get(self._config.yahoo_cookie_url, headers=self._headers)
            response = await client.get(
                f"{self._config.yahoo_quote_base_url}{_CRUMB_PATH}", headers=self._headers
            )
        except httpx.HTTPError as exc:
            logger.warning("Yahoo crumb handshake failed: %s", exc)
            return ""
        crumb = response.text.strip()
        if not response.is_success or not crumb or "<" in crumb:
            logger.warning("Yahoo crumb handshake returned HTTP %s", response.status_code)
            return ""
        return crumb

    async def _get_json(self, url: str, params: dict[str, str]) -> Any:
        crumb = await self._get_crumb()
        if crumb:
            params = {**params, "crumb": crumb}
        try:
            response = await self._client().get(
                url,
                params=params,
                headers=self._headers,
                timeout=self._config.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise FetchError(
                f"Request timed out after {self._config.timeout_seconds:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Request failed: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitError("Provider rate limit exceeded (HTTP 429)")
        if response.status_code == 401:
            self._crumb = None

        try:
            payload = response.json()
        except ValueError as exc:
            if not response.is_success:
                raise FetchError(f"HTTP {response.status_code}") from exc
            raise FetchError("Malformed JSON response from provider") from exc

        if not response.is_success:
            raise FetchError(_error_description(payload) or f"HTTP {response.status_code}")
        return payload

    async def fetch_quote_summary(self, symbol: str) -> dict[str, Any]:
        url = f"{self._config.yahoo_summary_base_url}{_SUMMARY_PATH}{quote(symbol, safe='')}"
        payload = await self._get_json(
            url, {"modules": ",".join(_SUMMARY_MODULES), "formatted": "false"}
        )
        summary = payload.get("quoteSummary") if isinstance(payload, dict) else None
        if not isinstance(summary, dict):
            raise FetchError("Malformed quoteSummary response")
        error = _error_description(payload)
        if error:
            raise FetchError(error)
        results = summary.get("result")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            raise FetchError(f"No quote summary returned for {symbol}")

        modules = results[0]
        fields: dict[str, Any] = {}
        for module_name, field in _SUMMARY_FIELDS:
            module = modules.get(module_name)
            fields[field] = _unwrap(module.get(field)) if isinstance(module, dict) else None
        return fields

    async def fetch_basic_quote(self, symbol: str) -> dict[str, Any]:
        payload = await self._get_json(
            f"{self._config.yahoo_quote_base_url}{_QUOTE_PATH}", {"symbols": symbol}
        )
        response = payload.get("quoteResponse") if isinstance(payload, dict) else None
        if not isinstance(response, dict):
            raise FetchError("Malformed quote response")
        error = _error_description(payload)
        if error:
            raise FetchError(error)
        results = response.get("result") or []
        item = next((entry for entry in results if isinstance(entry, dict)), None)
        if item is None:
            raise FetchError(f"No quote returned for {symbol}")
        return {field: _unwrap(item.get(field)) for field in _BASIC_FIELDS}

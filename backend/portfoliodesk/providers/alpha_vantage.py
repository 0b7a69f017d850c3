"""Alpha Vantage company overview client used for fundamentals."""

from __future__ import annotations

from typing import Any

import httpx

from portfoliodesk.config.settings import ProviderSettings, settings
from portfoliodesk.providers.errors import FetchError, RateLimitError

# Alpha Vantage answers quota problems with HTTP 200 and one of these keys.
_NOTICE_KEYS = ("Note", "Information")


class AlphaVantageClient:
    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        *,
        config: ProviderSettings | None = None,
    ) -> None:
        self._config = config or settings.providers
        self._http = http
        self._owns_http = http is None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self._config.timeout_seconds))
        return self._http

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    async def fetch_overview(self, symbol: str) -> dict[str, Any]:
        api_key = self._config.alpha_vantage_api_key
        if not api_key:
            raise FetchError("Alpha Vantage API key is not configured")

        try:
            response = await self._client().get(
                self._config.alpha_vantage_base_url,
                params={"function": "OVERVIEW", "symbol": symbol, "apikey": api_key},
                timeout=self._config.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise FetchError(
                f"Request timed out after {self._config.timeout_seconds:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Request failed: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitError("API rate limit exceeded")
        if not response.is_success:
            raise FetchError(f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError("Malformed JSON response from provider") from exc

        if not isinstance(payload, dict):
            raise FetchError("Malformed JSON response from provider")
        if any(key in payload for key in _NOTICE_KEYS):
            raise RateLimitError("API rate limit exceeded")
        if "Error Message" in payload:
            raise FetchError(str(payload["Error Message"]))
        if not payload.get("Symbol"):
            raise FetchError("No data found")
        return payload

"""FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from portfoliodesk.api.routes import router
from portfoliodesk.cache import QuoteCache
from portfoliodesk.config.settings import settings
from portfoliodesk.core.logging import setup_logging
from portfoliodesk.jobs.fundamentals_fetch import FundamentalsFetcher
from portfoliodesk.jobs.queue import ConcurrencyQueue
from portfoliodesk.jobs.quote_batch import QuoteBatchOrchestrator
from portfoliodesk.providers.alpha_vantage import AlphaVantageClient
from portfoliodesk.providers.selector import ProviderClient
from portfoliodesk.providers.yahoo import YahooFinanceClient


def build_orchestrator(source: YahooFinanceClient) -> QuoteBatchOrchestrator:
    cache = QuoteCache(ttl_seconds=settings.cache.ttl_seconds, max_size=settings.cache.max_size)
    queue = ConcurrencyQueue(
        ProviderClient(source),
        cache,
        max_concurrency=settings.queue.max_concurrency,
        request_delay=settings.queue.request_delay_seconds,
        poll_interval=settings.queue.poll_interval_seconds,
    )
    return QuoteBatchOrchestrator(queue, cache, max_symbols=settings.batch.max_symbols)


def create_app(
    *,
    orchestrator: QuoteBatchOrchestrator | None = None,
    fundamentals: FundamentalsFetcher | None = None,
) -> FastAPI:
    """Build the app; services not injected are created from settings and live as long as the app."""

    setup_logging(settings.log_level)

    owned_clients: list[YahooFinanceClient | AlphaVantageClient] = []
    if orchestrator is None:
        yahoo = YahooFinanceClient()
        owned_clients.append(yahoo)
        orchestrator = build_orchestrator(yahoo)
    if fundamentals is None:
        alpha_vantage = AlphaVantageClient()
        owned_clients.append(alpha_vantage)
        fundamentals = FundamentalsFetcher(
            alpha_vantage,
            request_delay=settings.fundamentals.request_delay_seconds,
            max_symbols=settings.fundamentals.max_symbols,
        )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        for client in owned_clients:
            await client.aclose()

    app = FastAPI(title="portfoliodesk", version="0.1.0", lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.state.fundamentals = fundamentals
    app.include_router(router)
    return app


app = create_app()

"""FastAPI dependencies resolving the process-lifetime services stored on ``app.state``."""

from __future__ import annotations

from fastapi import Request

from portfoliodesk.jobs.fundamentals_fetch import FundamentalsFetcher
from portfoliodesk.jobs.quote_batch import QuoteBatchOrchestrator


def get_orchestrator(request: Request) -> QuoteBatchOrchestrator:
    return request.app.state.orchestrator


def get_fundamentals_fetcher(request: Request) -> FundamentalsFetcher:
    return request.app.state.fundamentals

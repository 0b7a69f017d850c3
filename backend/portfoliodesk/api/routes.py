import json
import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from portfoliodesk.api.dependencies import get_fundamentals_fetcher, get_orchestrator
from portfoliodesk.jobs.fundamentals_fetch import FundamentalsFetcher
from portfoliodesk.jobs.quote_batch import BatchValidationError, QuoteBatchOrchestrator
from portfoliodesk.portfolio.calculations import build_portfolio
from portfoliodesk.schemas.batch import PriceBatchResponse
from portfoliodesk.schemas.fundamentals import FundamentalsRequest, FundamentalsResponse
from portfoliodesk.schemas.portfolio import (
    PortfolioValuationRequest,
    PortfolioValuationResponse,
)
from portfoliodesk.schemas.quote import CacheStats

logger = logging.getLogger(__name__)

router = APIRouter()


def _bad_request(message: str, **extra: Any) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"message": message, **extra},
    )


def _internal_error(message: str) -> HTTPException:
    request_id = uuid.uuid4().hex
    logger.exception("%s (request_id=%s)", message, request_id)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"message": message, "request_id": request_id},
    )


async def _read_json_body(request: Request) -> Any:
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type:
        raise _bad_request("Content-Type must be application/json")
    body = await request.body()
    if not body.strip():
        raise _bad_request("Request body cannot be empty")
    try:
        return json.loads(body)
    except ValueError as exc:
        raise _bad_request("Invalid JSON format in request body", details=str(exc))


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.post(
    "/stocks/prices",
    response_model=PriceBatchResponse,
    response_model_exclude_none=True,
)
async def stock_prices_endpoint(
    request: Request,
    orchestrator: QuoteBatchOrchestrator = Depends(get_orchestrator),
) -> PriceBatchResponse:
    payload = await _read_json_body(request)
    if not isinstance(payload, dict) or payload.get("symbols") is None:
        raise _bad_request("Missing symbols field in request body")

    try:
        batch = await orchestrator.fetch_batch(
            payload["symbols"], bust_cache=payload.get("bustCache") is True
        )
    except BatchValidationError as exc:
        raise _bad_request(str(exc))
    except Exception:
        raise _internal_error("Internal server error while processing stock prices")

    return PriceBatchResponse(
        results=batch.results,
        summary=batch.summary,
        cache=orchestrator.cache_info(),
    )


@router.get("/stocks/cache", response_model=CacheStats)
def cache_stats_endpoint(
    orchestrator: QuoteBatchOrchestrator = Depends(get_orchestrator),
) -> CacheStats:
    return orchestrator.cache.stats()


@router.delete("/stocks/cache", response_model=CacheStats)
def clear_cache_endpoint(
    orchestrator: QuoteBatchOrchestrator = Depends(get_orchestrator),
) -> CacheStats:
    orchestrator.cache.clear()
    logger.info("Quote cache cleared via API")
    return orchestrator.cache.stats()


@router.post(
    "/stocks/fundamentals",
    response_model=FundamentalsResponse,
    response_model_exclude_none=True,
)
async def fundamentals_endpoint(
    payload: FundamentalsRequest,
    fetcher: FundamentalsFetcher = Depends(get_fundamentals_fetcher),
) -> FundamentalsResponse:
    try:
        results = await fetcher.fetch_many(payload.symbols)
    except BatchValidationError as exc:
        raise _bad_request(str(exc))
    except Exception:
        raise _internal_error("Failed to fetch fundamental data")
    return FundamentalsResponse(results=results)


@router.post("/portfolio/valuation", response_model=PortfolioValuationResponse)
async def portfolio_valuation_endpoint(
    payload: PortfolioValuationRequest,
    orchestrator: QuoteBatchOrchestrator = Depends(get_orchestrator),
) -> PortfolioValuationResponse:
    # 1. Fetch live prices for every holding
    symbols = [holding.symbol for holding in payload.holdings]
    try:
        batch = await orchestrator.fetch_batch(symbols, bust_cache=payload.bust_cache)
    except BatchValidationError as exc:
        raise _bad_request(str(exc))
    except Exception:
        raise _internal_error("Internal server error while valuing portfolio")

    # 2. Failed or zero prices leave the holding at cost
    prices = {
        result.symbol: result.price
        for result in batch.results
        if result.success and result.price > 0
    }
    valuation = build_portfolio(payload.holdings, prices)
    return PortfolioValuationResponse(**valuation.model_dump(), quote_summary=batch.summary)

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Protocol

from portfoliodesk.cache import QuoteCache
from portfoliodesk.schemas.quote import QuoteRequest, QuoteResult

logger = logging.getLogger(__name__)


class QuoteFetcher(Protocol):
    async def fetch_quote(self, provider_symbol: str) -> QuoteResult: ...


@dataclass
class QueueTask:
    provider_symbol: str
    waiters: list[tuple[str, asyncio.Future[QuoteResult]]] = field(default_factory=list)

    def attach(self, caller_symbol: str, future: asyncio.Future[QuoteResult]) -> None:
        self.waiters.append((caller_symbol, future))

    def resolve(self, result: QuoteResult) -> None:
        for caller_symbol, future in self.waiters:
            # The caller may have stopped waiting; a handle is only ever satisfied once.
            if not future.done():
                future.set_result(result.for_caller(caller_symbol))


class ConcurrencyQueue:
    """FIFO scheduler that caps in-flight provider calls and paces completions.

    ``add`` never blocks: a cache hit comes back as an already-completed
    future, anything else is queued and dispatched while fewer than
    ``max_concurrency`` fetches are running. Requests for a provider symbol
    that is already queued or running share that fetch. Each finished fetch
    waits ``request_delay`` seconds before admitting the next task. Every
    handle resolves exactly once, with a failure result when the fetch raises.
    """

    def __init__(
        self,
        provider: QuoteFetcher,
        cache: QuoteCache,
        *,
        max_concurrency: int = 5,
        request_delay: float = 0.15,
        poll_interval: float = 0.05,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.provider = provider
        self.cache = cache
        self.max_concurrency = max_concurrency
        self.request_delay = request_delay
        self.poll_interval = poll_interval
        self._pending: deque[QueueTask] = deque()
        # Queued or running tasks by uppercased provider symbol.
        self._active: dict[str, QueueTask] = {}
        self._running = 0
        self._workers: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return self._running

    @property
    def pending(self) -> int:
        return len(self._pending)

    def add(self, request: QuoteRequest) -> asyncio.Future[QuoteResult]:
        future: asyncio.Future[QuoteResult] = asyncio.get_running_loop().create_future()

        cached = self.cache.get(request.provider_symbol)
        if cached is not None:
            logger.debug("Cache hit for %s", request.caller_symbol)
            future.set_result(cached.for_caller(request.caller_symbol))
            return future

        key = request.provider_symbol.upper()
        task = self._active.get(key)
        if task is not None:
            logger.debug("Joining in-flight fetch of %s for %s", key, request.caller_symbol)
            task.attach(request.caller_symbol, future)
            return future

        task = QueueTask(provider_symbol=request.provider_symbol)
        task.attach(request.caller_symbol, future)
        self._active[key] = task
        self._pending.append(task)
        self._dispatch()
        return future

    def _dispatch(self) -> None:
        while self._running < self.max_concurrency and self._pending:
            task = self._pending.popleft()
            self._running += 1
            worker = asyncio.create_task(self._run(task))
            self._workers.add(worker)
            worker.add_done_callback(self._workers.discard)

    async def _run(self, task: QueueTask) -> None:
        try:
            result = await self.provider.fetch_quote(task.provider_symbol)
        except Exception as exc:
            logger.warning("Quote fetch failed for %s: %s", task.provider_symbol, exc)
            result = QuoteResult.failure(task.provider_symbol, str(exc) or "Unknown error")
        else:
            result = result.for_caller(task.provider_symbol)
            self.cache.set(task.provider_symbol, result)
        finally:
            self._running -= 1
            self._active.pop(task.provider_symbol.upper(), None)
        task.resolve(result)

        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)
        self._dispatch()

    async def wait_for_completion(self) -> None:
        while self._running > 0 or self._pending:
            await asyncio.sleep(self.poll_interval)

"""Batch Dispatcher - Rate-Limited Translation Queue

Collects individual translate-by-text requests from any number of callers and
turns them into provider calls that respect the configured rate limit.

Key behaviour:
- Requests are served strictly FIFO, ``rate_limit_batch_size`` at a time
- Every provider call is followed by a pause of ``min_dispatch_interval``
  (``max(0.25s, 1s / rps)``), even after the last batch, so the call rate never
  exceeds ``rps`` whatever the batch size
- A failed provider call rejects every request of that batch with the same
  error; nothing is retried and later batches are unaffected
- At most one dispatch loop runs per dispatcher; it starts on the first enqueue
  while idle and stops when the queue is drained
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog

from autotranslate.config import Settings
from autotranslate.services.providers.base import ProviderError, TranslationProvider

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class BatchRequest:
    """One pending text waiting for a provider call."""

    text: str
    provider: TranslationProvider
    source_lang: str
    target_lang: str
    future: asyncio.Future

    @property
    def route(self) -> tuple[int, str, str]:
        return id(self.provider), self.source_lang, self.target_lang


class BatchDispatcher:
    def __init__(self, settings: Settings, sleep: SleepFunc = asyncio.sleep):
        self.settings = settings
        self._sleep = sleep
        self._queue: deque[BatchRequest] = deque()
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._in_flight: list[BatchRequest] = []
        self._cycles = itertools.count(1)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        return len(self._queue)

    def enqueue(
        self,
        text: str,
        provider: TranslationProvider,
        source_lang: str,
        target_lang: str,
    ) -> asyncio.Future:
        """Queue one text and return a future resolved with its translation."""
        future = asyncio.get_running_loop().create_future()
        self._queue.append(BatchRequest(text, provider, source_lang, target_lang, future))
        if not self._running:
            self._running = True
            self._task = asyncio.create_task(self._run())
        return future

    async def batch(
        self,
        texts: list[str],
        provider: TranslationProvider,
        source_lang: str,
        target_lang: str,
    ) -> list[str]:
        """Translate ``texts`` through the queue, all or nothing.

        Raises the first rejection if any of the underlying requests failed. A
        request cancelled underneath the caller surfaces as ``ProviderError``.
        """
        futures = [self.enqueue(text, provider, source_lang, target_lang) for text in texts]
        results = await asyncio.gather(*futures, return_exceptions=True)
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise ProviderError("Translation request was cancelled") from result
            if isinstance(result, BaseException):
                raise result
        return list(results)

    def _take_batch(self) -> list[BatchRequest]:
        # Only the head's route goes out in one call; a config switch starts a new batch
        limit = self.settings.rate_limit_batch_size
        head = self._queue.popleft()
        batch = [head]
        while self._queue and len(batch) < limit and self._queue[0].route == head.route:
            batch.append(self._queue.popleft())
        return batch

    async def _run(self) -> None:
        structlog.contextvars.bind_contextvars(dispatch_cycle=next(self._cycles))
        try:
            while self._queue:
                batch = self._take_batch()
                self._in_flight = batch
                await self._dispatch(batch)
                self._in_flight = []
                await self._sleep(self.settings.min_dispatch_interval)
        finally:
            self._running = False
            self._task = None

    async def _dispatch(self, batch: list[BatchRequest]) -> None:
        head = batch[0]
        texts = [request.text for request in batch]
        try:
            translated = await head.provider.translate_many(texts, head.source_lang, head.target_lang)
        except Exception as e:
            logger.error(
                f"Batch of {len(batch)} texts failed ({head.provider.provider_id}, "
                f"{head.source_lang}->{head.target_lang}): {e}"
            )
            for request in batch:
                if not request.future.done():
                    request.future.set_exception(e)
            return

        if len(translated) != len(batch):
            logger.warning(
                f"Provider {head.provider.provider_id} returned {len(translated)} results "
                f"for {len(batch)} texts"
            )
        for i, request in enumerate(batch):
            if not request.future.done():
                request.future.set_result(translated[i] if i < len(translated) else "")
        logger.debug(f"Dispatched batch of {len(batch)} texts, {len(self._queue)} pending")

    async def close(self) -> None:
        """Stop the dispatch loop and reject everything still pending."""
        task = self._task
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        pending = [request for request in [*self._in_flight, *self._queue] if not request.future.done()]
        if pending:
            logger.warning(f"Dispatcher closed with {len(pending)} pending requests")
        error = ProviderError("Dispatcher closed")
        for request in pending:
            request.future.set_exception(error)
        self._in_flight = []
        self._queue.clear()
        self._running = False
        self._task = None

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, Optional, Tuple

from .cache import EnrichmentCache
from .config import (
    ENRICH_CONCURRENCY,
    ENRICH_INITIAL_DELAY,
    ENRICH_MAX_ATTEMPTS,
    ENRICH_MAX_DELAY,
    ENRICH_TIMEOUT,
)
from .errors import FetchTimeoutError, InvalidURLError
from .models import BatchResult, FetchFailure, FetchOutcome, FetchSuccess, PostInfo, Record

FetchOne = Callable[[str], Awaitable[PostInfo]]


def backoff_delay(retry: int, initial_delay: float, max_delay: float) -> float:
    """Delay before retry number ``retry`` (1-based): d, 2d, 4d ... capped."""
    return min(initial_delay * (2 ** (retry - 1)), max_delay)


class BoundedFetcher:
    """
    Run ``fetch_one(link)`` for a batch of records:
    - at most ``concurrency`` requests in flight at once
    - each attempt bounded by ``timeout`` seconds (fresh for every retry)
    - up to ``max_attempts`` attempts with exponential backoff between them
    - cache consulted before every attempt, filled on every success

    A record that keeps failing ends as a FetchFailure in the batch result; it
    never fails the batch or cancels its siblings.
    """

    def __init__(
        self,
        fetch_one: FetchOne,
        *,
        cache: Optional[EnrichmentCache] = None,
        concurrency: int = ENRICH_CONCURRENCY,
        timeout: float = ENRICH_TIMEOUT,
        max_attempts: int = ENRICH_MAX_ATTEMPTS,
        initial_delay: float = ENRICH_INITIAL_DELAY,
        max_delay: float = ENRICH_MAX_DELAY,
        log_callback=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._fetch_one = fetch_one
        self.cache = cache if cache is not None else EnrichmentCache()
        self.concurrency = int(concurrency)
        self.timeout = float(timeout)
        self.max_attempts = int(max_attempts)
        self.initial_delay = float(initial_delay)
        self.max_delay = float(max_delay)
        self._log = log_callback or (lambda msg, lvl="info": None)
        self._sleep = sleep

    async def _attempt(self, link: str, semaphore: asyncio.Semaphore) -> Tuple[PostInfo, bool]:
        """One try at ``link``; returns (info, came_from_cache)."""
        async with semaphore:
            # another record with the same link may have filled it while we waited
            cached = await self.cache.get(link)
            if cached is not None:
                return cached, True
            try:
                info = await asyncio.wait_for(self._fetch_one(link), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise FetchTimeoutError(f"timed out after {self.timeout:g}s", url=link) from e
            await self.cache.set(link, info)
            return info, False

    async def _fetch_record(self, record: Record, semaphore: asyncio.Semaphore) -> FetchOutcome:
        key = record.key
        link = record.link
        if not link:
            self._log(f"record {key}: no link to enrich", "warning")
            return FetchFailure(error=InvalidURLError(link, "record has no link"), attempts=0)

        last_error: Exception = RuntimeError("no attempt made")
        for attempt in range(1, self.max_attempts + 1):
            cached = await self.cache.get(link)
            if cached is not None:
                return FetchSuccess(info=cached, attempts=attempt - 1, from_cache=True)

            try:
                info, from_cache = await self._attempt(link, semaphore)
            except Exception as e:
                last_error = e
                self._log(
                    f"record {key}: attempt {attempt}/{self.max_attempts} failed: {e}",
                    "warning",
                )
                if attempt < self.max_attempts:
                    await self._sleep(backoff_delay(attempt, self.initial_delay, self.max_delay))
                continue

            if from_cache:
                return FetchSuccess(info=info, attempts=attempt - 1, from_cache=True)
            return FetchSuccess(info=info, attempts=attempt)

        self._log(f"record {key}: giving up after {self.max_attempts} attempts: {last_error}", "error")
        return FetchFailure(error=last_error, attempts=self.max_attempts)

    async def fetch_all(
        self,
        records: Iterable[Record],
        on_complete: Optional[Callable[[BatchResult], None]] = None,
    ) -> BatchResult:
        """Enrich every record; resolves once all of them have settled.

        Records repeating an earlier record's key are dropped before dispatch,
        so ``requested`` counts distinct records.
        """
        unique: Dict[str, Record] = {}
        for record in records:
            unique.setdefault(record.key, record)
        records = list(unique.values())
        semaphore = asyncio.Semaphore(self.concurrency)
        outcomes = await asyncio.gather(*(self._fetch_record(r, semaphore) for r in records))

        batch = BatchResult(requested=len(records))
        for record, outcome in zip(records, outcomes):
            batch.outcomes[record.key] = outcome

        self._log(
            f"enrichment batch: requested={batch.requested} succeeded={batch.succeeded} failed={batch.failed}",
            "success" if batch.failed == 0 else "warning",
        )
        if on_complete is not None:
            on_complete(batch)
        return batch

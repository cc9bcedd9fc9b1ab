from __future__ import annotations

import asyncio

import pytest

from readit_scraper.cache import EnrichmentCache
from readit_scraper.errors import FetchTimeoutError, InvalidURLError, NetworkError
from readit_scraper.fetcher import BoundedFetcher, backoff_delay
from readit_scraper.models import Comment, FetchFailure, FetchSuccess, PostInfo


def make_comment(cid: str, link: str, time_raw: str = "0") -> Comment:
    return Comment.create(
        id=cid,
        parent_id=None,
        author="someone",
        score_text="1",
        time_raw=time_raw,
        body="",
        depth=0,
        stickied=False,
        direct_url=link,
    )


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def test_backoff_delay_doubles_and_caps():
    assert [backoff_delay(n, 1.0, 10.0) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 10.0]


def test_invalid_configuration_is_rejected():
    async def fetch_one(link):
        return PostInfo("t", "a")

    with pytest.raises(ValueError):
        BoundedFetcher(fetch_one, concurrency=0)
    with pytest.raises(ValueError):
        BoundedFetcher(fetch_one, max_attempts=0)


def test_concurrency_ceiling_is_respected():
    in_flight = 0
    peak = 0

    async def fetch_one(link):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return PostInfo(title=f"title {link}", author="op")

    records = [make_comment(f"t1_{i}", f"https://x/r/a/comments/{i}/s/t1_{i}") for i in range(10)]
    fetcher = BoundedFetcher(fetch_one, concurrency=2, timeout=5)

    batch = asyncio.run(fetcher.fetch_all(records))

    assert peak == 2
    assert batch.requested == 10
    assert batch.succeeded == 10
    assert len(batch.results) == 10


def test_retry_exhaustion_after_exactly_n_attempts():
    calls = []

    async def fetch_one(link):
        calls.append(link)
        raise NetworkError("boom", url=link)

    sleep = RecordingSleep()
    fetcher = BoundedFetcher(
        fetch_one,
        concurrency=1,
        max_attempts=3,
        initial_delay=0.5,
        max_delay=10,
        sleep=sleep,
    )

    batch = asyncio.run(fetcher.fetch_all([make_comment("t1_a", "https://x/r/a/comments/1/s/t1_a")]))

    assert len(calls) == 3
    assert sleep.delays == [0.5, 1.0]
    outcome = batch.outcomes["t1_a"]
    assert isinstance(outcome, FetchFailure)
    assert outcome.attempts == 3
    assert isinstance(outcome.error, NetworkError)
    assert batch.results == []
    assert batch.failed == 1


def test_backoff_is_capped_at_max_delay():
    async def fetch_one(link):
        raise NetworkError("boom")

    sleep = RecordingSleep()
    fetcher = BoundedFetcher(fetch_one, max_attempts=5, initial_delay=1, max_delay=3, sleep=sleep)
    asyncio.run(fetcher.fetch_all([make_comment("t1_a", "https://x/1")]))

    assert sleep.delays == [1, 2, 3, 3]


def test_timeout_counts_as_a_failed_attempt():
    calls = 0

    async def fetch_one(link):
        nonlocal calls
        calls += 1
        await asyncio.sleep(5)
        return PostInfo("never", "never")

    sleep = RecordingSleep()
    fetcher = BoundedFetcher(fetch_one, timeout=0.01, max_attempts=2, sleep=sleep)
    batch = asyncio.run(fetcher.fetch_all([make_comment("t1_a", "https://x/1")]))

    outcome = batch.outcomes["t1_a"]
    assert isinstance(outcome, FetchFailure)
    assert isinstance(outcome.error, FetchTimeoutError)
    assert isinstance(outcome.error, TimeoutError)
    assert calls == 2
    assert len(sleep.delays) == 1


def test_retry_then_success_fills_cache():
    attempts = 0

    async def fetch_one(link):
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise NetworkError("flaky")
        return PostInfo("A post", "op")

    cache = EnrichmentCache()
    fetcher = BoundedFetcher(fetch_one, cache=cache, sleep=RecordingSleep())
    batch = asyncio.run(fetcher.fetch_all([make_comment("t1_a", "https://x/1")]))

    outcome = batch.outcomes["t1_a"]
    assert isinstance(outcome, FetchSuccess)
    assert outcome.attempts == 2
    assert outcome.from_cache is False
    assert "https://x/1" in cache
    assert len(cache) == 1


def test_cache_hit_skips_fetch():
    async def fetch_one(link):
        raise AssertionError("should not be called")

    async def run():
        cache = EnrichmentCache()
        await cache.set("https://x/1", PostInfo("cached", "op"))
        fetcher = BoundedFetcher(fetch_one, cache=cache)
        return await fetcher.fetch_all([make_comment("t1_a", "https://x/1")])

    batch = asyncio.run(run())

    outcome = batch.outcomes["t1_a"]
    assert isinstance(outcome, FetchSuccess)
    assert outcome.from_cache is True
    assert outcome.info.title == "cached"


def test_records_sharing_a_link_fetch_it_once():
    calls = []

    async def fetch_one(link):
        calls.append(link)
        await asyncio.sleep(0.01)
        return PostInfo("shared", "op")

    records = [make_comment("t1_a", "https://x/1"), make_comment("t1_b", "https://x/1")]
    batch = asyncio.run(BoundedFetcher(fetch_one, concurrency=1).fetch_all(records))

    assert calls == ["https://x/1"]
    assert batch.succeeded == 2
    assert batch.outcomes["t1_b"].from_cache is True


def test_one_failure_does_not_abort_siblings():
    async def fetch_one(link):
        if link.endswith("bad"):
            raise NetworkError("nope")
        await asyncio.sleep(0.01)
        return PostInfo(link, "op")

    records = [
        make_comment("t1_a", "https://x/good1"),
        make_comment("t1_b", "https://x/bad"),
        make_comment("t1_c", "https://x/good2"),
    ]
    fetcher = BoundedFetcher(fetch_one, concurrency=3, max_attempts=2, sleep=RecordingSleep())
    batch = asyncio.run(fetcher.fetch_all(records))

    assert batch.requested == 3
    assert batch.succeeded == 2
    assert set(batch.failures) == {"t1_b"}
    assert sorted(r.key for r in batch.results) == ["t1_a", "t1_c"]


def test_record_without_link_fails_without_fetching():
    async def fetch_one(link):
        raise AssertionError("should not be called")

    batch = asyncio.run(BoundedFetcher(fetch_one).fetch_all([make_comment("t1_a", "")]))

    outcome = batch.outcomes["t1_a"]
    assert isinstance(outcome, FetchFailure)
    assert outcome.attempts == 0
    assert isinstance(outcome.error, InvalidURLError)


def test_on_complete_fires_once_after_everything_settled():
    seen = []

    async def fetch_one(link):
        await asyncio.sleep(0.01)
        return PostInfo(link, "op")

    records = [make_comment(f"t1_{i}", f"https://x/{i}") for i in range(4)]
    fetcher = BoundedFetcher(fetch_one, concurrency=2)
    batch = asyncio.run(fetcher.fetch_all(records, on_complete=seen.append))

    assert seen == [batch]
    assert seen[0].succeeded == 4


def test_log_callback_reports_failures():
    messages = []

    async def fetch_one(link):
        raise NetworkError("down")

    fetcher = BoundedFetcher(
        fetch_one,
        max_attempts=2,
        sleep=RecordingSleep(),
        log_callback=lambda msg, lvl="info": messages.append((lvl, msg)),
    )
    asyncio.run(fetcher.fetch_all([make_comment("t1_a", "https://x/1")]))

    levels = [lvl for lvl, _ in messages]
    assert levels.count("warning") >= 2
    assert "error" in levels


def test_repeated_record_keys_are_counted_once():
    calls = []

    async def fetch_one(link):
        calls.append(link)
        return PostInfo("A post", "op")

    records = [
        make_comment("t1_a", "https://x/r/a/comments/1/s/t1_a"),
        make_comment("t1_a", "https://x/r/a/comments/1/s/t1_a"),
        make_comment("t1_b", "https://x/r/a/comments/2/s/t1_b"),
    ]
    batch = asyncio.run(BoundedFetcher(fetch_one, concurrency=2).fetch_all(records))

    assert batch.requested == 2
    assert batch.succeeded == 2
    assert batch.failed == 0
    assert sorted(calls) == ["https://x/r/a/comments/1/s/t1_a", "https://x/r/a/comments/2/s/t1_b"]

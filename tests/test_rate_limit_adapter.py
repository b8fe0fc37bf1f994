"""Unit tests for the in-memory fixed-window rate limiter."""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from tunnel.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter


def test_admits_exactly_limit_requests_per_window() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=600)

    assert all(limiter.admit("10.0.0.1") for _ in range(600))
    assert limiter.admit("10.0.0.1") is False


def test_rejected_requests_are_still_counted() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=2)

    limiter.admit("k")
    limiter.admit("k")
    limiter.admit("k")
    blocked = limiter.consume("k")

    assert blocked.allowed is False
    assert blocked.count == 4
    assert blocked.remaining == 0
    assert limiter.count("k") == 4


def test_consume_reports_remaining_budget() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=3)

    first = limiter.consume("k")
    assert first.allowed is True
    assert first.count == 1
    assert first.remaining == 2
    assert first.limit == 3

    limiter.consume("k")
    last = limiter.consume("k")
    assert last.allowed is True
    assert last.remaining == 0


def test_reset_readmits_client_at_limit() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=1)

    assert limiter.admit("k") is True
    assert limiter.admit("k") is False

    limiter.reset()

    assert limiter.count("k") == 0
    assert limiter.admit("k") is True


def test_reset_discards_every_key_and_stamps_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=5, clock=clock)
    for key in ("a", "b", "c"):
        limiter.admit(key)
    assert limiter.size() == 3
    assert limiter.window_started_at == 1000.0

    clock.return_value = 1060.0
    limiter.reset()

    assert limiter.size() == 0
    assert limiter.window_started_at == 1060.0
    assert limiter.consume("a").window_started_at == 1060.0


def test_isolated_by_key() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=1)

    assert limiter.admit("k1") is True
    assert limiter.admit("k1") is False

    assert limiter.admit("k2") is True


def test_empty_client_id_is_a_shared_bucket() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=2)

    assert limiter.admit("") is True
    assert limiter.admit("") is True
    assert limiter.admit("") is False
    assert limiter.admit("10.0.0.1") is True


def test_invalid_constructor_args() -> None:
    with pytest.raises(ValueError):
        InMemoryFixedWindowRateLimiter(limit=0)


@pytest.mark.parametrize("calls", [50, 600, 750])
def test_concurrent_admits_never_lose_increments(calls: int) -> None:
    """Same-key admits from many threads: exactly min(N, limit) succeed."""
    limiter = InMemoryFixedWindowRateLimiter(limit=600)
    barrier = threading.Barrier(16)

    def _admit_batch(batch: int) -> list[bool]:
        barrier.wait()
        return [limiter.admit("same-client") for _ in range(batch)]

    per_worker, extra = divmod(calls, 16)
    batches = [per_worker + (1 if i < extra else 0) for i in range(16)]
    with ThreadPoolExecutor(max_workers=16) as pool:
        results = [ok for batch in pool.map(_admit_batch, batches) for ok in batch]

    assert len(results) == calls
    assert results.count(True) == min(calls, 600)
    assert limiter.count("same-client") == calls


def test_concurrent_admits_respect_remaining_quota() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=100)
    for _ in range(90):
        limiter.admit("k")

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: limiter.admit("k"), range(40)))

    assert results.count(True) == 10


def test_reset_racing_admits_swaps_whole_store() -> None:
    """Each key's count either grows by one or restarts at one after a reset."""
    limiter = InMemoryFixedWindowRateLimiter(limit=10_000)
    stop = threading.Event()

    def _resetter() -> None:
        while not stop.is_set():
            limiter.reset()

    def _admitter(worker: int) -> list[int]:
        key = f"client-{worker}"
        return [limiter.consume(key).count for _ in range(2_000)]

    resetter = threading.Thread(target=_resetter)
    resetter.start()
    try:
        with ThreadPoolExecutor(max_workers=4) as pool:
            sequences = list(pool.map(_admitter, range(4)))
    finally:
        stop.set()
        resetter.join()

    for counts in sequences:
        assert counts[0] == 1
        for previous, current in zip(counts, counts[1:]):
            assert current in (previous + 1, 1)


@pytest.mark.asyncio
async def test_concurrent_tasks_share_one_counter() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=5)

    async def _admit() -> bool:
        await asyncio.sleep(0)
        return limiter.admit("k")

    results = await asyncio.gather(*(_admit() for _ in range(8)))

    assert results.count(True) == 5
    assert results.count(False) == 3

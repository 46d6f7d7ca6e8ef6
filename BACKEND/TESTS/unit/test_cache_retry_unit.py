# Руководство к файлу (TESTS/unit/test_cache_retry_unit.py)
# Назначение:
# - Юнит-тесты TTL-кэша и помощников повторных попыток.

from __future__ import annotations

import pytest

from BACKEND.SEVICES.cache import TTLCache
from BACKEND.SEVICES.retry import RetryAfter, backoff_delay, best_effort, retry_async


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_ttl_cache_expires_entries():
    clock = FakeClock()
    cache = TTLCache(10, clock=clock)
    cache.set("a", 1)
    assert cache.get("a") == 1
    clock.now += 9.9
    assert "a" in cache
    clock.now += 0.2
    assert cache.get("a") is None
    assert len(cache) == 0


def test_ttl_cache_delete_prefix_only_touches_matching_keys():
    cache = TTLCache(60)
    cache.set("menu:1:r2", "x")
    cache.set("menu:1:telegram", "y")
    cache.set("menu:2:r2", "z")
    assert cache.delete_prefix("menu:1:") == 2
    assert cache.get("menu:2:r2") == "z"
    assert cache.delete("menu:2:r2") is True
    assert cache.delete("menu:2:r2") is False


def test_ttl_cache_evicts_least_recently_used_over_bound():
    cache = TTLCache(60, max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    # чтение освежает "a", вытесняться должен "b"
    assert cache.get("a") == 1
    cache.set("c", 3)
    assert len(cache) == 2
    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3


def test_ttl_cache_overwrite_does_not_grow_past_bound():
    cache = TTLCache(60, max_entries=3)
    for i in range(10):
        cache.set("same", i)
    for key in ("x", "y", "z", "w"):
        cache.set(key, key)
    assert len(cache) == 3
    assert cache.get("same") is None


def test_ttl_cache_set_sweeps_expired_entries_never_read_again():
    clock = FakeClock()
    cache = TTLCache(10, clock=clock)
    for i in range(5):
        cache.set(f"old{i}", i)
    clock.now += 11
    cache.set("fresh", "v")
    assert len(cache) == 1
    assert cache.get("fresh") == "v"


def test_ttl_cache_rejects_non_positive_bound():
    with pytest.raises(ValueError):
        TTLCache(10, max_entries=0)


def test_backoff_delay_is_exponential_and_capped():
    assert backoff_delay(1, base=1.0, cap=5.0) == 1.0
    assert backoff_delay(2, base=1.0, cap=5.0) == 2.0
    assert backoff_delay(3, base=1.0, cap=5.0) == 4.0
    assert backoff_delay(10, base=1.0, cap=5.0) == 5.0


@pytest.mark.asyncio
async def test_retry_async_retries_until_success():
    sleeps = []
    calls = {"n": 0}

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    async def flaky() -> str:
        calls["n"] += 1
        if calls["n"] < 3:
            raise ConnectionError("boom")
        return "ok"

    result = await retry_async(flaky, attempts=3, retry_on=(ConnectionError,), sleep=fake_sleep)
    assert result == "ok"
    assert calls["n"] == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_async_honours_retry_after_and_reraises_last_error():
    sleeps = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    async def limited() -> None:
        raise RetryAfter(3)

    with pytest.raises(RetryAfter):
        await retry_async(limited, attempts=2, retry_on=(RetryAfter,), sleep=fake_sleep)
    assert sleeps == [3.0]


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_other_errors():
    calls = {"n": 0}

    async def broken() -> None:
        calls["n"] += 1
        raise KeyError("nope")

    with pytest.raises(KeyError):
        await retry_async(broken, attempts=3, retry_on=(ConnectionError,))
    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_retry_async_single_attempt_and_invalid_attempts():
    calls = {"n": 0}

    async def flaky() -> None:
        calls["n"] += 1
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        await retry_async(flaky, attempts=1, retry_on=(ConnectionError,))
    assert calls["n"] == 1

    with pytest.raises(ValueError):
        await retry_async(flaky, attempts=0, retry_on=(ConnectionError,))
    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_best_effort_swallows_and_returns_none():
    async def broken() -> int:
        raise RuntimeError("x")

    async def fine() -> int:
        return 7

    assert await best_effort(broken(), "broken") is None
    assert await best_effort(fine(), "fine") == 7

from __future__ import annotations

import math

import fakeredis
import pytest
from redis import ConnectionError as RedisConnectionError

from mathcache.engine import SequenceEngine, seed_store
from mathcache.sequences import FACTORIAL
from mathcache.store import InMemoryStore, RedisStore, StorageError, Store


class _BrokenRedis:
    """Client whose every command fails as if the server went away."""

    def _fail(self, *args, **kwargs):  # noqa: ANN002, ANN003, ANN202
        raise RedisConnectionError("connection refused")

    get = set = exists = ping = scan_iter = delete = _fail


@pytest.fixture()
def redis_client() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


def test_in_memory_store_round_trip() -> None:
    store = InMemoryStore({0: 0, 1: 1})
    assert isinstance(store, Store)
    assert store.get(1) == 1
    assert store.get(2) is None
    assert not store.contains_key(2)

    store.set(2, 1)
    assert store.contains_key(2)
    assert 2 in store
    assert len(store) == 3
    assert list(store) == [0, 1, 2]
    assert store.snapshot() == {0: 0, 1: 1, 2: 1}


def test_redis_store_uses_prefixed_decimal_keys(redis_client) -> None:
    store = RedisStore(redis_client, "fibonacci")
    assert isinstance(store, Store)
    big = 2**200 + 7
    store.set(300, big)

    assert redis_client.get("fibonacci:300") == str(big)
    assert store.contains_key(300)
    assert store.get(300) == big
    assert store.get(301) is None
    assert not store.contains_key(301)


def test_redis_store_prefixes_do_not_collide(redis_client) -> None:
    fib = RedisStore(redis_client, "fibonacci")
    fact = RedisStore(redis_client, "factorial")
    fib.set(0, 0)
    fact.set(0, 1)

    assert fib.get(0) == 0
    assert fact.get(0) == 1


def test_redis_store_rejects_corrupt_value(redis_client) -> None:
    redis_client.set("factorial:4", "twenty-four")
    store = RedisStore(redis_client, "factorial")

    with pytest.raises(StorageError, match="factorial:4"):
        store.get(4)


def test_redis_store_wraps_backend_failures() -> None:
    store = RedisStore(_BrokenRedis(), "fibonacci")  # type: ignore[arg-type]

    with pytest.raises(StorageError) as excinfo:
        store.get(3)
    assert isinstance(excinfo.value.__cause__, RedisConnectionError)
    with pytest.raises(StorageError):
        store.set(3, 2)
    with pytest.raises(StorageError):
        store.contains_key(3)
    with pytest.raises(StorageError):
        store.clear_prefix()
    assert store.ping() is False


def test_clear_prefix_only_touches_own_keys(redis_client) -> None:
    fib = RedisStore(redis_client, "fibonacci")
    fact = RedisStore(redis_client, "factorial")
    for index in range(5):
        fib.set(index, index)
    fact.set(0, 1)

    assert fib.clear_prefix() == 5
    assert fib.clear_prefix() == 0
    assert not fib.contains_key(0)
    assert fact.get(0) == 1


def test_redis_store_requires_prefix(redis_client) -> None:
    with pytest.raises(ValueError):
        RedisStore(redis_client, "  ")


def test_redis_store_ping(redis_client) -> None:
    assert RedisStore(redis_client, "fibonacci").ping() is True


@pytest.mark.parametrize("raw", [" 42 ", "4_2", "-7", "٤٢", "+5"])
def test_redis_store_rejects_loosely_formatted_values(redis_client, raw: str) -> None:
    redis_client.set("fibonacci:9", raw)
    store = RedisStore(redis_client, "fibonacci")

    with pytest.raises(StorageError, match="fibonacci:9"):
        store.get(9)


def test_redis_store_round_trips_terms_beyond_digit_limit(redis_client) -> None:
    store = RedisStore(redis_client, "factorial")
    term = math.factorial(2000)
    assert len(str(term)) > 4300

    store.set(2000, term)
    assert store.get(2000) == term
    assert redis_client.get("factorial:2000") == str(term)


def test_factorial_beyond_digit_limit_through_redis(redis_client) -> None:
    store = RedisStore(redis_client, "factorial")
    seed_store(FACTORIAL, store)

    result = SequenceEngine(FACTORIAL, store).resolve(2000)

    assert result == (math.factorial(2000), False)
    assert store.get(1999) == math.factorial(1999)
    assert SequenceEngine(FACTORIAL, store).resolve(2000) == (
        math.factorial(2000),
        True,
    )

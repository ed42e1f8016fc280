"""Tests for the Redis signal cache, with an AsyncMock standing in for Redis."""

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from spotscore.gateway.cache import SignalCache, location_key, station_key


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get.return_value = None
    return client


@pytest.fixture
def cache(redis_client):
    return SignalCache(client=redis_client)


def test_location_key_rounds_coordinates():
    assert location_key("drought", 45.7641, 4.8357, 2) == "signals:drought:45.76:4.84"
    assert location_key("cadastre", 45.76412, 4.83571, 4) == "signals:cadastre:45.7641:4.8357"


def test_station_key():
    assert station_key("water_level", "V3000015") == "signals:water_level:V3000015"


async def test_hit_skips_fetch(cache, redis_client):
    redis_client.get.return_value = json.dumps({"level": "alerte"})
    fetcher = AsyncMock()

    payload = await cache.get_or_fetch("signals:drought:45.76:4.84", fetcher, 3600)

    assert payload == {"level": "alerte"}
    fetcher.assert_not_awaited()
    redis_client.setex.assert_not_awaited()


async def test_miss_fetches_and_stores(cache, redis_client):
    fetcher = AsyncMock(return_value={"level": "crise"})

    payload = await cache.get_or_fetch("signals:drought:45.76:4.84", fetcher, 3600)

    assert payload == {"level": "crise"}
    redis_client.setex.assert_awaited_once_with(
        name="signals:drought:45.76:4.84", time=3600, value=json.dumps({"level": "crise"})
    )


async def test_unavailable_result_is_not_stored(cache, redis_client):
    fetcher = AsyncMock(return_value=None)

    assert await cache.get_or_fetch("signals:weather:grid:45.8:4.8", fetcher, 1800) is None
    redis_client.setex.assert_not_awaited()


async def test_empty_answers_are_stored(cache, redis_client):
    await cache.get_or_fetch("signals:biological_indices:06000123", AsyncMock(return_value=[]), 86400)
    redis_client.setex.assert_awaited_once()


async def test_disabled_cache_is_pass_through():
    cache = SignalCache(client=None)
    fetcher = AsyncMock(return_value={"found": False})

    assert cache.enabled is False
    assert await cache.get_or_fetch("k", fetcher, 60) == {"found": False}
    assert await cache.get_or_fetch("k", fetcher, 60) == {"found": False}
    assert fetcher.await_count == 2


async def test_unreachable_redis_disables_cache(cache, redis_client):
    redis_client.ping.side_effect = RedisConnectionError("refused")

    await cache.connect()

    assert cache.enabled is False
    fetcher = AsyncMock(return_value={"a": 1})
    assert await cache.get_or_fetch("k", fetcher, 60) == {"a": 1}
    redis_client.get.assert_not_awaited()


async def test_read_error_falls_through_to_fetch(cache, redis_client):
    redis_client.get.side_effect = RedisError("timeout")
    fetcher = AsyncMock(return_value={"a": 1})

    assert await cache.get_or_fetch("k", fetcher, 60) == {"a": 1}
    fetcher.assert_awaited_once()


async def test_write_error_still_returns_payload(cache, redis_client):
    redis_client.setex.side_effect = RedisError("read only replica")

    assert await cache.get_or_fetch("k", AsyncMock(return_value={"a": 1}), 60) == {"a": 1}
    assert await cache.set("k", {"a": 1}, 60) is False

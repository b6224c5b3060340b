from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core import redis as redis_module
from app.core.redis import cache_delete_pattern, cache_get_json, cache_set_json


@pytest.fixture
def fake_redis(monkeypatch):
    client = AsyncMock()
    monkeypatch.setattr(redis_module, "redis_client", client)
    return client


async def test_get_returns_decoded_json(fake_redis):
    fake_redis.get.return_value = '{"percent": 50}'

    assert await cache_get_json("progress:1:2") == {"percent": 50}


async def test_redis_failure_is_a_miss(fake_redis):
    fake_redis.get.side_effect = RedisConnectionError("down")

    assert await cache_get_json("progress:1:2") is None


async def test_missing_client_is_a_miss(monkeypatch):
    monkeypatch.setattr(redis_module, "redis_client", None)

    assert await cache_get_json("progress:1:2") is None
    await cache_set_json("progress:1:2", {"a": 1}, 60)


async def test_set_failure_is_swallowed(fake_redis):
    fake_redis.setex.side_effect = RedisConnectionError("down")

    await cache_set_json("k", {"a": 1}, 60)


async def test_delete_pattern_walks_every_scan_page(fake_redis):
    fake_redis.scan.side_effect = [(7, ["analytics:a", "analytics:b"]), (0, ["analytics:c"])]
    fake_redis.delete.side_effect = [2, 1]

    deleted = await cache_delete_pattern("analytics:*")

    assert deleted == 3
    assert fake_redis.scan.await_args_list[1].args == (7,)

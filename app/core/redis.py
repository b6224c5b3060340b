import json
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Global Redis client instance, created in the application lifespan
redis_client: Redis | None = None

ANALYTICS_CACHE_PATTERN = "analytics:*"


async def get_redis() -> Redis:
    """
    Get the Redis client instance.

    Raises:
        RuntimeError: If Redis client is not initialized
    """
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized")
    return redis_client


def student_course_key(course_id: Any, user_id: Any) -> str:
    return f"course:student:{course_id}:{user_id}"


def progress_summary_key(user_id: Any, course_id: Any) -> str:
    return f"progress:{user_id}:{course_id}"


async def cache_get_json(key: str) -> Any | None:
    """
    Read a JSON value from the cache.

    A missing client, a missing key or a Redis failure all count as a miss;
    callers always fall back to the database.
    """
    if redis_client is None:
        return None
    try:
        data = await redis_client.get(key)
    except RedisError as e:
        logger.warning("cache_get_failed key=%s error=%s", key, e)
        return None
    if not data:
        return None
    try:
        return json.loads(data)
    except (TypeError, json.JSONDecodeError):
        return None


async def cache_set_json(key: str, value: Any, ttl_seconds: int) -> None:
    """Store a JSON-serialisable value with a TTL."""
    if redis_client is None:
        return
    try:
        await redis_client.setex(key, ttl_seconds, json.dumps(value, default=str))
    except RedisError as e:
        logger.warning("cache_set_failed key=%s error=%s", key, e)


async def cache_delete(*keys: str) -> None:
    if redis_client is None or not keys:
        return
    try:
        await redis_client.delete(*keys)
    except RedisError as e:
        logger.warning("cache_delete_failed keys=%s error=%s", keys, e)


async def cache_delete_pattern(pattern: str) -> int:
    """
    Delete every key matching a glob pattern.

    Used for coarse invalidation, e.g. the whole ``analytics:*`` namespace
    after an enrollment rollup.

    Returns:
        Number of keys deleted
    """
    if redis_client is None:
        return 0
    cursor = 0
    deleted = 0
    try:
        while True:
            cursor, keys = await redis_client.scan(cursor, match=pattern, count=100)
            if keys:
                deleted += await redis_client.delete(*keys)
            if cursor == 0:
                break
    except RedisError as e:
        logger.warning("cache_delete_pattern_failed pattern=%s error=%s", pattern, e)
    return deleted

"""Optional Redis cache and event channel.

Everything here is best-effort: with no ``REDIS_URL`` every call is a no-op,
and a failing Redis is logged and otherwise ignored.
"""
import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from projecthub.config import settings

logger = logging.getLogger(__name__)

EVENTS_CHANNEL = "projecthub:events"

_client: aioredis.Redis | None = None


def organization_key(org_id: str) -> str:
    return f"projecthub:organization:{org_id}"


async def connect(url: str | None = None):
    global _client
    url = url or settings.REDIS_URL
    if not url:
        logger.info("REDIS_URL not set, cache disabled")
        return None
    _client = aioredis.from_url(url, decode_responses=True)
    logger.info("Cache client configured")
    return _client


async def close():
    global _client
    if _client is not None:
        try:
            await _client.aclose()
        except RedisError as e:
            logger.warning("Error closing cache client: %s", e)
        _client = None


def set_client(client):
    global _client
    _client = client


def get_client():
    return _client


async def get_json(key: str):
    if _client is None:
        return None
    try:
        raw = await _client.get(key)
    except (RedisError, OSError) as e:
        logger.warning("Cache get failed for %s: %s", key, e)
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Discarding undecodable cache entry %s", key)
        return None


async def set_json(key: str, value, ttl: int | None = None):
    if _client is None:
        return
    try:
        await _client.set(key, json.dumps(value, default=str), ex=ttl or settings.CACHE_TTL_SECONDS)
    except (RedisError, OSError) as e:
        logger.warning("Cache set failed for %s: %s", key, e)


async def invalidate(*keys: str):
    if _client is None or not keys:
        return
    try:
        await _client.delete(*keys)
    except (RedisError, OSError) as e:
        logger.warning("Cache invalidation failed for %s: %s", keys, e)


async def publish(event: str, **payload):
    if _client is None:
        return
    message = json.dumps({"event": event, **payload}, default=str)
    try:
        await _client.publish(EVENTS_CHANNEL, message)
    except (RedisError, OSError) as e:
        logger.warning("Publishing %s failed: %s", event, e)

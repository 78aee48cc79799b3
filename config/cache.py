# config/cache.py
from typing import Optional
from redis.asyncio import Redis, from_url
from config.settings import settings

_client: Optional[Redis] = None


async def get_redis() -> Redis:
    """
    Shared client for the local key/value store that backs the manifest cache
    and the identity record. Values are JSON text, so responses are decoded.
    """
    global _client
    if _client is None:
        _client = from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_keepalive=True,
            socket_timeout=5.0,
            health_check_interval=30,
        )
    return _client


async def warm_redis() -> bool:
    # The cache is best effort: an unreachable store is logged by the caller, not fatal.
    r = await get_redis()
    return bool(await r.ping())


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None

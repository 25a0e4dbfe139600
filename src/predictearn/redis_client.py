"""Optional Redis connection used by the rate limiter and the readiness probe.

The service runs without Redis: callers treat ``RuntimeError`` from
``get_redis`` as "not configured" and carry on.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

_client: redis.Redis | None = None


async def init_redis(url: str | None) -> None:
    """Create the shared client. An empty URL leaves Redis disabled."""
    global _client  # noqa: PLW0603
    if not url:
        _client = None
        return
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    if _client is None:
        msg = "Redis not initialized"
        raise RuntimeError(msg)
    return _client


async def count_in_window(key: str, window_seconds: int) -> int:
    """Increment a fixed-window counter and return its new value.

    The key expires one second after its window so stale windows clean themselves up.
    """
    pipe = get_redis().pipeline()
    pipe.incr(key)
    pipe.expire(key, window_seconds + 1)
    count, _ = await pipe.execute()
    return int(count)


async def redis_status() -> str:
    """``ok``, ``not configured`` or ``error: <type>`` for the readiness probe."""
    try:
        await get_redis().ping()
    except RuntimeError:
        return "not configured"
    except (RedisError, OSError) as exc:
        return f"error: {type(exc).__name__}"
    return "ok"

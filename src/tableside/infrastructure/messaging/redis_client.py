from __future__ import annotations

from functools import lru_cache

import redis

from tableside.config import get_settings


def redis_configured() -> bool:
    return bool(get_settings().redis_url)


def _redis_url() -> str:
    url = get_settings().redis_url
    if not url:
        raise RuntimeError("REDIS_URL is not set")
    return url


@lru_cache(maxsize=8)
def _build_client(redis_url: str, timeout_seconds: float) -> redis.Redis:
    return redis.Redis.from_url(
        redis_url,
        socket_connect_timeout=timeout_seconds,
        socket_timeout=timeout_seconds,
    )


def get_redis_client(timeout_seconds: float = 1.0) -> redis.Redis:
    return _build_client(_redis_url(), timeout_seconds)


def ping_redis(timeout_seconds: float = 1.0) -> bool | None:
    """None when Redis is not configured, else whether it answered PING."""
    if not redis_configured():
        return None
    try:
        return bool(get_redis_client(timeout_seconds).ping())
    except redis.RedisError:
        return False

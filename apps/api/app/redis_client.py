from __future__ import annotations

from redis import Redis

from .settings import settings


def get_redis_client() -> Redis:
    """Client for the Celery broker instance; short timeouts keep /ready from hanging."""
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_timeout_seconds,
        socket_timeout=settings.redis_timeout_seconds,
    )

"""Redis client factories shared by the event sink, the SSE relay and health checks."""

from __future__ import annotations

import ssl
from typing import Any

from redis import Redis
from redis.asyncio import Redis as AsyncRedis


def _normalize_url(url: str) -> str:
    # Upstash only accepts TLS connections.
    if ".upstash.io" in url and url.startswith("redis://"):
        return url.replace("redis://", "rediss://", 1)
    return url


def _uses_tls(url: str) -> bool:
    return url.startswith("rediss://") or ".upstash.io" in url


def create_redis_client(url: str, **kwargs: Any) -> Redis:
    """Create a Redis client with proper SSL configuration.

    Args:
        url: Redis connection URL (redis:// or rediss://)
        **kwargs: Additional arguments (decode_responses, socket_connect_timeout, etc.)

    Returns:
        Configured Redis client
    """
    url = _normalize_url(url)
    if _uses_tls(url):
        kwargs.setdefault("ssl_cert_reqs", ssl.CERT_NONE)
    return Redis.from_url(url, **kwargs)


def create_async_redis_client(url: str, **kwargs: Any) -> AsyncRedis:
    """asyncio flavour of create_redis_client, used by streaming endpoints."""
    url = _normalize_url(url)
    if _uses_tls(url):
        kwargs.setdefault("ssl_cert_reqs", ssl.CERT_NONE)
    return AsyncRedis.from_url(url, **kwargs)

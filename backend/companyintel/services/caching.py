from __future__ import annotations

import asyncio
import json
import re
from typing import Any

import redis
from .domain import normalize_domain
from ..core.config import get_settings

CACHE_KEY_PREFIX = "intel:v1:"


def record_cache_key(company_name: str | None, domain: str | None = None) -> str:
    """
    Company identity key: name lower-cased with whitespace runs as '-',
    plus the normalised domain when one is known.

        ("Acme Corp", None)          -> "intel:v1:acme-corp"
        ("Acme Corp", "www.acme.com") -> "intel:v1:acme-corp:acme.com"
    """
    host = normalize_domain(domain)
    name = re.sub(r"\s+", "-", (company_name or "").strip().lower())
    parts = [p for p in (name, host) if p]
    return CACHE_KEY_PREFIX + (":".join(parts) or "unknown")


def _get_sync_redis() -> redis.Redis | None:
    """
    Create a fresh sync Redis client per call; None when no REDIS_URL
    is configured (cache disabled).
    """
    settings = get_settings()
    if not settings.REDIS_URL:
        return None
    return redis.from_url(
        str(settings.REDIS_URL),
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
    )


def _cache_op(key: str, set_value: Any | None, ttl: int | None) -> Any:
    client = _get_sync_redis()
    if client is None:
        return None if set_value is None else set_value
    try:
        if set_value is None:
            # Read path
            val = client.get(key)
            if val is not None:
                return json.loads(val)
            return None

        # Write path
        serialized = json.dumps(set_value)
        if ttl is not None:
            client.set(key, serialized, ex=ttl)
        else:
            client.set(key, serialized)
        return set_value

    except (redis.RedisError, ValueError):
        return None
    finally:
        client.close()


async def cached_get(
    key: str,
    set_value: Any | None = None,
    ttl: int | None = None,
) -> Any:
    """
    Async TTL cache backed by Redis.

    Usage:

        value = await cached_get("k")                  # read
        await cached_get("k", set_value=value, ttl=60) # write with TTL

    - On read: returns cached value (deserialized JSON) or None if missing/expired.
    - On write: stores value (serialized JSON) with optional TTL and returns it.
    - Without REDIS_URL, or on any Redis error, behaves as a miss.

    The blocking client runs in a worker thread so a slow Redis never
    stalls the event loop.
    """
    return await asyncio.to_thread(_cache_op, key, set_value, ttl)

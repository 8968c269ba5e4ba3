"""
Redis caching layer for HUD limit lookups.

TTLs:
  - Income limits by county/state/year: 24 hours
  - MTSP limits by FIPS/year: 24 hours
  - County lists by state: 7 days

Redis is optional: with no ``redis_url`` or an unreachable server every
call is a miss and writes are dropped.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None

# TTLs in seconds
TTL_INCOME_LIMITS = 86400   # 24 hours
TTL_COUNTIES = 604800       # 7 days


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis client. Returns None if Redis is not configured."""
    global _redis_client
    if _redis_client is not None:
        return _redis_client

    redis_url = settings.redis_url
    if not redis_url:
        return None

    try:
        _redis_client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=3,
        )
        await _redis_client.ping()
        return _redis_client
    except Exception as e:
        logger.warning("Redis unavailable at %s: %s", redis_url, e)
        _redis_client = None
        return None


def reset_client() -> None:
    """Forget the cached client (tests, settings changes)."""
    global _redis_client
    _redis_client = None


def _make_key(prefix: str, identifier: str) -> str:
    return f"ami_compliance:{prefix}:{identifier}"


def _normalize_county(county: str) -> str:
    return " ".join(county.lower().split())


async def cache_get(prefix: str, identifier: str) -> Optional[dict]:
    """Get a cached value. Returns None on miss or Redis unavailable."""
    r = await get_redis()
    if not r:
        return None
    try:
        val = await r.get(_make_key(prefix, identifier))
        if val:
            return json.loads(val)
    except Exception as e:
        logger.debug("Cache read failed for %s:%s: %s", prefix, identifier, e)
    return None


async def cache_set(prefix: str, identifier: str, data, ttl: int = TTL_INCOME_LIMITS) -> bool:
    """Set a cached value. Returns True on success."""
    r = await get_redis()
    if not r:
        return False
    try:
        await r.setex(_make_key(prefix, identifier), ttl, json.dumps(data, default=str))
        return True
    except Exception as e:
        logger.debug("Cache write failed for %s:%s: %s", prefix, identifier, e)
        return False


# ──────────────────────────────────────────────────────────────────
# CONVENIENCE FUNCTIONS
# ──────────────────────────────────────────────────────────────────

def income_limits_key(county: str, state: str, year: int) -> str:
    return f"{state.upper()}:{_normalize_county(county)}:{year}"


async def get_cached_income_limits(county: str, state: str, year: int) -> Optional[dict]:
    return await cache_get("income_limits", income_limits_key(county, state, year))


async def set_cached_income_limits(county: str, state: str, year: int, data: dict):
    await cache_set("income_limits", income_limits_key(county, state, year), data, TTL_INCOME_LIMITS)


async def get_cached_counties(state: str) -> Optional[list]:
    result = await cache_get("counties", state.upper())
    if result:
        return result.get("counties")
    return None


async def set_cached_counties(state: str, counties: list):
    await cache_set("counties", state.upper(), {"counties": counties}, TTL_COUNTIES)

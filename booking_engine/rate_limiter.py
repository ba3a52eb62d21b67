"""
Hybrid in-memory + Redis rate limiting for public booking endpoints.

Counts are kept in process memory and written through to Redis every few
seconds, so several workers converge on a shared count without a Redis round
trip per request.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from . import config

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# {key: {"count": int, "reset_time": int, "last_redis_sync": int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10
MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0

REDIS_CONNECTION_OPTIONS = {
    "decode_responses": True,
    "socket_connect_timeout": 5,
    "socket_timeout": 5,
    "retry_on_timeout": True,
    "health_check_interval": 30,
    "max_connections": 20,
}


def _mask_url(redis_url: str) -> str:
    if "@" not in redis_url:
        return "****"
    credentials, host = redis_url.split("@", 1)
    return f"{credentials.split(':')[0]}:****@{host}"


def get_redis_client() -> redis.Redis:
    """
    Get or create the shared Redis client.

    REDIS_URL wins when set; otherwise REDIS_HOST/PORT/PASSWORD/DB/SSL are used.
    """
    global redis_client

    if redis_client is not None:
        return redis_client

    redis_url = os.getenv("REDIS_URL")
    try:
        if redis_url:
            logger.info(f"📡 Connecting to Redis via URL: {_mask_url(redis_url)}")
            client = redis.from_url(redis_url, **REDIS_CONNECTION_OPTIONS)
        else:
            redis_host = os.getenv("REDIS_HOST", "localhost")
            redis_port = int(os.getenv("REDIS_PORT", "6379"))
            redis_ssl = os.getenv("REDIS_SSL", "false").lower() == "true"
            logger.info(
                f"📡 Connecting to Redis at {redis_host}:{redis_port} "
                f"({'SSL' if redis_ssl else 'no SSL'})"
            )
            client = redis.Redis(
                host=redis_host,
                port=redis_port,
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=redis_ssl,
                **REDIS_CONNECTION_OPTIONS,
            )
        client.ping()
    except redis.RedisError as e:
        logger.error(f"❌ Failed to connect to Redis: {e}")
        raise

    logger.info("✅ Redis connected for rate limiting")
    redis_client = client
    return redis_client


def reset_rate_limits() -> None:
    """Forget every in-memory counter"""
    global last_cleanup_time
    with cache_lock:
        memory_cache.clear()
    last_cleanup_time = 0


def cleanup_expired_cache():
    """Remove expired entries from memory cache"""
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [k for k, v in memory_cache.items() if current_time >= v.get("reset_time", 0)]
        for k in expired_keys:
            del memory_cache[k]

        if expired_keys:
            logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")

    last_cleanup_time = current_time


def _load_entry(key: str, window_seconds: int, client: redis.Redis, current_time: int) -> dict:
    """Seed a memory entry from Redis, or start a fresh window"""
    try:
        redis_count = client.get(key)
        redis_ttl = client.ttl(key)
    except redis.RedisError as e:
        logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")
        redis_count, redis_ttl = None, -1

    if redis_count and redis_ttl > 0:
        return {
            "count": int(redis_count),
            "reset_time": current_time + redis_ttl,
            "last_redis_sync": current_time,
        }
    return {"count": 0, "reset_time": current_time + window_seconds, "last_redis_sync": current_time}


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """
    Count one request against `key`.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())
    cleanup_expired_cache()

    with cache_lock:
        if key not in memory_cache:
            memory_cache[key] = _load_entry(key, window_seconds, client, current_time)
        entry = memory_cache[key]

        if current_time >= entry["reset_time"]:
            entry["count"] = 0
            entry["reset_time"] = current_time + window_seconds
            entry["last_redis_sync"] = 0

        is_allowed = entry["count"] < limit
        if is_allowed:
            entry["count"] += 1

        if current_time - entry.get("last_redis_sync", 0) >= MEMORY_CACHE_SYNC_INTERVAL:
            try:
                client.set(key, entry["count"], ex=window_seconds)
                entry["last_redis_sync"] = current_time
                logger.debug(f"📡 Synced {key} to Redis: {entry['count']}/{limit}")
            except redis.RedisError as e:
                logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

        ttl = entry["reset_time"] - current_time
        return is_allowed, entry["count"], max(0, ttl)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
    use_ip: bool = True,
):
    """
    FastAPI dependency for rate limiting.

    Fails closed: if Redis cannot be reached the request is refused with 503.
    """
    if not config.RATE_LIMIT_ENABLED:
        return

    key = f"{key_prefix}:{client_ip(request)}" if use_ip else f"{key_prefix}:global"

    try:
        client = get_redis_client()
    except redis.RedisError as e:
        logger.warning("🔒 Denying request, rate limiting unavailable (fail-closed mode)")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e

    is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)

    if not is_allowed:
        logger.warning(f"🚫 Rate limit exceeded for {key} - {current_count}/{limit} requests used")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after": ttl,
                "limit": limit,
                "window_seconds": window_seconds,
            },
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count
    request.state.rate_limit_limit = limit
    request.state.rate_limit_reset = int(time.time()) + ttl


def create_rate_limiter(
    limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_ip: bool = True
):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        booking_rate_limit = create_rate_limiter(limit=20, window_seconds=60, key_prefix="booking")

        @router.post("/bookings")
        async def create_booking(data: BookingCreate, _: None = Depends(booking_rate_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix, use_ip)

    return rate_limiter

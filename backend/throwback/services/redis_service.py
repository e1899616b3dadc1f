"""Redis service for catalog response caching and rate limiting."""

import redis
import json
from typing import Any, Callable, Optional, TypeVar

from throwback.config import settings
from throwback.services.logging_service import app_logger

T = TypeVar("T")

# Redis client (singleton); stays None when REDIS_URL is empty or unreachable
redis_client: Optional[redis.Redis] = None
_connection_failed = False


def get_redis_client() -> Optional[redis.Redis]:
    global redis_client, _connection_failed

    if redis_client is None and not _connection_failed and settings.REDIS_URL:
        try:
            client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30
            )
            client.ping()
            redis_client = client
            app_logger.info("Redis connected")
        except (redis.RedisError, ValueError) as e:
            # One attempt per process; the API keeps working without Redis
            app_logger.warning("Redis unavailable, caching and rate limiting disabled", error=str(e))
            _connection_failed = True

    return redis_client


def is_redis_available() -> bool:
    client = get_redis_client()
    if client is None:
        return False

    try:
        return bool(client.ping())
    except redis.RedisError:
        return False


class RedisCache:
    """
    JSON values under a key prefix.

    Every operation degrades to a miss (None, False or 0) when Redis is down,
    so callers never handle Redis errors themselves.
    """

    def __init__(self, prefix: str = "cache"):
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def _run(self, operation: str, key: str, default: T, action: Callable[[redis.Redis], T]) -> T:
        client = get_redis_client()
        if client is None:
            return default
        try:
            return action(client)
        except redis.RedisError as e:
            app_logger.warning("Redis operation failed", operation=operation, key=key, error=str(e))
            return default

    def get(self, key: str) -> Optional[Any]:
        def action(client):
            value = client.get(self._key(key))
            return json.loads(value) if value else None
        return self._run("get", key, None, action)

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        return self._run("set", key, False, lambda client: bool(client.setex(self._key(key), ttl, json.dumps(value))))

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key under this prefix matching a glob pattern, e.g. ``response:*``."""
        def action(client):
            keys = list(client.scan_iter(match=self._key(pattern)))
            return client.delete(*keys) if keys else 0
        return self._run("delete_pattern", pattern, 0, action)

    def increment(self, key: str, ttl: Optional[int] = None) -> Optional[int]:
        """Increment a counter, starting its TTL when the counter is created."""
        def action(client):
            full_key = self._key(key)
            value = client.incr(full_key)
            if ttl and value == 1:
                client.expire(full_key, ttl)
            return value
        return self._run("increment", key, None, action)

    def ttl(self, key: str) -> Optional[int]:
        def action(client):
            remaining = client.ttl(self._key(key))
            return remaining if remaining >= 0 else None
        return self._run("ttl", key, None, action)


class RateLimiter:
    """Fixed window limiter counting requests per client identifier."""

    def __init__(self, max_requests: int = 60, window_seconds: int = 60, prefix: str = "ratelimit"):
        self.cache = RedisCache(prefix=prefix)
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def is_allowed(self, identifier: str) -> bool:
        current = self.cache.increment(identifier, ttl=self.window_seconds)
        # No Redis: requests are never limited
        return current is None or current <= self.max_requests

    def get_remaining(self, identifier: str) -> int:
        current = self.cache.get(identifier)
        return self.max_requests if current is None else max(0, self.max_requests - int(current))

    def get_reset_seconds(self, identifier: str) -> int:
        """Seconds until the current window closes."""
        remaining = self.cache.ttl(identifier)
        return self.window_seconds if remaining is None else remaining


def invalidate_catalog_cache() -> int:
    """Drop cached catalog responses after videos or podcasts change."""
    deleted = api_cache.delete_pattern("response:*")
    if deleted:
        app_logger.info("Catalog cache invalidated", keys=deleted)
    return deleted


# Global instances
api_cache = RedisCache(prefix="api")
rate_limiter = RateLimiter(max_requests=settings.RATE_LIMIT_PER_MINUTE, window_seconds=60)
# Login, registration and password reset: 10 requests per 15 minutes per client
auth_rate_limiter = RateLimiter(max_requests=10, window_seconds=15 * 60, prefix="ratelimit:auth")

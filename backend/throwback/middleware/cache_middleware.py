"""Catalog response caching and rate limiting middleware."""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable, List, Optional, Pattern
import hashlib
import re

from throwback.services.redis_service import api_cache, is_redis_available, RateLimiter
from throwback.services.logging_service import app_metrics


class CacheMiddleware(BaseHTTPMiddleware):
    """
    Cache anonymous catalog listings in Redis.

    Only GET requests whose path matches one of ``cache_patterns`` and that
    carry no Authorization header are cached, since signed-in responses
    include the caller's like and bookmark flags. Detail routes are left out
    of the patterns because they count views.
    """

    def __init__(self, app, cache_patterns: List[str], default_ttl: int = 60):
        super().__init__(app)
        self.default_ttl = default_ttl
        self.cache_patterns: List[Pattern] = [re.compile(pattern) for pattern in cache_patterns]

    def _should_cache(self, request: Request) -> bool:
        if request.method != "GET" or "authorization" in request.headers:
            return False
        return any(pattern.match(request.url.path) for pattern in self.cache_patterns)

    @staticmethod
    def _cache_key(request: Request) -> str:
        digest = hashlib.sha256(f"{request.url.path}?{request.url.query}".encode()).hexdigest()
        return f"response:{digest}"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self._should_cache(request) or not is_redis_available():
            return await call_next(request)

        cache_key = self._cache_key(request)
        cached = api_cache.get(cache_key)
        if cached:
            app_metrics.increment_cache(hit=True)
            return Response(
                content=cached["content"],
                status_code=200,
                headers={"X-Cache": "HIT"},
                media_type=cached["media_type"]
            )

        app_metrics.increment_cache(hit=False)
        response = await call_next(request)
        if response.status_code != 200:
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        api_cache.set(
            cache_key,
            {"content": body.decode("utf-8"), "media_type": response.media_type},
            ttl=self.default_ttl
        )

        headers = {key: value for key, value in response.headers.items() if key.lower() != "content-length"}
        headers["X-Cache"] = "MISS"
        return Response(content=body, status_code=200, headers=headers, media_type=response.media_type)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP rate limiting.

    Every request counts against ``limiter``; requests under ``auth_prefix``
    (login, registration, password reset) also count against the stricter
    ``auth_limiter``.
    """

    def __init__(
        self,
        app,
        limiter: RateLimiter,
        auth_limiter: Optional[RateLimiter] = None,
        auth_prefix: str = "/api/auth"
    ):
        super().__init__(app)
        self.limiter = limiter
        self.auth_limiter = auth_limiter
        self.auth_prefix = auth_prefix

    @staticmethod
    def _identifier(request: Request) -> str:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    @staticmethod
    def _headers(limiter: RateLimiter, identifier: str) -> dict:
        return {
            "X-RateLimit-Limit": str(limiter.max_requests),
            "X-RateLimit-Remaining": str(limiter.get_remaining(identifier)),
            "X-RateLimit-Reset": str(limiter.get_reset_seconds(identifier)),
        }

    def _too_many_requests(self, limiter: RateLimiter, identifier: str) -> JSONResponse:
        retry_after = limiter.get_reset_seconds(identifier)
        return JSONResponse(
            status_code=429,
            content={"detail": "Rate limit exceeded", "retry_after": retry_after},
            headers={**self._headers(limiter, identifier), "Retry-After": str(retry_after)}
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not is_redis_available():
            return await call_next(request)

        identifier = self._identifier(request)
        limiters = [self.limiter]
        if self.auth_limiter and request.url.path.startswith(self.auth_prefix):
            limiters.insert(0, self.auth_limiter)

        for limiter in limiters:
            if not limiter.is_allowed(identifier):
                return self._too_many_requests(limiter, identifier)

        response = await call_next(request)
        response.headers.update(self._headers(self.limiter, identifier))
        return response

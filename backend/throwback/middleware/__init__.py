"""Middleware modules for FastAPI application."""

from throwback.middleware.cache_middleware import CacheMiddleware, RateLimitMiddleware
from throwback.middleware.security_middleware import (
    SecurityHeadersMiddleware,
    HTTPSRedirectMiddleware,
    RequestValidationMiddleware,
    AuditLogMiddleware
)

__all__ = [
    "CacheMiddleware",
    "RateLimitMiddleware",
    "SecurityHeadersMiddleware",
    "HTTPSRedirectMiddleware",
    "RequestValidationMiddleware",
    "AuditLogMiddleware"
]

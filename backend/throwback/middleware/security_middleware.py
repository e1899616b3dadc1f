"""Security headers, request validation and audit logging middleware."""

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable, Dict
from urllib.parse import unquote, urlparse
import time
import uuid

from throwback.config import settings
from throwback.services.logging_service import app_logger, app_metrics

# Account and admin responses must never be stored by shared caches
PRIVATE_PREFIXES = ("/api/auth", "/api/users", "/api/admin", "/api/memories")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to every response.

    The content policy allows the YouTube and Vimeo players used by videos,
    podcasts and live streams, and images from any HTTPS host (thumbnails).
    """

    headers: Dict[str, str] = {
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Content-Security-Policy": "; ".join([
            "default-src 'self'",
            "img-src 'self' data: https:",
            "media-src 'self' https:",
            "frame-src https://www.youtube.com https://www.youtube-nocookie.com https://player.vimeo.com",
            "frame-ancestors 'none'",
            "form-action 'self'",
        ]),
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=()",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(self.headers)

        if request.url.path.startswith(PRIVATE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, private"
            response.headers["Pragma"] = "no-cache"

        return response


class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
    """Send plain HTTP requests to HTTPS when ENVIRONMENT is production."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if settings.ENVIRONMENT != "production" or request.url.scheme != "http":
            return await call_next(request)

        return JSONResponse(
            status_code=status.HTTP_301_MOVED_PERMANENTLY,
            content={"detail": "Please use HTTPS"},
            headers={"Location": str(request.url.replace(scheme="https"))}
        )


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """
    Reject requests before they reach the routers.

    - bodies above ``max_content_length`` (photo uploads are checked again
      by the user service against MAX_UPLOAD_SIZE)
    - in production, Host headers other than the API and frontend hosts
    - URLs carrying path traversal or script payloads
    """

    suspicious_patterns = ("../", "..\\", "<script", "javascript:", "vbscript:")

    def __init__(self, app, max_content_length: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_content_length = max_content_length
        self.allowed_hosts = {"localhost", "127.0.0.1"} | {
            urlparse(url).hostname for url in (settings.API_BASE_URL, settings.FRONTEND_URL)
            if urlparse(url).hostname
        }

    def _reject(self, status_code: int, detail: str, request: Request) -> JSONResponse:
        app_logger.warning("Request rejected", path=request.url.path, reason=detail)
        return JSONResponse(status_code=status_code, content={"detail": detail})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length", "")
        if content_length.isdigit() and int(content_length) > self.max_content_length:
            return self._reject(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                f"Request body too large. Maximum: {self.max_content_length} bytes",
                request
            )

        host_name = request.headers.get("host", "").split(":")[0]
        if settings.ENVIRONMENT == "production" and host_name and host_name not in self.allowed_hosts:
            return self._reject(status.HTTP_400_BAD_REQUEST, "Invalid host header", request)

        target = unquote(f"{request.url.path}?{request.url.query}").lower()
        if any(pattern in target for pattern in self.suspicious_patterns):
            return self._reject(status.HTTP_400_BAD_REQUEST, "Invalid request path", request)

        return await call_next(request)


class AuditLogMiddleware(BaseHTTPMiddleware):
    """
    Count every request and log the security-relevant ones.

    Every authentication request is logged, as are writes under the account
    and admin paths. Each response carries an ``X-Request-ID`` header
    matching the logged ``request_id``.
    """

    audited_write_prefixes = ("/api/users", "/api/admin")

    def _should_log(self, path: str, method: str) -> bool:
        if path.startswith("/api/auth"):
            return True
        return method in ("POST", "PUT", "PATCH", "DELETE") and path.startswith(self.audited_write_prefixes)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        started = time.perf_counter()

        response = await call_next(request)

        app_metrics.increment_request(success=response.status_code < 500)
        response.headers["X-Request-ID"] = request_id

        if self._should_log(request.url.path, request.method):
            app_logger.info(
                "AUDIT",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
                ip=request.client.host if request.client else "unknown",
                user_agent=request.headers.get("user-agent", "")
            )

        return response

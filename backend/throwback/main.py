"""FastAPI main application."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pathlib import Path

from throwback.config import settings
from throwback.database import init_db

# Import routers
from throwback.routers import (
    admin, auth, captcha, health, livechat, livestreams, memories, playlists, podcasts, search, users, videos
)

# Import middlewares
from throwback.middleware import (
    CacheMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    HTTPSRedirectMiddleware,
    RequestValidationMiddleware,
    AuditLogMiddleware
)
from throwback.services.errors import ServiceError
from throwback.services.error_tracking import error_tracker
from throwback.services.logging_service import app_logger
from throwback.services.redis_service import rate_limiter, auth_rate_limiter

# Uploaded photos are served from here
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

# Create FastAPI application
app = FastAPI(
    title="ThrowBack API",
    description="Retro music videos, podcasts, playlists and live streams",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Security middlewares
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(HTTPSRedirectMiddleware)
app.add_middleware(RequestValidationMiddleware, max_content_length=settings.MAX_UPLOAD_SIZE * 2)
app.add_middleware(AuditLogMiddleware)

# Response cache for anonymous catalog listings (detail routes count views)
app.add_middleware(
    CacheMiddleware,
    default_ttl=60,
    cache_patterns=[
        r"^/api/public/videos(/trending|/genres|/search|/genre/[^/]+|/decade/[^/]+)?$",
        r"^/api/podcasts(/popular|/seasons|/categories|/category/[^/]+|/season/\d+)?$",
        r"^/api/search(/videos|/playlists|/podcasts|/livestreams|/suggestions)?$",
    ]
)

app.add_middleware(
    RateLimitMiddleware,
    limiter=rate_limiter,
    auth_limiter=auth_rate_limiter
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Translate domain errors raised by the services into HTTP responses."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    # Initialize database (create tables if they don't exist)
    init_db()

    if settings.SCHEDULER_ENABLED:
        from throwback.services.scheduler_service import start_scheduler
        start_scheduler()

    app_logger.info(
        "ThrowBack API started",
        environment=settings.ENVIRONMENT,
        scheduler=settings.SCHEDULER_ENABLED,
        sentry=error_tracker.sentry_enabled
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown."""
    from throwback.services.scheduler_service import shutdown_scheduler
    shutdown_scheduler()

    app_logger.info("ThrowBack API shutting down")


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "ThrowBack API",
        "version": settings.APP_VERSION,
        "status": "operational",
        "environment": settings.ENVIRONMENT,
        "documentation": "/docs"
    }


app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Include routers
app.include_router(health.router, prefix="/api/health", tags=["Health & Monitoring"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(captcha.router, prefix="/api/captcha", tags=["Captcha"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(videos.router, prefix="/api/public/videos", tags=["Videos"])
app.include_router(memories.public_router, prefix="/api/public", tags=["Memories"])
app.include_router(memories.router, prefix="/api/memories", tags=["Memories"])
app.include_router(playlists.router, prefix="/api/playlists", tags=["Playlists"])
app.include_router(podcasts.router, prefix="/api/podcasts", tags=["Podcasts"])
app.include_router(livestreams.router, prefix="/api/livestreams", tags=["Live Streams"])
app.include_router(livechat.router, prefix="/api/livechat", tags=["Live Chat"])
app.include_router(search.router, prefix="/api/search", tags=["Search"])
app.include_router(videos.admin_router, prefix="/api/admin/videos", tags=["Admin"])
app.include_router(memories.admin_router, prefix="/api/admin/comments", tags=["Admin"])
app.include_router(playlists.admin_router, prefix="/api/admin/playlists", tags=["Admin"])
app.include_router(livestreams.admin_router, prefix="/api/admin/livestreams", tags=["Admin"])
app.include_router(livestreams.tasks_router, prefix="/api/admin/stream-tasks", tags=["Admin"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "throwback.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )

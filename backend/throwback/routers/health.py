"""Health check and monitoring endpoints."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
import psutil
import os

from throwback.database import get_db
from throwback.config import settings
from throwback.services.redis_service import is_redis_available
from throwback.services.logging_service import app_metrics
from throwback.services.livestream_service import stream_status_tasks
from throwback.services.playlist_analytics_service import playlist_analytics_tasks
from throwback.services.scheduler_service import get_jobs_status

router = APIRouter()


def _database_ok(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


@router.get("")
def health_check(db: Session = Depends(get_db)):
    """
    Application health: database connectivity and scheduler state.

    Returns 503 when the database cannot be reached.
    """
    database = _database_ok(db)
    scheduler = get_jobs_status()

    body = {
        "status": "healthy" if database else "unhealthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "database": database,
            "redis": is_redis_available(),
            "scheduler": scheduler["running"],
        },
        "scheduler": scheduler,
    }
    if not database:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body


@router.get("/live")
def liveness_check():
    """Returns 200 while the process is alive."""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "pid": os.getpid()
    }


@router.get("/streams")
def streams_health():
    """Live stream status job counters."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "tasks": stream_status_tasks.get_status()
    }


@router.get("/playlists")
def playlists_health():
    """Playlist analytics job state."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "tasks": playlist_analytics_tasks.get_status()
    }


@router.get("/metrics")
def application_metrics():
    """Request, background job, cache and email counters plus system usage."""
    metrics = dict(app_metrics.get_metrics())
    metrics["cache"] = {**metrics["cache"], "hit_rate_percent": app_metrics.get_cache_hit_rate()}
    metrics["requests"] = {**metrics["requests"], "error_rate_percent": app_metrics.get_error_rate()}

    try:
        metrics["system"] = {
            "cpu_percent": psutil.cpu_percent(interval=None),
            "memory_percent": psutil.virtual_memory().percent,
            "disk_percent": psutil.disk_usage('/').percent,
        }
    except (psutil.Error, OSError) as e:
        metrics["system"] = {"error": f"Unable to gather system metrics: {e}"}

    return metrics

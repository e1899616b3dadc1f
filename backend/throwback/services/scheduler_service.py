"""APScheduler service for the recurring background jobs."""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.pool import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional
import logging

from throwback.config import settings
from throwback.database import SessionLocal
from throwback.services.livestream_service import stream_status_tasks
from throwback.services.playlist_analytics_service import playlist_analytics_tasks
from throwback.services.auth_service import AuthService
from throwback.services.captcha_service import CaptchaService
from throwback.services.logging_service import app_logger, app_metrics
from throwback.services.error_tracking import error_tracker

logging.getLogger('apscheduler').setLevel(logging.INFO)

# Global scheduler instance
scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> Optional[BackgroundScheduler]:
    """Get the global scheduler instance."""
    return scheduler


def _run_job(job_name: str, task: Callable[[Any], Any]):
    """
    Run a task with its own session, recording the outcome.

    Failures are reported and swallowed so the job fires again on its next
    trigger.
    """
    job_logger = app_logger.bind(job=job_name)
    db = SessionLocal()
    try:
        result = task(db)
        app_metrics.increment_background_job(job_name, success=True)
        job_logger.debug("Background job finished")
        return result
    except Exception as e:
        db.rollback()
        app_metrics.increment_background_job(job_name, success=False)
        job_logger.exception("Background job failed", error=str(e))
        error_tracker.capture_exception(e, tags={"job": job_name})
        return None
    finally:
        db.close()


# ============================================
# Jobs (module level so the SQLAlchemy job store can reference them)
# ============================================

def stream_status_job():
    return _run_job("stream_status", stream_status_tasks.run_transitions)


def playlist_sync_job():
    return _run_job("playlist_sync", playlist_analytics_tasks.sync_analytics)


def playlist_trending_job():
    return _run_job("playlist_trending", playlist_analytics_tasks.update_trending_scores)


def playlist_reset_job(window: str):
    return _run_job(f"playlist_reset_{window}", lambda db: playlist_analytics_tasks.reset_window(db, window))


def cleanup_job():
    def cleanup(db):
        return {
            "sessions": AuthService.cleanup_expired_sessions(db),
            "captchas": CaptchaService.cleanup_expired(db),
        }
    return _run_job("cleanup", cleanup)


JOBS: List[Dict[str, Any]] = [
    {"id": "stream_status", "func": stream_status_job, "trigger": "interval", "minutes": 1},
    {"id": "playlist_sync", "func": playlist_sync_job, "trigger": "interval", "minutes": 30},
    {"id": "playlist_trending", "func": playlist_trending_job, "trigger": "interval", "hours": 3},
    {"id": "playlist_reset_daily", "func": playlist_reset_job, "args": ["daily"],
     "trigger": "cron", "hour": 0, "minute": 0},
    {"id": "playlist_reset_weekly", "func": playlist_reset_job, "args": ["weekly"],
     "trigger": "cron", "day_of_week": "mon", "hour": 0, "minute": 0},
    {"id": "playlist_reset_monthly", "func": playlist_reset_job, "args": ["monthly"],
     "trigger": "cron", "day": 1, "hour": 0, "minute": 0},
    {"id": "cleanup", "func": cleanup_job, "trigger": "interval", "hours": 1},
]


def start_scheduler(persistent: bool = True):
    """
    Initialize and start the APScheduler with every recurring job.

    Args:
        persistent: Store jobs in the application database instead of memory
    """
    global scheduler

    if scheduler is not None:
        app_logger.warning("Scheduler already running")
        return

    # In-memory SQLite databases are private to each connection
    if persistent and settings.DATABASE_URL not in ("sqlite://", "sqlite:///:memory:"):
        jobstores = {'default': SQLAlchemyJobStore(url=settings.DATABASE_URL)}
    else:
        jobstores = {'default': MemoryJobStore()}

    executors = {
        'default': ThreadPoolExecutor(settings.SCHEDULER_EXECUTORS_DEFAULT_MAX_WORKERS)
    }

    job_defaults = {
        'coalesce': settings.SCHEDULER_JOB_DEFAULTS_COALESCE,
        'max_instances': settings.SCHEDULER_JOB_DEFAULTS_MAX_INSTANCES
    }

    scheduler = BackgroundScheduler(
        jobstores=jobstores,
        executors=executors,
        job_defaults=job_defaults,
        timezone='UTC'
    )

    for job in JOBS:
        scheduler.add_job(replace_existing=True, **job)

    scheduler.start()
    app_logger.info("APScheduler started", jobs=len(JOBS))


def shutdown_scheduler():
    """Shutdown the APScheduler."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        app_logger.info("APScheduler shut down")


def get_jobs_status() -> Dict[str, Any]:
    """Running flag and next run time of every scheduled job."""
    if scheduler is None:
        return {"running": False, "jobs": []}

    return {
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
            for job in scheduler.get_jobs()
        ]
    }

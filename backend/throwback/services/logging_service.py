"""Structured logging and in-process metrics."""

import logging
import json
from datetime import datetime
from threading import Lock
from typing import Dict, Any, Optional

from throwback.config import settings


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.utcfromtimestamp(record.created).isoformat() + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        entry.update(getattr(record, "context", {}))

        if record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class StructuredLogger:
    """
    JSON logger with keyword context.

    ``app_logger.info("Stream started", stream_id=stream.id)`` emits a line
    carrying ``stream_id`` next to the message. ``bind()`` returns a logger
    that adds the same context to every line, used by the background jobs.
    """

    def __init__(
        self,
        name: str,
        level: str = "INFO",
        log_file: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self.context = dict(context or {})

        if not self.logger.handlers:
            handlers = [logging.StreamHandler()]
            if log_file:
                handlers.append(logging.FileHandler(log_file))
            for handler in handlers:
                handler.setFormatter(JsonFormatter())
                self.logger.addHandler(handler)

    def bind(self, **context) -> "StructuredLogger":
        bound = StructuredLogger.__new__(StructuredLogger)
        bound.logger = self.logger
        bound.context = {**self.context, **context}
        return bound

    def _log(self, level: int, message: str, context: Dict[str, Any], exc_info: bool = False):
        self.logger.log(level, message, exc_info=exc_info, extra={"context": {**self.context, **context}})

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, kwargs)

    def exception(self, message: str, **kwargs):
        """Log at error level with the active exception's traceback."""
        self._log(logging.ERROR, message, kwargs, exc_info=True)


class ApplicationMetrics:
    """
    In-memory counters reported by ``GET /api/health/metrics``.

    Tracks HTTP requests, scheduler job runs (overall and per job id),
    catalog cache hits and outgoing emails. Counters reset with the process.
    """

    def __init__(self):
        self._lock = Lock()
        self.start_time = datetime.utcnow()
        self.metrics: Dict[str, Any] = {
            "requests": {"total": 0, "success": 0, "error": 0},
            "background_jobs": {"total_runs": 0, "successful_runs": 0, "failed_runs": 0, "by_job": {}},
            "cache": {"hits": 0, "misses": 0},
            "emails": {"sent": 0, "failed": 0},
            "uptime_seconds": 0,
            "last_updated": self.start_time.isoformat(),
        }

    def _touch(self):
        now = datetime.utcnow()
        self.metrics["last_updated"] = now.isoformat()
        self.metrics["uptime_seconds"] = (now - self.start_time).total_seconds()

    def increment_request(self, success: bool = True):
        with self._lock:
            requests = self.metrics["requests"]
            requests["total"] += 1
            requests["success" if success else "error"] += 1
            self._touch()

    def increment_background_job(self, job_name: str, success: bool = True):
        """
        Count one scheduler run.

        Args:
            job_name: Scheduler job id, e.g. ``stream_status``
            success: Whether the run finished without raising
        """
        with self._lock:
            jobs = self.metrics["background_jobs"]
            per_job = jobs["by_job"].setdefault(job_name, {"success": 0, "failed": 0})
            jobs["total_runs"] += 1
            jobs["successful_runs" if success else "failed_runs"] += 1
            per_job["success" if success else "failed"] += 1
            self._touch()

    def increment_cache(self, hit: bool = True):
        with self._lock:
            self.metrics["cache"]["hits" if hit else "misses"] += 1
            self._touch()

    def increment_email(self, sent: bool = True):
        with self._lock:
            self.metrics["emails"]["sent" if sent else "failed"] += 1
            self._touch()

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            self._touch()
            return self.metrics

    @staticmethod
    def _percent(part: int, total: int) -> float:
        return (part / total) * 100 if total else 0.0

    def get_cache_hit_rate(self) -> float:
        cache = self.metrics["cache"]
        return self._percent(cache["hits"], cache["hits"] + cache["misses"])

    def get_error_rate(self) -> float:
        requests = self.metrics["requests"]
        return self._percent(requests["error"], requests["total"])


# Global instances
app_logger = StructuredLogger("throwback", level=settings.LOG_LEVEL, log_file=settings.LOG_FILE or None)
app_metrics = ApplicationMetrics()

"""
Error Tracking Service

Forwards unexpected exceptions to Sentry when SENTRY_DSN is set and always
records them through the structured logger. Expected outcomes (domain
errors and HTTP errors returned to clients) are never reported.
"""

from typing import Optional, Dict, Any
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from throwback.config import settings
from throwback.services.logging_service import app_logger

# Request fields replaced before an event leaves the process
SCRUBBED_FIELDS = {
    "password", "current_password", "new_password", "token", "access_token",
    "captcha_answer", "stream_key", "authorization",
}
EXPECTED_EXCEPTIONS = ("HTTPException", "ServiceError", "NotFoundError", "PermissionDeniedError", "ConflictError")


def _scrub(data: Any) -> Any:
    if isinstance(data, dict):
        return {
            key: "[Filtered]" if str(key).lower() in SCRUBBED_FIELDS else _scrub(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [_scrub(item) for item in data]
    return data


class ErrorTracker:
    """Sentry wrapper shared by the app, the scheduler jobs and the stream tasks."""

    def __init__(self, dsn: Optional[str] = None):
        self.sentry_enabled = False

        dsn = dsn if dsn is not None else settings.SENTRY_DSN
        if dsn:
            self._initialize_sentry(dsn)

    def _initialize_sentry(self, dsn: str):
        try:
            sentry_sdk.init(
                dsn=dsn,
                environment=settings.ENVIRONMENT,
                release=f"throwback@{settings.APP_VERSION}",
                traces_sample_rate=0.1,
                integrations=[FastApiIntegration(), SqlalchemyIntegration()],
                before_send=self.before_send,
                send_default_pii=False
            )
        except Exception as e:
            app_logger.error("Failed to initialize Sentry", error=str(e))
            return

        self.sentry_enabled = True
        app_logger.info("Sentry error tracking enabled", environment=settings.ENVIRONMENT)

    @staticmethod
    def before_send(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Drop expected errors and health probe noise, scrub credentials.

        Returns None to drop the event, or the cleaned event to send it.
        """
        request = event.get("request") or {}
        if "/api/health" in request.get("url", ""):
            return None

        for exception in (event.get("exception") or {}).get("values", []):
            if exception.get("type") in EXPECTED_EXCEPTIONS:
                return None

        for key in ("data", "headers", "cookies"):
            if key in request:
                request[key] = _scrub(request[key])

        return event

    def capture_exception(
        self,
        exception: Exception,
        context: Optional[Dict[str, Any]] = None,
        level: str = "error",
        tags: Optional[Dict[str, str]] = None
    ):
        """
        Log an exception and send it to Sentry.

        Args:
            exception: The exception to capture
            context: Named context blocks, e.g. ``{"stream": {"id": ...}}``
            level: Sentry level (warning, error, fatal)
            tags: Searchable tags such as the scheduler job id
        """
        app_logger.error(
            f"Exception captured: {exception}",
            exception_type=type(exception).__name__,
            context=context or {},
            tags=tags or {}
        )

        if not self.sentry_enabled:
            return

        with sentry_sdk.new_scope() as scope:
            for key, value in (context or {}).items():
                scope.set_context(key, value if isinstance(value, dict) else {"value": value})
            for key, value in (tags or {}).items():
                scope.set_tag(key, value)
            scope.set_level(level)
            sentry_sdk.capture_exception(exception)

    def set_user_context(self, user_id: str, role: Optional[str] = None):
        """Attach the signed-in user id (never the email) to later events."""
        if self.sentry_enabled:
            sentry_sdk.set_user({"id": user_id, "role": role})


# Global instance
error_tracker = ErrorTracker()

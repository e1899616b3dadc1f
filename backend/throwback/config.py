"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # Redis (empty disables caching and rate limiting)
    REDIS_URL: str = ""

    # Security
    SECRET_KEY: str
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Account protection
    MAX_LOGIN_ATTEMPTS: int = 5
    CAPTCHA_AFTER_ATTEMPTS: int = 3
    LOCKOUT_MINUTES: int = 30
    VERIFICATION_TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_RESET_EXPIRE_DAYS: int = 7
    CAPTCHA_EXPIRE_SECONDS: int = 300

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    # Email
    EMAIL_ENABLED: bool = False
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "ThrowBack <no-reply@throwback.local>"

    # Uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024

    # Live streams
    LIVESTREAM_END_GRACE_SECONDS: int = 120
    LIVESTREAM_FORCE_END_AFTER_MINUTES: int = 60
    COMPILATION_SLOT_MINUTES: int = 4

    # APScheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_EXECUTORS_DEFAULT_MAX_WORKERS: int = 10
    SCHEDULER_JOB_DEFAULTS_COALESCE: bool = True
    SCHEDULER_JOB_DEFAULTS_MAX_INSTANCES: int = 1

    # API
    API_BASE_URL: str = "http://localhost:8000"
    FRONTEND_URL: str = "http://localhost:3000"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # Error tracking
    SENTRY_DSN: str = ""
    APP_VERSION: str = "1.0.0"

    # Application
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 120

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True
    )

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS comma-separated string into list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


# Global settings instance
settings = Settings()

"""Processor configuration settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ProcessorSettings(BaseSettings):
    """Settings for the processor service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./hiring.db"

    # Queue
    QUEUE_NAME: str = "application-analysis"
    QUEUE_MAX_ATTEMPTS: int = 3  # Default retry limit
    QUEUE_BACKOFF_DELAY: float = 1.0  # Base delay for exponential backoff (seconds)
    QUEUE_JOB_TIMEOUT: float = 300.0  # Seconds before a running job is failed
    QUEUE_MAX_CONCURRENCY: int = 5  # Parallel job limit per worker
    QUEUE_LIMITER_MAX: int = 5  # Max jobs started per limiter window
    QUEUE_LIMITER_DURATION: float = 5.0  # Limiter window (seconds)
    QUEUE_POLL_INTERVAL: float = 5.0  # Seconds between queue checks when idle
    QUEUE_BUSY_INTERVAL: float = 1.0  # Seconds to wait when at capacity or rate limited

    # Leases and stall detection
    QUEUE_LOCK_DURATION: float = 30.0  # Lease length (seconds)
    QUEUE_LOCK_RENEW_TIME: float = 15.0  # Lease renewal interval (seconds)
    QUEUE_STALLED_INTERVAL: float = 10.0  # Seconds between stalled-job checks
    QUEUE_MAX_STALLED_COUNT: int = 2  # Redeliveries before a stalled job fails

    # Maintenance
    CLEANUP_ENABLED: bool = True
    CLEANUP_INTERVAL: int = 300  # Seconds between cleanup sweeps
    COMPLETED_JOB_RETENTION_HOURS: int = 24
    STUCK_ANALYSIS_THRESHOLD_MINUTES: int = 60

    # Match analysis
    ANALYSIS_MAX_ATTEMPTS: int = 3  # AI generation attempts per analysis
    ANALYSIS_RETRY_DELAY: float = 0.0  # No pause between generation attempts

    # Claude AI
    ANTHROPIC_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-sonnet-4-5-20250929"
    CLAUDE_MAX_TOKENS: int = 4096

    # Operational HTTP surface
    HEALTH_PORT: int = 8080

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"


@lru_cache
def get_settings() -> ProcessorSettings:
    """Get cached settings instance."""
    return ProcessorSettings()


settings = get_settings()

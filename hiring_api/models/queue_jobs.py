"""Queue job model for the analysis pipeline."""

from sqlalchemy import Column, Integer, Float, String, DateTime, Text, Index

from hiring_api.config.database import Base
from .base import utcnow

# Job states
JOB_WAITING = "waiting"
JOB_ACTIVE = "active"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"
JOB_DELAYED = "delayed"

JOB_STATES = (JOB_WAITING, JOB_ACTIVE, JOB_COMPLETED, JOB_FAILED, JOB_DELAYED)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_DELAY = 1.0  # seconds, doubled on every failed attempt
DEFAULT_TIMEOUT_SECONDS = 300


class QueueJob(Base):
    """
    Persisted work item.

    Workers claim jobs by taking a lease (lock_token + locked_until) and
    must renew it while running. The application_id column mirrors the
    payload key and deliberately has no foreign key so that jobs outliving
    their application can be detected and removed.
    """

    __tablename__ = "queue_jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    queue_name = Column(String(100), nullable=False)
    job_type = Column(String(50), nullable=False)
    application_id = Column(Integer, nullable=True)

    # JSON: {"applicationId": 42}
    payload = Column(Text, nullable=True)

    # waiting, active, completed, failed, delayed
    status = Column(String(20), nullable=False, default=JOB_WAITING)
    priority = Column(Integer, default=0)  # Higher = more urgent

    # Retry policy
    attempts_made = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=DEFAULT_MAX_ATTEMPTS)
    backoff_delay = Column(Float, nullable=False, default=DEFAULT_BACKOFF_DELAY)
    timeout_seconds = Column(Float, nullable=False, default=DEFAULT_TIMEOUT_SECONDS)

    # Lease
    lock_token = Column(String(64), nullable=True)
    locked_until = Column(DateTime, nullable=True)
    stalled_count = Column(Integer, nullable=False, default=0)

    progress = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)

    # Timing
    created_at = Column(DateTime, default=utcnow, nullable=False)
    scheduled_for = Column(DateTime, default=utcnow, nullable=False)
    started_at = Column(DateTime, nullable=True)  # Start of the latest attempt
    finished_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_queue_jobs_claim", "queue_name", "status", "scheduled_for"),
        Index("idx_queue_jobs_application", "application_id"),
    )

    def __repr__(self) -> str:
        return f"<QueueJob(id={self.id}, type={self.job_type}, status={self.status})>"

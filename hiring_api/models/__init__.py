"""SQLAlchemy ORM models for the hiring pipeline.

All models are imported here to ensure they're registered with Base.metadata
before any database operations.
"""

# Import base first
from hiring_api.config.database import Base

# Core models
from .candidates import Candidate
from .job_postings import JobPosting
from .applications import (
    Application,
    APPLICATION_STATUSES,
    STATUS_PENDING,
    STATUS_ANALYZING,
    STATUS_ANALYZED,
    STATUS_ANALYSIS_FAILED,
)

# Queue models
from .queue_jobs import (
    QueueJob,
    JOB_STATES,
    JOB_WAITING,
    JOB_ACTIVE,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_DELAYED,
)
from .queue_states import QueueState

from .base import utcnow

__all__ = [
    "Base",
    "utcnow",
    # Core
    "Candidate",
    "JobPosting",
    "Application",
    "APPLICATION_STATUSES",
    "STATUS_PENDING",
    "STATUS_ANALYZING",
    "STATUS_ANALYZED",
    "STATUS_ANALYSIS_FAILED",
    # Queue
    "QueueJob",
    "QueueState",
    "JOB_STATES",
    "JOB_WAITING",
    "JOB_ACTIVE",
    "JOB_COMPLETED",
    "JOB_FAILED",
    "JOB_DELAYED",
]

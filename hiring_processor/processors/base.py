"""Base processor class for all job processors."""

from abc import ABC, abstractmethod

import structlog
from sqlalchemy.orm import Session

from hiring_processor.queue_manager import ClaimedJob, QueueManager


class BaseProcessor(ABC):
    """Abstract base class for job processors."""

    # Override in subclasses
    job_type: str = "base"

    def __init__(self, db: Session, queue: QueueManager, job: ClaimedJob):
        """Initialize processor with database session and queue manager.

        Args:
            db: SQLAlchemy database session owned by this job
            queue: Queue manager for progress reports and follow-up jobs
            job: The leased job being processed
        """
        self.db = db
        self.queue = queue
        self.job = job
        self.logger = structlog.get_logger().bind(processor=self.job_type, job_id=job.id)

    @abstractmethod
    async def process(self, payload: dict) -> None:
        """Process a job.

        Args:
            payload: Job data

        Raises:
            Exception: If processing fails (will be caught by worker for retry)
        """
        pass

    def report_progress(self, progress: int) -> None:
        """Report handler progress for the leased job."""
        self.queue.update_progress(self.job.id, self.job.lock_token, progress)

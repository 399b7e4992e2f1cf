"""Application submission: creates the application and its analysis job."""

import json
from typing import Tuple

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hiring_api.config.settings import settings
from hiring_api.middleware.error_handler import DuplicateApplicationError, NotFoundError
from hiring_api.models import (
    Application,
    Candidate,
    JobPosting,
    QueueJob,
    JOB_WAITING,
    STATUS_PENDING,
)

logger = structlog.get_logger()


class ApplicationService:
    """Service for submitting and reading candidate applications."""

    def __init__(self, db: Session):
        self.db = db

    def create_application(self, candidate_id: int, job_posting_id: int) -> Tuple[Application, QueueJob]:
        """Create a pending application and enqueue its analysis.

        The application row and the queue job are committed together, so an
        application never exists without a job to analyze it.

        Raises:
            NotFoundError: If the candidate or job posting does not exist
            DuplicateApplicationError: If the candidate already applied
        """
        if self.db.get(JobPosting, job_posting_id) is None:
            raise NotFoundError("Job posting", job_posting_id)
        if self.db.get(Candidate, candidate_id) is None:
            raise NotFoundError("Candidate", candidate_id)

        existing = (
            self.db.query(Application.id)
            .filter(
                Application.candidate_id == candidate_id,
                Application.job_posting_id == job_posting_id,
            )
            .first()
        )
        if existing:
            raise DuplicateApplicationError(candidate_id, job_posting_id)

        application = Application(
            candidate_id=candidate_id,
            job_posting_id=job_posting_id,
            status=STATUS_PENDING,
        )
        self.db.add(application)

        try:
            # Flush to get the application id for the job payload
            self.db.flush()

            job = QueueJob(
                queue_name=settings.QUEUE_NAME,
                job_type=settings.ANALYZE_JOB_TYPE,
                application_id=application.id,
                payload=json.dumps({"applicationId": application.id}),
                status=JOB_WAITING,
            )
            self.db.add(job)
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent submission of the same pair
            self.db.rollback()
            raise DuplicateApplicationError(candidate_id, job_posting_id)

        self.db.refresh(application)
        self.db.refresh(job)

        logger.info(
            "Application submitted",
            application_id=application.id,
            candidate_id=candidate_id,
            job_posting_id=job_posting_id,
            queue_job_id=job.id,
        )
        return application, job

    def get_application(self, application_id: int) -> Application:
        """Get an application by id.

        Raises:
            NotFoundError: If it does not exist
        """
        application = self.db.get(Application, application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

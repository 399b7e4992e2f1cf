"""Queue maintenance: removes bad jobs and heals stuck applications."""

from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from hiring_api.models import (
    Application,
    Candidate,
    JobPosting,
    QueueJob,
    JOB_DELAYED,
    JOB_FAILED,
    JOB_COMPLETED,
    JOB_WAITING,
    STATUS_ANALYZING,
    STATUS_PENDING,
    utcnow,
)
from hiring_processor.config import ProcessorSettings, settings as default_settings
from hiring_processor.database import SessionLocal
from hiring_processor.events import QueueEvents
from hiring_processor.processors.analyze import AnalyzeApplicationProcessor
from hiring_processor.queue_manager import QueueManager, load_payload, payload_application_id

STUCK_ANALYSIS_NOTE = "Reset due to stuck analysis"


@dataclass
class CleanupResult:
    """Counters of one cleanup sweep."""

    cleaned: int = 0
    validated: int = 0
    errors: List[str] = field(default_factory=list)
    purged: int = 0
    reset_applications: int = 0
    requeued: int = 0
    failed_applications: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class QueueMaintenanceService:
    """Keeps the analysis queue consistent with the data it points at.

    All methods are blocking; call them from a thread when on the event loop.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        events: Optional[QueueEvents] = None,
        settings: Optional[ProcessorSettings] = None,
        logger=None,
    ):
        self.session_factory = session_factory
        self.events = events or QueueEvents()
        self.settings = settings or default_settings
        self.logger = logger or structlog.get_logger().bind(component="queue_maintenance")

    def _queue(self, db: Session) -> QueueManager:
        return QueueManager(db, settings=self.settings, events=self.events)

    def cleanup_problematic_jobs(self) -> CleanupResult:
        """Run one cleanup sweep.

        1. Remove failed jobs, first moving their applications still in
           analysis to analysis_failed
        2. Purge completed jobs past the retention period
        3. Remove waiting/delayed jobs whose application, candidate or
           job posting is gone
        4. Reset applications stuck in analysis and re-enqueue them,
           unless their latest job failed for good

        Errors on individual jobs are collected in the result; the sweep
        always runs to the end.
        """
        result = CleanupResult()
        db = self.session_factory()
        try:
            queue = self._queue(db)
            steps = (
                ("remove failed jobs", self._remove_failed_jobs),
                ("purge completed jobs", self._purge_completed_jobs),
                ("validate pending jobs", self._validate_pending_jobs),
                ("reset stuck applications", self._reset_stuck_applications),
            )
            for name, step in steps:
                try:
                    step(db, queue, result)
                except Exception as e:
                    db.rollback()
                    self.logger.error("Cleanup step failed", step=name, error=str(e), exc_info=True)
                    result.errors.append(f"{name}: {e}")
        finally:
            db.close()

        self.logger.info(
            "Queue cleanup completed",
            cleaned=result.cleaned,
            validated=result.validated,
            purged=result.purged,
            reset_applications=result.reset_applications,
            requeued=result.requeued,
            failed_applications=result.failed_applications,
            error_count=len(result.errors),
        )
        return result

    def _remove_failed_jobs(self, db: Session, queue: QueueManager, result: CleanupResult) -> None:
        for job in queue.get_jobs([JOB_FAILED]):
            try:
                if queue.fail_application(job.application_id, job.last_error):
                    result.failed_applications += 1
                if queue.remove(job.id):
                    result.cleaned += 1
            except Exception as e:
                db.rollback()
                result.errors.append(f"Failed to remove failed job {job.id}: {e}")

    def _purge_completed_jobs(self, db: Session, queue: QueueManager, result: CleanupResult) -> None:
        grace = self.settings.COMPLETED_JOB_RETENTION_HOURS * 3600
        result.purged += queue.clean(grace, JOB_COMPLETED)

    def _validate_pending_jobs(self, db: Session, queue: QueueManager, result: CleanupResult) -> None:
        for job in queue.get_jobs([JOB_WAITING, JOB_DELAYED]):
            try:
                problem = self._job_problem(db, job)
                if problem is None:
                    result.validated += 1
                    continue

                self.logger.warning("Removing invalid job", job_id=job.id, problem=problem)
                if queue.remove(job.id):
                    result.cleaned += 1
            except Exception as e:
                db.rollback()
                result.errors.append(f"Failed to validate job {job.id}: {e}")

    def _job_problem(self, db: Session, job: QueueJob) -> Optional[str]:
        """Describe why a job can never run, or None if it is valid."""
        application_id = payload_application_id(load_payload(job.payload))
        if application_id is None:
            return "payload has no valid applicationId"

        app = db.get(Application, application_id)
        if app is None:
            return f"application {application_id} does not exist"
        if db.get(Candidate, app.candidate_id) is None:
            return f"candidate {app.candidate_id} does not exist"
        if db.get(JobPosting, app.job_posting_id) is None:
            return f"job posting {app.job_posting_id} does not exist"
        return None

    def _reset_stuck_applications(self, db: Session, queue: QueueManager, result: CleanupResult) -> None:
        cutoff = utcnow() - timedelta(minutes=self.settings.STUCK_ANALYSIS_THRESHOLD_MINUTES)
        job_type = AnalyzeApplicationProcessor.job_type

        stuck_ids = db.execute(
            select(Application.id).where(
                Application.status == STATUS_ANALYZING,
                Application.updated_at < cutoff,
            )
        ).scalars().all()

        for application_id in stuck_ids:
            try:
                latest = queue.latest_job(application_id, job_type)
                if latest is not None and latest.status == JOB_FAILED:
                    # Retries exhausted; end the analysis instead of redelivering
                    if queue.fail_application(application_id, latest.last_error):
                        result.failed_applications += 1
                    continue

                reset = db.execute(
                    update(Application)
                    .where(
                        Application.id == application_id,
                        Application.status == STATUS_ANALYZING,
                        Application.updated_at < cutoff,
                    )
                    .values(status=STATUS_PENDING, status_note=STUCK_ANALYSIS_NOTE, updated_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
                db.commit()
                if reset.rowcount != 1:
                    continue

                result.reset_applications += 1
                self.logger.warning("Reset stuck application", application_id=application_id)

                if not queue.has_pending_job(application_id, job_type):
                    queue.enqueue(job_type, {"applicationId": application_id})
                    result.requeued += 1
            except Exception as e:
                db.rollback()
                result.errors.append(f"Failed to reset application {application_id}: {e}")

    def get_stats(self) -> Dict[str, Any]:
        """Job counts per state plus the paused flag."""
        db = self.session_factory()
        try:
            queue = self._queue(db)
            return {
                "queue": queue.queue_name,
                "counts": queue.get_counts(),
                "paused": queue.is_paused(),
            }
        finally:
            db.close()

    def pause(self) -> None:
        db = self.session_factory()
        try:
            self._queue(db).pause()
        finally:
            db.close()

    def resume(self) -> None:
        db = self.session_factory()
        try:
            self._queue(db).resume()
        finally:
            db.close()

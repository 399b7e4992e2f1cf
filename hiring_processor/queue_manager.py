"""Queue manager for leased job execution on the queue_jobs table."""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

import structlog
from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hiring_api.models import (
    Application,
    QueueJob,
    QueueState,
    JOB_STATES,
    JOB_WAITING,
    JOB_ACTIVE,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_DELAYED,
    STATUS_ANALYSIS_FAILED,
    STATUS_ANALYZING,
    utcnow,
)
from hiring_processor.config import ProcessorSettings, settings as default_settings
from hiring_processor.events import QueueEvent, QueueEventType, QueueEvents
from hiring_processor.retry import RetryPolicy

CLAIMABLE_STATES = (JOB_WAITING, JOB_DELAYED)
STALLED_LIMIT_ERROR = "Job stalled more than allowable limit"


@dataclass
class JobOptions:
    """Per-job execution options."""

    attempts: int
    backoff_delay: float
    timeout: float
    priority: int = 0
    delay: float = 0.0


@dataclass
class ClaimedJob:
    """A job leased by this worker."""

    id: int
    job_type: str
    payload: Dict[str, Any]
    attempts_made: int
    max_attempts: int
    timeout_seconds: float
    lock_token: str
    created_at: datetime
    started_at: datetime

    @property
    def application_id(self) -> Optional[int]:
        return payload_application_id(self.payload)

    @property
    def is_final_attempt(self) -> bool:
        return self.attempts_made >= self.max_attempts


def payload_application_id(payload: Any) -> Optional[int]:
    """Extract the applicationId of a job payload, or None if absent/invalid."""
    if not isinstance(payload, dict):
        return None
    value = payload.get("applicationId")
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def load_payload(raw: Optional[str]) -> Any:
    """Decode a stored payload; undecodable payloads come back as None."""
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None


class QueueManager:
    """Manages one named queue stored in the queue_jobs table.

    Claims are optimistic: a conditional UPDATE moves the job from a
    claimable state to active and stamps a fresh lease token, so two
    workers racing for the same row cannot both win. Every later
    transition of an active job is guarded by that token.
    """

    def __init__(
        self,
        db: Session,
        queue_name: Optional[str] = None,
        settings: Optional[ProcessorSettings] = None,
        events: Optional[QueueEvents] = None,
        logger=None,
    ):
        self.db = db
        self.settings = settings or default_settings
        self.queue_name = queue_name or self.settings.QUEUE_NAME
        self.events = events or QueueEvents()
        self.logger = logger or structlog.get_logger().bind(queue=self.queue_name)

    def default_options(self) -> JobOptions:
        return JobOptions(
            attempts=self.settings.QUEUE_MAX_ATTEMPTS,
            backoff_delay=self.settings.QUEUE_BACKOFF_DELAY,
            timeout=self.settings.QUEUE_JOB_TIMEOUT,
        )

    def _emit(self, event_type: QueueEventType, job_id: Optional[int] = None, **data) -> None:
        self.events.emit(QueueEvent(type=event_type, queue_name=self.queue_name, job_id=job_id, data=data))

    def enqueue(
        self,
        job_type: str,
        payload: Optional[dict] = None,
        options: Optional[JobOptions] = None,
    ) -> int:
        """Add a job to the queue.

        Args:
            job_type: Type of job (e.g. "analyze")
            payload: Job data as JSON, {"applicationId": ...} for analysis jobs
            options: Attempts, backoff, timeout, priority and initial delay

        Returns:
            Job ID
        """
        opts = options or self.default_options()
        now = utcnow()

        job = QueueJob(
            queue_name=self.queue_name,
            job_type=job_type,
            application_id=payload_application_id(payload),
            payload=json.dumps(payload) if payload is not None else None,
            status=JOB_DELAYED if opts.delay > 0 else JOB_WAITING,
            priority=opts.priority,
            attempts_made=0,
            max_attempts=opts.attempts,
            backoff_delay=opts.backoff_delay,
            timeout_seconds=opts.timeout,
            created_at=now,
            scheduled_for=now + timedelta(seconds=opts.delay),
        )
        self.db.add(job)
        self.db.commit()

        self.logger.info("Job enqueued", job_id=job.id, job_type=job_type, application_id=job.application_id)
        self._emit(QueueEventType.WAITING, job.id, job_type=job_type)
        return job.id

    def claim_next(self) -> Optional[ClaimedJob]:
        """Lease the next runnable job.

        Returns:
            The claimed job, or None when the queue is paused, rate limited
            or has nothing runnable
        """
        if self.is_paused():
            return None

        now = utcnow()
        if self._rate_limited(now):
            return None

        candidate_ids = self.db.execute(
            select(QueueJob.id)
            .where(
                QueueJob.queue_name == self.queue_name,
                QueueJob.status.in_(CLAIMABLE_STATES),
                QueueJob.scheduled_for <= now,
            )
            .order_by(QueueJob.priority.desc(), QueueJob.created_at.asc(), QueueJob.id.asc())
            .limit(10)
        ).scalars().all()

        for job_id in candidate_ids:
            token = uuid.uuid4().hex
            result = self.db.execute(
                update(QueueJob)
                .where(QueueJob.id == job_id, QueueJob.status.in_(CLAIMABLE_STATES))
                .values(
                    status=JOB_ACTIVE,
                    lock_token=token,
                    locked_until=now + timedelta(seconds=self.settings.QUEUE_LOCK_DURATION),
                    started_at=now,
                    attempts_made=QueueJob.attempts_made + 1,
                    progress=0,
                )
                .execution_options(synchronize_session=False)
            )
            self.db.commit()

            if result.rowcount != 1:
                # Another worker won the race for this row
                continue

            job = self.db.get(QueueJob, job_id, populate_existing=True)
            claimed = ClaimedJob(
                id=job.id,
                job_type=job.job_type,
                payload=load_payload(job.payload) or {},
                attempts_made=job.attempts_made,
                max_attempts=job.max_attempts,
                timeout_seconds=job.timeout_seconds,
                lock_token=token,
                created_at=job.created_at,
                started_at=job.started_at,
            )

            self.logger.info(
                "Job claimed",
                job_id=claimed.id,
                job_type=claimed.job_type,
                attempt=claimed.attempts_made,
            )
            self._emit(QueueEventType.ACTIVE, claimed.id, attempt=claimed.attempts_made)
            return claimed

        return None

    def _rate_limited(self, now: datetime) -> bool:
        """True when the limiter window already holds its maximum of started jobs."""
        if self.settings.QUEUE_LIMITER_MAX <= 0:
            return False

        window_start = now - timedelta(seconds=self.settings.QUEUE_LIMITER_DURATION)
        started = self.db.scalar(
            select(func.count(QueueJob.id)).where(
                QueueJob.queue_name == self.queue_name,
                QueueJob.started_at >= window_start,
            )
        )
        return (started or 0) >= self.settings.QUEUE_LIMITER_MAX

    def _guarded(self, job_id: int, token: str):
        return update(QueueJob).where(
            QueueJob.id == job_id,
            QueueJob.lock_token == token,
            QueueJob.status == JOB_ACTIVE,
        )

    def extend_lease(self, job_id: int, token: str) -> bool:
        """Renew the lease of an active job. False means the lease was lost."""
        result = self.db.execute(
            self._guarded(job_id, token)
            .values(locked_until=utcnow() + timedelta(seconds=self.settings.QUEUE_LOCK_DURATION))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def update_progress(self, job_id: int, token: str, progress: int) -> bool:
        """Record handler progress (0-100)."""
        progress = max(0, min(100, int(progress)))
        result = self.db.execute(
            self._guarded(job_id, token)
            .values(progress=progress)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        if result.rowcount == 1:
            self._emit(QueueEventType.PROGRESS, job_id, progress=progress)
            return True
        return False

    def complete(self, job_id: int, token: str) -> bool:
        """Mark a leased job as completed.

        Returns:
            False if the lease was lost (timed out or stalled meanwhile),
            in which case the completion is ignored
        """
        result = self.db.execute(
            self._guarded(job_id, token)
            .values(
                status=JOB_COMPLETED,
                finished_at=utcnow(),
                lock_token=None,
                locked_until=None,
                progress=100,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        if result.rowcount != 1:
            self.logger.warning("Lease lost, completion ignored", job_id=job_id)
            return False

        self.logger.info("Job completed", job_id=job_id)
        self._emit(QueueEventType.COMPLETED, job_id)
        return True

    def fail(self, job_id: int, token: str, error: str) -> Optional[str]:
        """Mark a leased job as failed, schedule retry or fail permanently.

        Uses exponential backoff: backoff_delay * 2^(attempts-1).
        When the job fails for good, its application (if still analyzing)
        moves to analysis_failed in the same transaction.

        Returns:
            The new job state (delayed or failed), or None if the lease was lost
        """
        job = self.db.execute(
            select(QueueJob).where(
                QueueJob.id == job_id,
                QueueJob.lock_token == token,
                QueueJob.status == JOB_ACTIVE,
            )
        ).scalar_one_or_none()

        if job is None:
            self.logger.warning("Lease lost, failure ignored", job_id=job_id, error=error)
            return None

        now = utcnow()
        application_id = job.application_id
        attempts = job.attempts_made or 0
        max_attempts = job.max_attempts or self.settings.QUEUE_MAX_ATTEMPTS
        retry_in: Optional[float] = None

        if attempts >= max_attempts:
            new_status = JOB_FAILED
            values = {"status": JOB_FAILED, "finished_at": now}
        else:
            policy = RetryPolicy(max_attempts=max_attempts, base_delay=job.backoff_delay)
            retry_in = policy.delay_for(attempts)
            new_status = JOB_DELAYED
            values = {"status": JOB_DELAYED, "scheduled_for": now + timedelta(seconds=retry_in)}

        result = self.db.execute(
            self._guarded(job_id, token)
            .values(lock_token=None, locked_until=None, last_error=error, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1 and new_status == JOB_FAILED:
            self._settle_application(application_id, error)
        self.db.commit()

        if result.rowcount != 1:
            self.logger.warning("Lease lost, failure ignored", job_id=job_id, error=error)
            return None

        if new_status == JOB_FAILED:
            self.logger.warning("Job failed permanently", job_id=job_id, attempts=attempts, error=error)
        else:
            self.logger.info("Job scheduled for retry", job_id=job_id, attempt=attempts, retry_in=retry_in)

        self._emit(
            QueueEventType.FAILED,
            job_id,
            attempt=attempts,
            max_attempts=max_attempts,
            error=error,
            will_retry=new_status == JOB_DELAYED,
            retry_in=retry_in,
        )
        return new_status

    def recover_stalled_jobs(self) -> int:
        """Re-deliver active jobs whose lease expired.

        A job stalling more than QUEUE_MAX_STALLED_COUNT times is failed
        instead. Its application, if still analyzing, is marked
        analysis_failed. A stall does not consume an attempt.

        Returns:
            Number of stalled jobs handled
        """
        now = utcnow()
        stalled = self.db.execute(
            select(QueueJob).where(
                QueueJob.queue_name == self.queue_name,
                QueueJob.status == JOB_ACTIVE,
                QueueJob.locked_until < now,
            )
        ).scalars().all()

        handled = []
        for job in stalled:
            stalled_count = (job.stalled_count or 0) + 1
            if stalled_count > self.settings.QUEUE_MAX_STALLED_COUNT:
                values = {
                    "status": JOB_FAILED,
                    "finished_at": now,
                    "last_error": STALLED_LIMIT_ERROR,
                }
            else:
                values = {
                    "status": JOB_WAITING,
                    "scheduled_for": now,
                    "attempts_made": max(0, (job.attempts_made or 0) - 1),
                }

            result = self.db.execute(
                update(QueueJob)
                .where(
                    QueueJob.id == job.id,
                    QueueJob.status == JOB_ACTIVE,
                    QueueJob.lock_token == job.lock_token,
                    QueueJob.locked_until < now,
                )
                .values(lock_token=None, locked_until=None, stalled_count=stalled_count, **values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                if values["status"] == JOB_FAILED:
                    self._settle_application(job.application_id, STALLED_LIMIT_ERROR)
                handled.append((job.id, stalled_count, values["status"]))

        self.db.commit()

        for job_id, stalled_count, status in handled:
            self.logger.warning("Recovered stalled job", job_id=job_id, stalled_count=stalled_count, status=status)
            self._emit(
                QueueEventType.STALLED,
                job_id,
                stalled_count=stalled_count,
                failed=status == JOB_FAILED,
            )
        return len(handled)

    def fail_application(self, application_id: Optional[int], error: Optional[str]) -> bool:
        """Move an application still in analysis to analysis_failed.

        Used when its job has failed for good, so the application ends in
        a terminal state that records why.

        Returns:
            True if the application was updated
        """
        updated = self._settle_application(application_id, error)
        self.db.commit()
        return updated

    def _settle_application(self, application_id: Optional[int], error: Optional[str]) -> bool:
        if application_id is None:
            return False

        now = utcnow()
        result = self.db.execute(
            update(Application)
            .where(Application.id == application_id, Application.status == STATUS_ANALYZING)
            .values(
                status=STATUS_ANALYSIS_FAILED,
                analysis_error=error or "Analysis job failed",
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        self.logger.warning("Application marked analysis_failed", application_id=application_id, error=error)
        return True

    def get_counts(self) -> Dict[str, int]:
        """Get job counts by state."""
        rows = self.db.execute(
            select(QueueJob.status, func.count(QueueJob.id))
            .where(QueueJob.queue_name == self.queue_name)
            .group_by(QueueJob.status)
        ).all()

        counts = {state: 0 for state in JOB_STATES}
        for status, count in rows:
            counts[status] = count
        return counts

    def get_jobs(self, states: Iterable[str]) -> List[QueueJob]:
        """Get jobs in the given states, oldest first."""
        return list(
            self.db.execute(
                select(QueueJob)
                .where(QueueJob.queue_name == self.queue_name, QueueJob.status.in_(list(states)))
                .order_by(QueueJob.id)
            ).scalars().all()
        )

    def latest_job(self, application_id: int, job_type: str) -> Optional[QueueJob]:
        """Most recently created job of a type for an application."""
        return self.db.execute(
            select(QueueJob)
            .where(
                QueueJob.queue_name == self.queue_name,
                QueueJob.job_type == job_type,
                QueueJob.application_id == application_id,
            )
            .order_by(QueueJob.created_at.desc(), QueueJob.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def has_pending_job(self, application_id: int, job_type: str) -> bool:
        """True if a waiting, delayed or active job exists for the application."""
        found = self.db.scalar(
            select(func.count(QueueJob.id)).where(
                QueueJob.queue_name == self.queue_name,
                QueueJob.job_type == job_type,
                QueueJob.application_id == application_id,
                QueueJob.status.in_([JOB_WAITING, JOB_DELAYED, JOB_ACTIVE]),
            )
        )
        return bool(found)

    def remove(self, job_id: int) -> bool:
        """Delete a job. Active (leased) jobs cannot be removed."""
        result = self.db.execute(
            delete(QueueJob)
            .where(QueueJob.id == job_id, QueueJob.status != JOB_ACTIVE)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def clean(self, grace_seconds: float, state: str) -> int:
        """Delete jobs in a state that are older than the grace period.

        Finished jobs are aged by finished_at, others by created_at.
        """
        cutoff = utcnow() - timedelta(seconds=grace_seconds)
        age_column = QueueJob.finished_at if state in (JOB_COMPLETED, JOB_FAILED) else QueueJob.created_at

        result = self.db.execute(
            delete(QueueJob)
            .where(
                QueueJob.queue_name == self.queue_name,
                QueueJob.status == state,
                age_column < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        count = result.rowcount
        if count > 0:
            self.logger.info("Cleaned jobs", count=count, state=state, grace_seconds=grace_seconds)
        return count

    def pause(self) -> None:
        """Stop workers from claiming new jobs. Active jobs run to completion."""
        self._set_paused(True)
        self.logger.info("Queue paused")

    def resume(self) -> None:
        self._set_paused(False)
        self.logger.info("Queue resumed")

    def _set_paused(self, paused: bool) -> None:
        state = self.db.get(QueueState, self.queue_name, populate_existing=True)
        if state is None:
            self.db.add(QueueState(name=self.queue_name, is_paused=paused, updated_at=utcnow()))
        else:
            state.is_paused = paused
            state.updated_at = utcnow()
        self.db.commit()

    def is_paused(self) -> bool:
        paused = self.db.scalar(select(QueueState.is_paused).where(QueueState.name == self.queue_name))
        return bool(paused)

    def is_ready(self) -> bool:
        """Check that the queue tables can be reached."""
        try:
            self.db.execute(text("SELECT 1"))
            self.db.execute(select(QueueJob.id).limit(1))
            self.db.execute(select(QueueState.name).limit(1))
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            self.logger.error("Queue backend not reachable", error=str(e))
            return False

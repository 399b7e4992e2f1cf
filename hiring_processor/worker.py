"""Worker that executes jobs from the queue."""

import asyncio
import time
from functools import partial
from typing import Any, Callable, Dict, Optional, Tuple, Type

import structlog
from sqlalchemy.orm import Session

from hiring_processor.config import ProcessorSettings, settings as default_settings
from hiring_processor.database import SessionLocal
from hiring_processor.errors import JobTimeoutError
from hiring_processor.events import QueueEvent, QueueEvents, QueueEventType
from hiring_processor.processors.base import BaseProcessor
from hiring_processor.queue_manager import ClaimedJob, QueueManager


class Worker:
    """Executes jobs from the queue with concurrency control.

    Uses a session factory to create fresh sessions per job to avoid
    concurrency issues with shared sessions. Queue bookkeeping (claim,
    lease renewal, complete, fail) always runs on its own short-lived
    session so a handler's open transaction never blocks it.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        events: Optional[QueueEvents] = None,
        settings: Optional[ProcessorSettings] = None,
        queue_name: Optional[str] = None,
        logger=None,
    ):
        """Initialize worker.

        Args:
            session_factory: Factory function that creates new DB sessions
            events: Event bus shared with the queue managers
            settings: Processor settings (concurrency, intervals, leases)
            queue_name: Queue to consume, defaults to settings.QUEUE_NAME
            logger: Structured logger, defaults to one bound to the worker
        """
        self.session_factory = session_factory
        self.settings = settings or default_settings
        self.queue_name = queue_name or self.settings.QUEUE_NAME
        self.events = events or QueueEvents()
        self.logger = logger or structlog.get_logger().bind(component="worker")
        self.processors: Dict[str, Tuple[Type[BaseProcessor], Dict[str, Any]]] = {}
        self.running = False
        self.active_jobs: Dict[int, asyncio.Task] = {}
        self.max_concurrency = self.settings.QUEUE_MAX_CONCURRENCY
        self.poll_interval = self.settings.QUEUE_POLL_INTERVAL
        self._last_stalled_check = 0.0

    def register_processor(self, processor_class: Type[BaseProcessor], **dependencies: Any) -> None:
        """Register a processor for a job type.

        Args:
            processor_class: Processor class with job_type attribute
            dependencies: Extra keyword arguments passed to each processor instance
        """
        self.processors[processor_class.job_type] = (processor_class, dependencies)
        self.logger.info("Processor registered", job_type=processor_class.job_type)

    def _queue(self, db: Session) -> QueueManager:
        return QueueManager(db, queue_name=self.queue_name, settings=self.settings, events=self.events)

    def _create_processor(self, job: ClaimedJob, db: Session) -> BaseProcessor:
        """Create a processor instance with its own session.

        Raises:
            ValueError: If no processor registered for job type
        """
        if job.job_type not in self.processors:
            raise ValueError(f"No processor registered for job type: {job.job_type}")

        processor_class, dependencies = self.processors[job.job_type]
        return processor_class(db, self._queue(db), job, **dependencies)

    def _with_queue(self, action: Callable[[QueueManager], Any]) -> Any:
        """Run a queue operation on a fresh session (called from a thread)."""
        db = self.session_factory()
        try:
            return action(self._queue(db))
        finally:
            db.close()

    async def process_job(self, job: ClaimedJob) -> None:
        """Process a single leased job with its own database session.

        The handler runs under the job's time budget. On timeout the job is
        failed right away; the handler keeps running in the background and
        whatever it finishes with is only logged, since its lease is gone.
        """
        db = self.session_factory()
        db_owned_by_handler = False
        renew_task = asyncio.create_task(self._renew_lease(job))

        try:
            processor = self._create_processor(job, db)

            self.logger.info(
                "Processing job",
                job_id=job.id,
                job_type=job.job_type,
                application_id=job.application_id,
                attempt=job.attempts_made,
            )

            handler_task = asyncio.create_task(processor.process(job.payload))
            done, _ = await asyncio.wait({handler_task}, timeout=job.timeout_seconds)

            if handler_task in done:
                handler_task.result()
                await asyncio.to_thread(self._with_queue, lambda q: q.complete(job.id, job.lock_token))
            else:
                db_owned_by_handler = True
                handler_task.add_done_callback(partial(self._late_result, job, db))
                error = JobTimeoutError(f"Job {job.id} timed out after {job.timeout_seconds} seconds")
                self.logger.error("Job timed out", job_id=job.id, job_type=job.job_type, timeout=job.timeout_seconds)
                await asyncio.to_thread(self._with_queue, lambda q: q.fail(job.id, job.lock_token, str(error)))

        except Exception as e:
            self.logger.error(
                "Job failed",
                job_id=job.id,
                job_type=job.job_type,
                error=str(e),
                exc_info=True,
            )
            await asyncio.to_thread(self._with_queue, lambda q: q.fail(job.id, job.lock_token, str(e)))

        finally:
            renew_task.cancel()
            if not db_owned_by_handler:
                db.close()
            self.active_jobs.pop(job.id, None)

    def _late_result(self, job: ClaimedJob, db: Session, task: asyncio.Task) -> None:
        """Log the outcome of a handler that outlived its timeout."""
        try:
            if task.cancelled():
                self.logger.warning("Timed-out handler cancelled", job_id=job.id)
            elif task.exception() is not None:
                self.logger.warning("Timed-out handler failed", job_id=job.id, error=str(task.exception()))
            else:
                self.logger.warning("Timed-out handler finished, result discarded", job_id=job.id)
        finally:
            db.close()

    async def _renew_lease(self, job: ClaimedJob) -> None:
        """Extend the job's lease until cancelled or the lease is lost."""
        while True:
            await asyncio.sleep(self.settings.QUEUE_LOCK_RENEW_TIME)
            try:
                renewed = await asyncio.to_thread(
                    self._with_queue, lambda q: q.extend_lease(job.id, job.lock_token)
                )
            except Exception as e:
                self.logger.error("Lease renewal failed", job_id=job.id, error=str(e))
                continue

            if not renewed:
                self.logger.warning("Lease lost", job_id=job.id)
                return

    async def run(self) -> None:
        """Main worker loop."""
        self.running = True

        self.logger.info(
            "Worker started",
            queue=self.queue_name,
            max_concurrency=self.max_concurrency,
            registered_processors=list(self.processors.keys()),
        )

        while self.running:
            try:
                # Clean up completed tasks
                completed = [job_id for job_id, task in self.active_jobs.items() if task.done()]
                for job_id in completed:
                    del self.active_jobs[job_id]

                now = time.monotonic()
                if now - self._last_stalled_check >= self.settings.QUEUE_STALLED_INTERVAL:
                    self._last_stalled_check = now
                    await asyncio.to_thread(self._with_queue, lambda q: q.recover_stalled_jobs())

                # Check if we can take more jobs
                if len(self.active_jobs) >= self.max_concurrency:
                    await asyncio.sleep(self.settings.QUEUE_BUSY_INTERVAL)
                    continue

                job = await asyncio.to_thread(self._with_queue, lambda q: q.claim_next())

                if not job:
                    await asyncio.sleep(self.poll_interval)
                    continue

                # Start processing in background
                self.active_jobs[job.id] = asyncio.create_task(self.process_job(job))

            except Exception as e:
                self.logger.error("Worker loop error", error=str(e), exc_info=True)
                self.events.emit(
                    QueueEvent(type=QueueEventType.ERROR, queue_name=self.queue_name, data={"error": str(e)})
                )
                await asyncio.sleep(self.poll_interval)

        self.logger.info("Worker stopped")

    async def stop(self) -> None:
        """Stop the worker gracefully."""
        self.running = False

        # Wait for active jobs to complete
        if self.active_jobs:
            self.logger.info("Waiting for active jobs to complete", count=len(self.active_jobs))
            await asyncio.gather(*self.active_jobs.values(), return_exceptions=True)

        self.logger.info("Worker shutdown complete")

    def get_status(self) -> dict:
        """Get worker status."""
        counts = self._with_queue(lambda q: q.get_counts())

        return {
            "running": self.running,
            "active_jobs": len(self.active_jobs),
            "max_concurrency": self.max_concurrency,
            "registered_processors": list(self.processors.keys()),
            "queue_counts": counts,
        }

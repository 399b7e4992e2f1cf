"""Analyze processor for candidate/job match analysis."""

import asyncio
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from hiring_api.models import (
    Application,
    STATUS_ANALYZED,
    STATUS_ANALYZING,
    STATUS_ANALYSIS_FAILED,
    STATUS_PENDING,
    utcnow,
)
from hiring_processor.errors import NotFoundError
from hiring_processor.matching import MatchAnalysisEngine
from hiring_processor.processors.base import BaseProcessor
from hiring_processor.queue_manager import ClaimedJob, QueueManager

RETRY_SCHEDULED_NOTE = "Retry scheduled"


class AnalyzeApplicationProcessor(BaseProcessor):
    """Runs the match analysis for one application."""

    job_type = "analyze"

    def __init__(self, db: Session, queue: QueueManager, job: ClaimedJob, engine: MatchAnalysisEngine):
        super().__init__(db, queue, job)
        self.engine = engine

    async def process(self, payload: dict) -> None:
        """Process an analysis job.

        Args:
            payload: {"applicationId": <id>}
        """
        application_id = self.job.application_id
        if not application_id:
            raise ValueError("applicationId is required for analysis")

        self.logger.info("Starting match analysis", application_id=application_id, attempt=self.job.attempts_made)

        app = await asyncio.to_thread(self._get_application, application_id)
        if app is None:
            raise NotFoundError("Application", application_id)

        candidate_id, job_posting_id, status = app
        if status == STATUS_ANALYZED:
            # Redelivered after the analysis was already stored
            self.logger.info("Application already analyzed, skipping", application_id=application_id)
            return

        await asyncio.to_thread(self._update_status, application_id, STATUS_ANALYZING)
        await asyncio.to_thread(self.report_progress, 10)

        try:
            result = await self.engine.analyze(candidate_id, job_posting_id)
        except Exception as e:
            await asyncio.to_thread(self._record_failure, application_id, str(e))
            raise

        await asyncio.to_thread(self.report_progress, 100)

        self.logger.info(
            "Match analysis complete",
            application_id=application_id,
            provenance=result.provenance.value,
            score=result.record.score,
        )

    def _get_application(self, application_id: int):
        app = self.db.get(Application, application_id, populate_existing=True)
        if app is None:
            return None
        return app.candidate_id, app.job_posting_id, app.status

    def _record_failure(self, application_id: int, error: str) -> None:
        """Leave the application in an explainable state after a failed attempt."""
        if self.job.is_final_attempt:
            self._update_status(application_id, STATUS_ANALYSIS_FAILED, error=error)
        else:
            self._update_status(application_id, STATUS_PENDING, note=RETRY_SCHEDULED_NOTE)

    def _update_status(
        self,
        application_id: int,
        status: str,
        note: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        """Update application status with one targeted update."""
        values = {"status": status, "updated_at": utcnow()}
        if note is not None:
            values["status_note"] = note
        if error is not None:
            values["analysis_error"] = error

        self.db.execute(
            update(Application)
            .where(Application.id == application_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

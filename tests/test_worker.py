"""Tests for the worker and the analyze processor."""

import asyncio
import json
from types import SimpleNamespace

import pytest

from hiring_api.models import (
    Application,
    QueueJob,
    JOB_COMPLETED,
    JOB_DELAYED,
    JOB_FAILED,
    STATUS_ANALYSIS_FAILED,
    STATUS_ANALYZED,
    STATUS_PENDING,
)
from hiring_processor.matching import MatchAnalysisEngine
from hiring_processor.processors import AnalyzeApplicationProcessor, BaseProcessor
from hiring_processor.queue_manager import JobOptions
from hiring_processor.retry import RetryPolicy
from hiring_processor.worker import Worker

from .conftest import FakeGenerator


class SlowProcessor(BaseProcessor):
    job_type = "slow"

    async def process(self, payload: dict) -> None:
        await asyncio.sleep(0.3)


class BrokenEngine:
    def __init__(self):
        self.calls = 0

    async def analyze(self, candidate_id, job_posting_id):
        self.calls += 1
        raise RuntimeError("model unavailable")


class HangingEngine:
    """Engine whose analysis outlives the job budget."""

    async def analyze(self, candidate_id, job_posting_id):
        await asyncio.sleep(1.0)
        return SimpleNamespace(provenance=SimpleNamespace(value="complete"), record=SimpleNamespace(score=0))


@pytest.fixture
def worker(session_factory, events, processor_settings):
    return Worker(session_factory, events=events, settings=processor_settings)


@pytest.fixture
def application(seed):
    candidate = seed.candidate()
    posting = seed.job_posting()
    return seed.application(candidate.id, posting.id)


def claim(worker):
    return worker._with_queue(lambda q: q.claim_next())


def job_row(session_factory, job_id):
    db = session_factory()
    try:
        job = db.get(QueueJob, job_id)
        db.expunge(job)
        return job
    finally:
        db.close()


def app_row(session_factory, application_id):
    db = session_factory()
    try:
        app = db.get(Application, application_id)
        db.expunge(app)
        return app
    finally:
        db.close()


async def test_analysis_job_runs_end_to_end(worker, queue, session_factory, application, valid_analysis):
    engine = MatchAnalysisEngine(session_factory, FakeGenerator(valid_analysis), retry_policy=RetryPolicy(base_delay=0))
    worker.register_processor(AnalyzeApplicationProcessor, engine=engine)
    job_id = queue.enqueue("analyze", {"applicationId": application.id})

    await worker.process_job(claim(worker))

    job = job_row(session_factory, job_id)
    assert job.status == JOB_COMPLETED
    assert job.progress == 100
    app = app_row(session_factory, application.id)
    assert app.status == STATUS_ANALYZED
    assert json.loads(app.analysis)["provenance"] == "complete"


async def test_run_loop_picks_up_jobs(worker, queue, session_factory, application, valid_analysis):
    engine = MatchAnalysisEngine(session_factory, FakeGenerator(valid_analysis), retry_policy=RetryPolicy(base_delay=0))
    worker.register_processor(AnalyzeApplicationProcessor, engine=engine)
    job_id = queue.enqueue("analyze", {"applicationId": application.id})

    loop_task = asyncio.create_task(worker.run())
    try:
        for _ in range(100):
            if job_row(session_factory, job_id).status == JOB_COMPLETED:
                break
            await asyncio.sleep(0.05)
    finally:
        await worker.stop()
        await loop_task

    assert job_row(session_factory, job_id).status == JOB_COMPLETED
    assert worker.get_status()["queue_counts"][JOB_COMPLETED] == 1


async def test_timed_out_job_is_failed(worker, queue, session_factory):
    worker.register_processor(SlowProcessor)
    job_id = queue.enqueue("slow", {}, JobOptions(attempts=3, backoff_delay=0, timeout=0.05))

    await worker.process_job(claim(worker))

    job = job_row(session_factory, job_id)
    assert job.status == JOB_DELAYED
    assert "timed out" in job.last_error

    # Let the abandoned handler finish
    await asyncio.sleep(0.4)
    assert job_row(session_factory, job_id).status == JOB_DELAYED


async def test_unregistered_job_type_fails(worker, queue, session_factory):
    job_id = queue.enqueue("unknown", {}, JobOptions(attempts=1, backoff_delay=0, timeout=5))

    await worker.process_job(claim(worker))

    job = job_row(session_factory, job_id)
    assert job.status == JOB_FAILED
    assert "No processor registered" in job.last_error


async def test_failed_analysis_retries_then_marks_application(worker, queue, session_factory, application):
    engine = BrokenEngine()
    worker.register_processor(AnalyzeApplicationProcessor, engine=engine)
    job_id = queue.enqueue("analyze", {"applicationId": application.id}, JobOptions(attempts=2, backoff_delay=0, timeout=5))

    await worker.process_job(claim(worker))

    assert job_row(session_factory, job_id).status == JOB_DELAYED
    app = app_row(session_factory, application.id)
    assert app.status == STATUS_PENDING
    assert app.status_note == "Retry scheduled"

    await worker.process_job(claim(worker))

    assert job_row(session_factory, job_id).status == JOB_FAILED
    app = app_row(session_factory, application.id)
    assert app.status == STATUS_ANALYSIS_FAILED
    assert app.analysis_error == "model unavailable"
    assert engine.calls == 2


async def test_already_analyzed_application_is_skipped(worker, queue, session_factory, seed):
    candidate = seed.candidate()
    posting = seed.job_posting()
    application = seed.application(candidate.id, posting.id, status=STATUS_ANALYZED)
    engine = BrokenEngine()
    worker.register_processor(AnalyzeApplicationProcessor, engine=engine)
    job_id = queue.enqueue("analyze", {"applicationId": application.id})

    await worker.process_job(claim(worker))

    assert engine.calls == 0
    assert job_row(session_factory, job_id).status == JOB_COMPLETED


async def test_missing_application_fails_the_job(worker, queue, session_factory):
    worker.register_processor(AnalyzeApplicationProcessor, engine=BrokenEngine())
    job_id = queue.enqueue("analyze", {"applicationId": 404}, JobOptions(attempts=1, backoff_delay=0, timeout=5))

    await worker.process_job(claim(worker))

    job = job_row(session_factory, job_id)
    assert job.status == JOB_FAILED
    assert "Application 404 not found" in job.last_error


async def test_timeout_on_final_attempt_fails_the_application(worker, queue, session_factory, application):
    worker.register_processor(AnalyzeApplicationProcessor, engine=HangingEngine())
    job_id = queue.enqueue("analyze", {"applicationId": application.id}, JobOptions(attempts=1, backoff_delay=0, timeout=0.5))

    await worker.process_job(claim(worker))

    assert job_row(session_factory, job_id).status == JOB_FAILED
    app = app_row(session_factory, application.id)
    assert app.status == STATUS_ANALYSIS_FAILED
    assert "timed out" in app.analysis_error

    # The abandoned handler finishing late does not revive the application
    await asyncio.sleep(0.8)
    assert app_row(session_factory, application.id).status == STATUS_ANALYSIS_FAILED

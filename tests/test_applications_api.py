"""Tests for the application submission API."""

import json

import pytest
from fastapi.testclient import TestClient

from hiring_api.config.database import get_db
from hiring_api.main import create_app
from hiring_api.models import Application, QueueJob, JOB_WAITING, STATUS_ANALYZED, STATUS_PENDING


@pytest.fixture
def client(session_factory):
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def pair(seed):
    return seed.candidate(), seed.job_posting()


def submit(client, candidate_id, job_posting_id):
    return client.post("/api/v1/applications", json={"candidateId": candidate_id, "jobPostingId": job_posting_id})


def test_submission_creates_application_and_job(client, db, pair):
    candidate, posting = pair

    resp = submit(client, candidate.id, posting.id)

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == STATUS_PENDING

    application = db.get(Application, body["id"])
    assert application.candidate_id == candidate.id
    job = db.get(QueueJob, body["queueJobId"])
    assert job.status == JOB_WAITING
    assert job.job_type == "analyze"
    assert job.queue_name == "application-analysis"
    assert json.loads(job.payload) == {"applicationId": application.id}


def test_duplicate_submission_is_rejected(client, db, pair):
    candidate, posting = pair
    assert submit(client, candidate.id, posting.id).status_code == 201

    resp = submit(client, candidate.id, posting.id)

    assert resp.status_code == 409
    error = resp.json()["error"]
    assert error["code"] == "ALREADY_APPLIED"
    assert error["message"] == "You have already applied for this position"
    assert db.query(Application).count() == 1
    assert db.query(QueueJob).count() == 1


def test_unknown_job_posting_is_404(client, seed):
    candidate = seed.candidate()

    resp = submit(client, candidate.id, 4242)

    assert resp.status_code == 404
    assert resp.json()["error"] == {
        "code": "NOT_FOUND",
        "message": "Job posting not found",
        "details": {"resource": "Job posting", "id": 4242},
    }


def test_unknown_candidate_is_404(client, db, seed):
    posting = seed.job_posting()

    resp = submit(client, 4242, posting.id)

    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Candidate not found"
    assert db.query(QueueJob).count() == 0


def test_invalid_body_is_422(client):
    resp = client.post("/api/v1/applications", json={"candidateId": 0})

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_get_application_returns_parsed_analysis(client, seed, pair):
    candidate, posting = pair
    application = seed.application(
        candidate.id,
        posting.id,
        status=STATUS_ANALYZED,
        analysis=json.dumps({"provenance": "complete", "score": 78}),
    )

    resp = client.get(f"/api/v1/applications/{application.id}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == STATUS_ANALYZED
    assert body["jobPostingId"] == posting.id
    assert body["analysis"] == {"provenance": "complete", "score": 78}


def test_get_missing_application_is_404(client):
    resp = client.get("/api/v1/applications/999")

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


def test_health_reports_queue_backlog(client, pair):
    candidate, posting = pair
    submit(client, candidate.id, posting.id)

    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["queue"][JOB_WAITING] == 1
    assert client.get("/health").json()["status"] == "ok"

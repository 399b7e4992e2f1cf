"""
Pytest configuration and fixtures.

Every test gets its own SQLite database file so sessions opened from
worker threads see the same data.
"""

import json
from typing import Any, List, Union

import pytest
from sqlalchemy.orm import sessionmaker

from hiring_api.config.database import Base, build_engine
from hiring_api.models import Application, Candidate, JobPosting, STATUS_PENDING
from hiring_processor.config import ProcessorSettings
from hiring_processor.events import QueueEvents
from hiring_processor.queue_manager import QueueManager


VALID_ANALYSIS = {
    "resume": {
        "score": 78,
        "correspondance": {
            "competences": 80,
            "experience": True,
            "formation": True,
            "langues": 60,
        },
        "matchedKeywords": ["Node.js", "MongoDB"],
        "highlightsToStandOut": ["Five years of backend work"],
        "suggestions": ["Add a Kubernetes certification"],
    },
    "signauxAlerte": [
        {"type": "Compétence", "probleme": "No Kubernetes experience", "severite": "moyenne", "score": 40},
        {"type": "Langue", "probleme": "English level not stated", "severite": "faible", "score": 70},
    ],
}


class FakeGenerator:
    """Text generator returning scripted replies.

    Each reply is a string, a dict (sent as JSON) or an exception to raise.
    The last reply repeats once the script runs out.
    """

    def __init__(self, *replies: Union[str, dict, Exception]):
        self.replies: List[Any] = list(replies)
        self.prompts: List[str] = []

    async def generate_content(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply

    @property
    def calls(self) -> int:
        return len(self.prompts)


class Seeder:
    """Creates rows for tests."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _add(self, obj):
        db = self.session_factory()
        try:
            db.add(obj)
            db.commit()
            db.refresh(obj)
            db.expunge(obj)
            return obj
        finally:
            db.close()

    def candidate(self, **overrides) -> Candidate:
        values = {
            "full_name": "Amira Ben Salah",
            "email": "amira@example.com",
            "skills": json.dumps([{"name": "Node.js"}, {"name": "MongoDB"}, {"name": "Python"}]),
            "experience": json.dumps([{"position": "Backend developer", "company": "Vermeg", "years": 5}]),
            "education": json.dumps([{"degree": "Master", "field_of_study": "Computer Science"}]),
            "years_of_experience": 5,
            "city": "Tunis",
            "country": "Tunisia",
        }
        values.update(overrides)
        return self._add(Candidate(**values))

    def job_posting(self, **overrides) -> JobPosting:
        values = {
            "title": "Backend Developer",
            "company_name": "Acme",
            "education_level": "Master",
            "field_of_study": "Computer Science",
            "years_experience_required": 3,
            "experience_domain": "Web development",
            "hard_skills": "NodeJS, Mongoose, Docker",
            "languages": "French, English",
        }
        values.update(overrides)
        return self._add(JobPosting(**values))

    def application(self, candidate_id: int, job_posting_id: int, **overrides) -> Application:
        values = {"candidate_id": candidate_id, "job_posting_id": job_posting_id, "status": STATUS_PENDING}
        values.update(overrides)
        return self._add(Application(**values))


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def processor_settings():
    return ProcessorSettings(
        QUEUE_BACKOFF_DELAY=1.0,
        QUEUE_LIMITER_MAX=0,
        QUEUE_POLL_INTERVAL=0.05,
        QUEUE_BUSY_INTERVAL=0.05,
        QUEUE_STALLED_INTERVAL=0.05,
        QUEUE_LOCK_RENEW_TIME=0.05,
    )


@pytest.fixture
def events():
    return QueueEvents()


@pytest.fixture
def queue(db, processor_settings, events):
    return QueueManager(db, settings=processor_settings, events=events)


@pytest.fixture
def valid_analysis():
    return json.loads(json.dumps(VALID_ANALYSIS))

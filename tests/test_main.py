"""Tests for processor service startup."""

import pytest
from sqlalchemy.orm import sessionmaker

from hiring_api.config.database import build_engine
from hiring_processor import main
from hiring_processor.errors import QueueNotReadyError


@pytest.fixture
def empty_session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def test_startup_refuses_queue_without_tables(monkeypatch, empty_session_factory):
    monkeypatch.setattr(main, "SessionLocal", empty_session_factory)
    service = main.ProcessorService()

    with pytest.raises(QueueNotReadyError) as exc_info:
        service._check_queue_ready()

    assert "application-analysis" in str(exc_info.value)


def test_startup_accepts_reachable_queue(monkeypatch, session_factory):
    monkeypatch.setattr(main, "SessionLocal", session_factory)

    main.ProcessorService()._check_queue_ready()

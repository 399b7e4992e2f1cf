"""Tests for the match analysis engine."""

import json

import pytest

from hiring_api.models import Application, STATUS_ANALYZED, STATUS_PENDING
from hiring_processor.errors import NotFoundError, TransientGenerationError
from hiring_processor.matching import Complete, Fallback, MatchAnalysisEngine, Provenance, Recovered
from hiring_processor.matching.engine import parse_json_payload
from hiring_processor.retry import RetryPolicy

from .conftest import FakeGenerator


@pytest.fixture
def pair(seed):
    candidate = seed.candidate()
    posting = seed.job_posting()
    application = seed.application(candidate.id, posting.id)
    return candidate, posting, application


def make_engine(session_factory, generator):
    return MatchAnalysisEngine(session_factory, generator, retry_policy=RetryPolicy(max_attempts=3, base_delay=0))


def stored(session_factory, application_id):
    db = session_factory()
    try:
        app = db.get(Application, application_id)
        return app.status, json.loads(app.analysis) if app.analysis else None, app.analyzed_at
    finally:
        db.close()


class TestParseJsonPayload:
    def test_plain_json(self):
        assert parse_json_payload('{"a": 1}') == {"a": 1}

    def test_code_fences_are_stripped(self):
        assert parse_json_payload('```json\n{"a": 1}\n```') == {"a": 1}

    def test_object_is_salvaged_from_prose(self):
        assert parse_json_payload('Here you go: {"a": {"b": 2}} hope it helps') == {"a": {"b": 2}}

    def test_no_json_raises(self):
        with pytest.raises(TransientGenerationError):
            parse_json_payload("I cannot analyze this profile.")

    def test_broken_json_raises(self):
        with pytest.raises(TransientGenerationError):
            parse_json_payload('{"resume": {"score": 80,')


async def test_complete_analysis_is_persisted(session_factory, pair, valid_analysis):
    candidate, posting, application = pair
    generator = FakeGenerator(valid_analysis)

    result = await make_engine(session_factory, generator).analyze(candidate.id, posting.id)

    assert isinstance(result.outcome, Complete)
    assert result.provenance == Provenance.COMPLETE
    assert generator.calls == 1

    status, analysis, analyzed_at = stored(session_factory, application.id)
    assert status == STATUS_ANALYZED
    assert analyzed_at is not None
    assert analysis["provenance"] == "complete"
    assert analysis["score"] == 78
    assert analysis["market"]["salary_range"] == {"min": result.salary.min, "max": result.salary.max, "currency": "TND"}


async def test_prompt_carries_skill_hints(session_factory, pair, valid_analysis):
    candidate, posting, _ = pair
    generator = FakeGenerator(valid_analysis)

    await make_engine(session_factory, generator).analyze(candidate.id, posting.id)

    prompt = generator.prompts[0]
    assert "Potential skill matches detected: Node.js, MongoDB" in prompt
    assert "Backend Developer" in prompt
    assert prompt.rstrip().endswith("Output ONLY the JSON - no additional text, comments or markdown.")


async def test_transport_error_is_retried(session_factory, pair, valid_analysis):
    candidate, posting, _ = pair
    generator = FakeGenerator(ConnectionError("reset by peer"), f"```json\n{json.dumps(valid_analysis)}\n```")

    result = await make_engine(session_factory, generator).analyze(candidate.id, posting.id)

    assert isinstance(result.outcome, Complete)
    assert generator.calls == 2


async def test_two_unusable_replies_then_a_valid_one(session_factory, pair, valid_analysis):
    candidate, posting, _ = pair
    generator = FakeGenerator("not json", {"resume": {"score": 70}}, valid_analysis)

    result = await make_engine(session_factory, generator).analyze(candidate.id, posting.id)

    assert isinstance(result.outcome, Complete)
    assert generator.calls == 3
    assert result.record.score == 78


async def test_non_json_output_falls_back_after_three_attempts(session_factory, pair):
    candidate, posting, application = pair
    generator = FakeGenerator("Sorry, I can't help with that.")

    result = await make_engine(session_factory, generator).analyze(candidate.id, posting.id)

    assert isinstance(result.outcome, Fallback)
    assert generator.calls == 3
    assert result.record.score == 50

    status, analysis, _ = stored(session_factory, application.id)
    assert status == STATUS_ANALYZED
    assert analysis["provenance"] == "fallback"
    assert analysis["score"] == 50
    assert analysis["market"]["salary_range"]["currency"] == "TND"


async def test_incomplete_json_is_recovered(session_factory, pair):
    candidate, posting, application = pair
    partial = {"resume": {"score": 64, "matchedKeywords": ["Node.js"]}}
    generator = FakeGenerator(partial)

    result = await make_engine(session_factory, generator).analyze(candidate.id, posting.id)

    assert isinstance(result.outcome, Recovered)
    assert generator.calls == 3
    assert result.record.matched_keywords == ["Node.js"]
    assert len(result.record.alerts) >= 1

    _, analysis, _ = stored(session_factory, application.id)
    assert analysis["provenance"] == "recovered"


async def test_invalid_structured_payload_is_recovered_without_retry(session_factory, pair, valid_analysis):
    candidate, posting, _ = pair
    valid_analysis["resume"]["score"] = "eighty"
    generator = FakeGenerator(valid_analysis)

    result = await make_engine(session_factory, generator).analyze(candidate.id, posting.id)

    assert isinstance(result.outcome, Recovered)
    assert generator.calls == 1
    assert result.record.sub_scores.skills_match == 80
    assert result.record.score == 0


async def test_missing_job_posting_raises_before_generation(session_factory, seed, valid_analysis):
    candidate = seed.candidate()
    generator = FakeGenerator(valid_analysis)

    with pytest.raises(NotFoundError) as exc_info:
        await make_engine(session_factory, generator).analyze(candidate.id, 9999)

    assert exc_info.value.resource == "Job posting"
    assert generator.calls == 0


async def test_missing_candidate_raises(session_factory, seed, valid_analysis):
    posting = seed.job_posting()

    with pytest.raises(NotFoundError) as exc_info:
        await make_engine(session_factory, FakeGenerator(valid_analysis)).analyze(9999, posting.id)

    assert exc_info.value.resource == "Candidate"


async def test_missing_application_is_never_inserted(session_factory, seed, db, valid_analysis):
    candidate = seed.candidate()
    posting = seed.job_posting()

    with pytest.raises(NotFoundError):
        await make_engine(session_factory, FakeGenerator(valid_analysis)).analyze(candidate.id, posting.id)

    assert db.query(Application).count() == 0


async def test_only_the_matching_application_is_updated(session_factory, seed, valid_analysis):
    candidate = seed.candidate()
    other_candidate = seed.candidate(full_name="Other", email="other@example.com")
    posting = seed.job_posting()
    target = seed.application(candidate.id, posting.id)
    other = seed.application(other_candidate.id, posting.id)

    await make_engine(session_factory, FakeGenerator(valid_analysis)).analyze(candidate.id, posting.id)

    assert stored(session_factory, target.id)[0] == STATUS_ANALYZED
    other_status, other_analysis, _ = stored(session_factory, other.id)
    assert other_status == STATUS_PENDING
    assert other_analysis is None

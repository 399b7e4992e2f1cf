"""Match analysis engine: candidate vs. job posting, via the AI."""

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Tuple, Union

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from hiring_api.models import Application, Candidate, JobPosting, STATUS_ANALYZED, utcnow
from hiring_processor.config import settings
from hiring_processor.errors import NotFoundError, TransientGenerationError
from hiring_processor.matching.formatter import MatchResponseFormatter
from hiring_processor.matching.profiles import CandidateProfile, JobRequirements
from hiring_processor.matching.prompt import build_match_prompt
from hiring_processor.matching.salary import SalaryRange, estimate_salary_range
from hiring_processor.matching.schemas import AnalysisRecord, MatchResponse, Provenance
from hiring_processor.matching.skills import find_potential_matches
from hiring_processor.retry import RetryPolicy, retry_with_policy

REQUIRED_KEYS = ("resume", "signauxAlerte")

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


class TextGenerator(Protocol):
    async def generate_content(self, prompt: str) -> str:
        ...


@dataclass(frozen=True)
class Complete:
    response: MatchResponse

    @property
    def provenance(self) -> Provenance:
        return Provenance.COMPLETE


@dataclass(frozen=True)
class Recovered:
    response: MatchResponse
    reason: str

    @property
    def provenance(self) -> Provenance:
        return Provenance.RECOVERED


@dataclass(frozen=True)
class Fallback:
    response: MatchResponse
    reason: str

    @property
    def provenance(self) -> Provenance:
        return Provenance.FALLBACK


MatchOutcome = Union[Complete, Recovered, Fallback]


@dataclass
class AnalysisResult:
    """Outcome of one analysis plus what was persisted for it."""

    outcome: MatchOutcome
    record: AnalysisRecord
    salary: SalaryRange

    @property
    def provenance(self) -> Provenance:
        return self.outcome.provenance


def parse_json_payload(text: str) -> Any:
    """Parse AI output as JSON.

    Markdown code fences are stripped first; if the text still does not
    parse, the outermost {...} substring is tried.

    Raises:
        TransientGenerationError: If no JSON can be extracted
    """
    cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", (text or "").strip()))

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise TransientGenerationError("AI response contains no JSON object")

    try:
        return json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        raise TransientGenerationError(f"AI response is not valid JSON: {e}") from e


def has_required_keys(payload: Any) -> bool:
    return isinstance(payload, dict) and all(key in payload for key in REQUIRED_KEYS)


class MatchAnalysisEngine:
    """Analyzes how well a candidate fits a job posting.

    The AI call is retried under a RetryPolicy. Whatever comes back, the
    engine always ends with an analysis on the application: a complete one,
    one recovered from partial output, or a neutral fallback.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        generator: TextGenerator,
        formatter: Optional[MatchResponseFormatter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        logger=None,
    ):
        self.session_factory = session_factory
        self.generator = generator
        self.formatter = formatter or MatchResponseFormatter()
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.ANALYSIS_MAX_ATTEMPTS,
            base_delay=settings.ANALYSIS_RETRY_DELAY,
        )
        self.logger = logger or structlog.get_logger().bind(component="match_engine")

    async def analyze(self, candidate_id: int, job_posting_id: int) -> AnalysisResult:
        """Analyze a candidate against a job posting and store the result.

        Args:
            candidate_id: Candidate to analyze
            job_posting_id: Job posting to match against

        Returns:
            AnalysisResult with the outcome and the stored record

        Raises:
            NotFoundError: If the candidate, the job posting or the
                application linking them does not exist
        """
        log = self.logger.bind(candidate_id=candidate_id, job_posting_id=job_posting_id)
        log.info("Starting match analysis")

        job_result, candidate_result = await asyncio.gather(
            asyncio.to_thread(self._load_job, job_posting_id),
            asyncio.to_thread(self._load_candidate, candidate_id),
            return_exceptions=True,
        )
        for loaded in (job_result, candidate_result):
            if isinstance(loaded, BaseException):
                raise loaded
        job: JobRequirements = job_result
        candidate: CandidateProfile = candidate_result

        potential_matches = find_potential_matches(candidate.skill_names, job.skill_list)
        log.debug("Potential skill matches", matches=potential_matches)

        prompt = build_match_prompt(job, candidate, potential_matches)
        salary = estimate_salary_range(
            candidate.years_of_experience,
            candidate.skill_names,
            candidate.education_summary,
            job.title,
        )

        payload, partial, error = await self._generate(prompt, log)
        outcome, record = self._evaluate(payload, partial, error, candidate, salary, log)

        await asyncio.to_thread(self._persist, candidate_id, job_posting_id, record)

        log.info(
            "Match analysis stored",
            provenance=outcome.provenance.value,
            score=record.score,
        )
        return AnalysisResult(outcome=outcome, record=record, salary=salary)

    def _load_candidate(self, candidate_id: int) -> CandidateProfile:
        db = self.session_factory()
        try:
            candidate = db.get(Candidate, candidate_id)
            if candidate is None:
                raise NotFoundError("Candidate", candidate_id)
            return CandidateProfile.from_model(candidate)
        finally:
            db.close()

    def _load_job(self, job_posting_id: int) -> JobRequirements:
        db = self.session_factory()
        try:
            posting = db.get(JobPosting, job_posting_id)
            if posting is None:
                raise NotFoundError("Job posting", job_posting_id)
            return JobRequirements.from_model(posting)
        finally:
            db.close()

    async def _generate(self, prompt: str, log) -> Tuple[Optional[dict], Optional[dict], Optional[str]]:
        """Ask the AI until a structurally valid payload comes back.

        Returns:
            (valid payload or None, last parsed dict or None, last error)
        """
        last_payload: Optional[dict] = None

        async def attempt(number: int) -> dict:
            nonlocal last_payload
            try:
                text = await self.generator.generate_content(prompt)
            except Exception as e:
                raise TransientGenerationError(f"AI generation failed: {e}") from e

            payload = parse_json_payload(text)
            if isinstance(payload, dict):
                last_payload = payload

            if not has_required_keys(payload):
                raise TransientGenerationError("AI response is missing the resume or signauxAlerte section")

            log.debug("AI response accepted", attempt=number)
            return payload

        try:
            payload = await retry_with_policy(
                attempt,
                self.retry_policy,
                retry_on=(TransientGenerationError,),
                logger=log,
            )
            return payload, last_payload, None
        except TransientGenerationError as e:
            return None, last_payload, str(e)

    def _evaluate(
        self,
        payload: Optional[dict],
        partial: Optional[dict],
        error: Optional[str],
        candidate: CandidateProfile,
        salary: SalaryRange,
        log,
    ) -> Tuple[MatchOutcome, AnalysisRecord]:
        skills = candidate.skill_names

        if payload is not None:
            try:
                response = self.formatter.validate(payload)
                record = self.formatter.format(response, Provenance.COMPLETE, salary, skills)
                return Complete(response), record
            except (ValueError, TypeError) as e:
                log.warning("AI response failed validation, recovering", error=str(e))
                partial = payload
                reason = f"Validation failed: {e}"
        else:
            reason = f"Incomplete AI response: {error}"

        if partial is not None:
            try:
                response = self.formatter.recover(partial)
                record = self.formatter.format(response, Provenance.RECOVERED, salary, skills, reason)
                return Recovered(response, reason), record
            except (ValueError, TypeError) as e:
                log.error("Recovery failed, using fallback analysis", error=str(e))
                reason = f"Recovery failed: {e}"
        else:
            log.warning("No usable AI response, using fallback analysis", error=error)
            reason = f"No usable AI response: {error}"

        response = self.formatter.fallback()
        record = self.formatter.format(response, Provenance.FALLBACK, salary, skills, reason)
        return Fallback(response, reason), record

    def _persist(self, candidate_id: int, job_posting_id: int, record: AnalysisRecord) -> None:
        """Store the analysis with one targeted update. Never inserts."""
        db = self.session_factory()
        try:
            now = utcnow()
            result = db.execute(
                update(Application)
                .where(
                    Application.candidate_id == candidate_id,
                    Application.job_posting_id == job_posting_id,
                )
                .values(
                    status=STATUS_ANALYZED,
                    analyzed_at=now,
                    analysis=record.model_dump_json(),
                    analysis_error=None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                db.rollback()
                raise NotFoundError(
                    "Application",
                    f"for candidate {candidate_id} and job posting {job_posting_id}",
                )
            db.commit()
        finally:
            db.close()

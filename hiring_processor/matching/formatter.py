"""Validation, recovery and formatting of AI match responses."""

import math
from typing import Any, Iterable, List, Optional

import structlog

from hiring_processor.matching.salary import SalaryRange
from hiring_processor.matching.schemas import (
    AnalysisRecord,
    CategoryFit,
    CompetenceType,
    Correspondance,
    MarketInsight,
    MatchAlert,
    MatchResponse,
    MatchSummary,
    Provenance,
    Recommendation,
    RecordAlert,
    ResumeBlock,
    SalaryRangeData,
    Severity,
    SubScores,
    normalize_category,
    normalize_severity,
)
from hiring_processor.matching.scoring import apply_score_caps

MAX_RECOVERED_SUGGESTIONS = 5
MAX_RECOVERED_ALERTS = 10

RECOVERY_SUGGESTION = "Automatic analysis ran into problems, please review the profile manually"
RECOVERY_ALERT = "Data partially recovered after an analysis error"
RECOVERY_KEYWORDS = ["technologies", "technical skills"]

FALLBACK_ALERT = "Automatic analysis could not produce a structured result"
FALLBACK_SUGGESTION = "Automatic analysis could not be completed, please review the profile manually"
FALLBACK_KEYWORDS = ["technical skills", "professional aptitudes"]

STANDARD_ACTION = "Proceed with the standard evaluation"

SEVERITY_RANK = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}

CATEGORY_FIT_LEVEL = {
    Severity.LOW: "Excellent",
    Severity.MEDIUM: "Good",
    Severity.HIGH: "Needs improvement",
}


def hiring_potential(score: float) -> str:
    if score >= 65:
        return "High"
    if score >= 50:
        return "Medium"
    return "Low"


def recruitment_time(score: float) -> str:
    if score >= 75:
        return "1-2 weeks"
    if score >= 60:
        return "2-4 weeks"
    return "4+ weeks"


def match_level(score: float) -> str:
    if score >= 85:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 50:
        return "Average"
    return "Weak"


def decision(score: float) -> str:
    if score >= 85:
        return "Strongly recommended"
    if score >= 70:
        return "Recommended"
    if score >= 50:
        return "Consider"
    return "Not recommended"


def category_fit(category: CompetenceType, alerts: List[RecordAlert]) -> CategoryFit:
    """Fit level of one category, taken from the first alert about it."""
    alert = next((a for a in alerts if a.category == category), None)
    if alert is None:
        return CategoryFit(level="Not evaluated", details=[])
    return CategoryFit(level=CATEGORY_FIT_LEVEL[alert.severity], details=[alert.description])


def suggested_action(alerts: List[RecordAlert]) -> str:
    high = next((a for a in alerts if a.severity == Severity.HIGH), None)
    if high is not None:
        return "Priority action: " + high.description
    medium = next((a for a in alerts if a.severity == Severity.MEDIUM), None)
    if medium is not None:
        return medium.description
    return STANDARD_ACTION


def candidate_feedback(alerts: List[RecordAlert]) -> List[str]:
    """Alert descriptions, most severe first."""
    ordered = sorted(alerts, key=lambda a: SEVERITY_RANK[a.severity], reverse=True)
    return [a.description for a in ordered if a.description]


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0
    return max(0, min(100, value))


def _boolean(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


class MatchResponseFormatter:
    """Turns AI output into a validated MatchResponse and then an AnalysisRecord.

    validate() is strict, recover() salvages whatever is usable from a
    partial payload and fallback() produces a neutral response when there
    is nothing to salvage.
    """

    def __init__(self, logger=None):
        self.logger = logger or structlog.get_logger().bind(component="match_formatter")

    def validate(self, payload: dict) -> MatchResponse:
        """Validate a structurally complete payload.

        Missing or null optional arrays are filled with empty lists first.

        Raises:
            pydantic.ValidationError: If the payload does not fit the schema
        """
        data = dict(payload)

        resume = data.get("resume")
        if isinstance(resume, dict):
            resume = dict(resume)
            for key in ("matchedKeywords", "highlightsToStandOut", "suggestions"):
                if resume.get(key) is None:
                    resume[key] = []
            data["resume"] = resume

        if data.get("signauxAlerte") is None:
            data["signauxAlerte"] = []

        return MatchResponse.model_validate(data)

    def recover(self, partial: Any) -> MatchResponse:
        """Build a usable response out of a partial or invalid payload.

        Every field is type-checked on its own; anything unusable takes a
        neutral default. The result always carries at least one keyword and
        one alert.

        Raises:
            ValueError: If the payload is not a JSON object
        """
        if not isinstance(partial, dict):
            raise ValueError("Cannot recover a match response from a non-object payload")

        resume = _mapping(partial.get("resume"))
        correspondance = _mapping(resume.get("correspondance"))

        if isinstance(resume.get("suggestions"), list):
            suggestions = _strings(resume["suggestions"])[:MAX_RECOVERED_SUGGESTIONS]
        else:
            suggestions = [RECOVERY_SUGGESTION]

        alerts = []
        raw_alerts = partial.get("signauxAlerte")
        for raw in raw_alerts if isinstance(raw_alerts, list) else []:
            if not isinstance(raw, dict) or not isinstance(raw.get("probleme"), str):
                continue

            category = normalize_category(raw.get("type"))
            severity = normalize_severity(raw.get("severite"))
            alerts.append(
                MatchAlert(
                    type=category if isinstance(category, CompetenceType) else CompetenceType.SKILL,
                    probleme=raw["probleme"],
                    severite=severity if isinstance(severity, Severity) else Severity.MEDIUM,
                    score=_number(raw.get("score")),
                )
            )
            if len(alerts) >= MAX_RECOVERED_ALERTS:
                break

        if not alerts:
            alerts.append(
                MatchAlert(type=CompetenceType.SKILL, probleme=RECOVERY_ALERT, severite=Severity.MEDIUM, score=0)
            )

        keywords = _strings(resume.get("matchedKeywords")) or list(RECOVERY_KEYWORDS)

        self.logger.warning(
            "Recovered partial match response",
            recovered_alerts=len(alerts),
            recovered_keywords=len(keywords),
        )

        return MatchResponse(
            resume=ResumeBlock(
                score=_number(resume.get("score")),
                correspondance=Correspondance(
                    competences=_number(correspondance.get("competences")),
                    experience=_boolean(correspondance.get("experience")),
                    formation=_boolean(correspondance.get("formation")),
                    langues=_number(correspondance.get("langues")),
                ),
                matched_keywords=keywords,
                highlights=_strings(resume.get("highlightsToStandOut")),
                suggestions=suggestions,
            ),
            alerts=alerts,
        )

    def fallback(self) -> MatchResponse:
        """Neutral response used when no usable AI output exists."""
        return MatchResponse(
            resume=ResumeBlock(
                score=50,
                correspondance=Correspondance(competences=50, experience=False, formation=False, langues=50),
                matched_keywords=list(FALLBACK_KEYWORDS),
                highlights=[],
                suggestions=[FALLBACK_SUGGESTION],
            ),
            alerts=[
                MatchAlert(type=CompetenceType.SKILL, probleme=FALLBACK_ALERT, severite=Severity.MEDIUM, score=0)
            ],
        )

    def format(
        self,
        response: MatchResponse,
        provenance: Provenance,
        salary: SalaryRange,
        candidate_skills: Iterable[str],
        reason: Optional[str] = None,
    ) -> AnalysisRecord:
        """Build the stored analysis record from a validated response.

        The score is re-capped here so the requirement caps hold even when
        the AI ignored them.
        """
        resume = response.resume
        corr = resume.correspondance
        score = apply_score_caps(resume.score, corr.competences, corr.experience, corr.formation)

        alerts = [
            RecordAlert(category=a.type, description=a.probleme, severity=a.severite, score=a.score)
            for a in response.alerts
        ]

        return AnalysisRecord(
            provenance=provenance,
            score=score,
            sub_scores=SubScores(
                skills_match=corr.competences,
                experience_match=corr.experience,
                education_match=corr.formation,
                language_match=corr.langues,
            ),
            matched_keywords=resume.matched_keywords,
            highlights=resume.highlights,
            suggestions=resume.suggestions,
            alerts=alerts,
            market=MarketInsight(
                salary_range=SalaryRangeData(**salary.to_dict()),
                hiring_potential=hiring_potential(score),
                in_demand_skills=list(candidate_skills),
                estimated_recruitment_time=recruitment_time(score),
            ),
            summary=MatchSummary(
                recommended=score > 50,
                match_level=match_level(score),
                reason="Profile matches the position" if score > 50 else "Profile needs improvement",
                skills_fit=category_fit(CompetenceType.SKILL, alerts),
                experience_fit=category_fit(CompetenceType.EXPERIENCE, alerts),
                education_fit=category_fit(CompetenceType.EDUCATION, alerts),
            ),
            recommendation=Recommendation(
                decision=decision(score),
                suggested_action=suggested_action(alerts),
                candidate_feedback=candidate_feedback(alerts),
            ),
            degraded_reason=reason,
        )

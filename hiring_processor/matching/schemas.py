"""Pydantic models for the AI match response and the stored analysis record."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Provenance(str, Enum):
    """How an analysis record was produced."""

    COMPLETE = "complete"
    RECOVERED = "recovered"
    FALLBACK = "fallback"


class CompetenceType(str, Enum):
    SKILL = "Skill"
    EXPERIENCE = "Experience"
    EDUCATION = "Education"
    LANGUAGE = "Language"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# The model sometimes answers with the French labels of the schema
CATEGORY_ALIASES = {
    "compétence": CompetenceType.SKILL,
    "competence": CompetenceType.SKILL,
    "expérience": CompetenceType.EXPERIENCE,
    "experience": CompetenceType.EXPERIENCE,
    "formation": CompetenceType.EDUCATION,
    "langue": CompetenceType.LANGUAGE,
    "skill": CompetenceType.SKILL,
    "education": CompetenceType.EDUCATION,
    "language": CompetenceType.LANGUAGE,
}

SEVERITY_ALIASES = {
    "faible": Severity.LOW,
    "moyenne": Severity.MEDIUM,
    "élevée": Severity.HIGH,
    "elevee": Severity.HIGH,
    "low": Severity.LOW,
    "medium": Severity.MEDIUM,
    "high": Severity.HIGH,
}


def normalize_category(value):
    if isinstance(value, str):
        return CATEGORY_ALIASES.get(value.strip().lower(), value)
    return value


def normalize_severity(value):
    if isinstance(value, str):
        return SEVERITY_ALIASES.get(value.strip().lower(), value)
    return value


# AI response (wire format, keys as the prompt asks for them)

class Correspondance(BaseModel):
    competences: float = Field(ge=0, le=100)
    experience: bool
    formation: bool
    langues: float = Field(ge=0, le=100)


class ResumeBlock(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    score: float = Field(ge=0, le=100)
    correspondance: Correspondance
    matched_keywords: List[str] = Field(default_factory=list, alias="matchedKeywords")
    highlights: List[str] = Field(default_factory=list, alias="highlightsToStandOut")
    suggestions: List[str] = Field(default_factory=list)


class MatchAlert(BaseModel):
    type: CompetenceType
    probleme: str
    severite: Severity
    score: float = Field(default=0, ge=0, le=100)

    @field_validator("type", mode="before")
    @classmethod
    def _category(cls, v):
        return normalize_category(v)

    @field_validator("severite", mode="before")
    @classmethod
    def _severity(cls, v):
        return normalize_severity(v)


class MatchResponse(BaseModel):
    """Structured match analysis as returned by the AI."""

    model_config = ConfigDict(populate_by_name=True)

    resume: ResumeBlock
    alerts: List[MatchAlert] = Field(default_factory=list, alias="signauxAlerte")


# Stored analysis record

class SubScores(BaseModel):
    skills_match: float
    experience_match: bool
    education_match: bool
    language_match: float


class RecordAlert(BaseModel):
    category: CompetenceType
    description: str
    severity: Severity
    score: float = 0


class SalaryRangeData(BaseModel):
    min: int
    max: int
    currency: str


class MarketInsight(BaseModel):
    salary_range: SalaryRangeData
    hiring_potential: str
    in_demand_skills: List[str] = []
    estimated_recruitment_time: str


class CategoryFit(BaseModel):
    level: str
    details: List[str] = []


class MatchSummary(BaseModel):
    recommended: bool
    match_level: str
    reason: str
    skills_fit: CategoryFit
    experience_fit: CategoryFit
    education_fit: CategoryFit


class Recommendation(BaseModel):
    decision: str
    suggested_action: str
    candidate_feedback: List[str] = []


class AnalysisRecord(BaseModel):
    """What gets persisted on the application once analysis is done."""

    provenance: Provenance
    score: int = Field(ge=0, le=100)
    sub_scores: SubScores
    matched_keywords: List[str] = []
    highlights: List[str] = []
    suggestions: List[str] = []
    alerts: List[RecordAlert] = []
    market: MarketInsight
    summary: MatchSummary
    recommendation: Recommendation
    # Why the record is not a complete analysis, if it is not
    degraded_reason: Optional[str] = None

"""Read-only snapshots of the records a match analysis works on."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from hiring_api.models import Candidate, JobPosting
from hiring_processor.matching.skills import extract_candidate_skills, parse_job_skills


def _json_list(raw: Optional[str]) -> List[Dict[str, Any]]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


@dataclass
class CandidateProfile:
    id: int
    full_name: str
    skills: List[Dict[str, Any]] = field(default_factory=list)
    experience: List[Dict[str, Any]] = field(default_factory=list)
    education: List[Dict[str, Any]] = field(default_factory=list)
    years_of_experience: int = 0
    professional_status: Optional[str] = None
    employment_status: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    availability_date: Optional[str] = None

    @classmethod
    def from_model(cls, candidate: Candidate) -> "CandidateProfile":
        return cls(
            id=candidate.id,
            full_name=candidate.full_name,
            skills=_json_list(candidate.skills),
            experience=_json_list(candidate.experience),
            education=_json_list(candidate.education),
            years_of_experience=candidate.years_of_experience or 0,
            professional_status=candidate.professional_status,
            employment_status=candidate.employment_status,
            city=candidate.city,
            country=candidate.country,
            availability_date=candidate.availability_date,
        )

    @property
    def skill_names(self) -> List[str]:
        return extract_candidate_skills(self.skills)

    @property
    def education_summary(self) -> str:
        """Degrees joined into one string, used by the salary estimate."""
        return ", ".join(e["degree"] for e in self.education if e.get("degree"))


@dataclass
class JobRequirements:
    id: int
    title: str
    education_level: Optional[str] = None
    field_of_study: Optional[str] = None
    years_experience_required: int = 0
    experience_domain: Optional[str] = None
    hard_skills: Optional[str] = None
    soft_skills: Optional[str] = None
    languages: Optional[str] = None

    @classmethod
    def from_model(cls, posting: JobPosting) -> "JobRequirements":
        return cls(
            id=posting.id,
            title=posting.title,
            education_level=posting.education_level,
            field_of_study=posting.field_of_study,
            years_experience_required=posting.years_experience_required or 0,
            experience_domain=posting.experience_domain,
            hard_skills=posting.hard_skills,
            soft_skills=posting.soft_skills,
            languages=posting.languages,
        )

    @property
    def skill_list(self) -> List[str]:
        return parse_job_skills(self.hard_skills)

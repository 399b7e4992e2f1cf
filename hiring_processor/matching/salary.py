"""Salary range estimate for the Tunisian job market."""

from dataclasses import dataclass
from typing import Iterable, Optional

MARKET_CURRENCY = "TND"
MARKET_MAX_SALARY = 5000

# Monthly base ranges by seniority, in TND
BASE_SALARY_BY_LEVEL = {
    "junior": (800, 1500),
    "mid": (1500, 2500),
    "senior": (2500, 4000),
    "expert": (4000, 5000),
}

HIGH_DEMAND_SKILLS = (
    "javascript", "typescript", "react", "angular", "vue", "node", "python", "java",
    "devops", "cloud", "aws", "azure", "docker", "kubernetes", "data science",
    "machine learning", "ai", "blockchain", "security", "mongodb", "mongoose", "nosql",
)


@dataclass(frozen=True)
class SalaryRange:
    min: int
    max: int
    currency: str = MARKET_CURRENCY

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max, "currency": self.currency}


def seniority_level(years_of_experience: float) -> str:
    if years_of_experience >= 7:
        return "expert"
    if years_of_experience >= 4:
        return "senior"
    if years_of_experience >= 2:
        return "mid"
    return "junior"


def estimate_salary_range(
    years_of_experience: Optional[float],
    skills: Iterable[str],
    education: Optional[str],
    job_title: Optional[str],
) -> SalaryRange:
    """Estimate a monthly salary range from the candidate profile and job title.

    Args:
        years_of_experience: Candidate's total years of experience
        skills: Candidate skill names
        education: Candidate degrees joined into one string
        job_title: Title of the job posting (lead/senior/manager adjust the range)

    Returns:
        SalaryRange in TND; both bounds capped at the market ceiling
    """
    low, high = BASE_SALARY_BY_LEVEL[seniority_level(years_of_experience or 0)]

    education = (education or "").lower()
    if "master" in education or "mba" in education:
        low += 300
        high += 500
    elif "phd" in education or "doctorat" in education:
        low += 500
        high += 1000

    high_demand = sum(
        1 for skill in skills if any(term in skill.lower() for term in HIGH_DEMAND_SKILLS)
    )
    if high_demand >= 3:
        low += 400
        high += 800
    elif high_demand >= 1:
        low += 200
        high += 400

    title = (job_title or "").lower()
    if "lead" in title or "senior" in title:
        low += 300
        high += 600
    elif "manager" in title or "director" in title:
        low += 800
        high += 1500

    high = min(high, MARKET_MAX_SALARY)
    return SalaryRange(min=min(low, high), max=high)

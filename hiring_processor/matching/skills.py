"""Skill matching between candidate profiles and job requirements."""

from typing import Any, Dict, Iterable, List, Optional

# Technology names mapped to the aliases that should count as the same skill
TECH_VARIANTS: Dict[str, List[str]] = {
    "mongodb": ["mongo", "nosql"],
    "mongoose": ["mongodb", "orm"],
    "javascript": ["js", "ecmascript"],
    "typescript": ["ts"],
    "reactjs": ["react"],
    "react.js": ["react"],
    "nodejs": ["node"],
    "node.js": ["node"],
    "expressjs": ["express"],
    "express.js": ["express"],
    "postgresql": ["postgres", "psql"],
    "mysql": ["sql", "mariadb"],
    "aws": ["amazon", "cloud"],
    "azure": ["microsoft", "cloud"],
    "docker": ["container"],
    "kubernetes": ["k8s", "container orchestration"],
}


def _aliases_link(candidate_skill: str, job_skill: str) -> bool:
    for tech, variants in TECH_VARIANTS.items():
        if tech in candidate_skill and any(v in job_skill for v in variants):
            return True
        if tech in job_skill and any(v in candidate_skill for v in variants):
            return True
    return False


def find_potential_matches(candidate_skills: Iterable[Optional[str]], job_skills: Iterable[Optional[str]]) -> List[str]:
    """Find candidate skills that plausibly satisfy a job requirement.

    A candidate skill matches when, case-insensitively, it contains a job
    skill, is contained in one, or the alias table links the two (e.g.
    "Node.js" and "node", "Kubernetes" and "k8s").

    Args:
        candidate_skills: Skill names from the candidate profile
        job_skills: Required skills from the job posting

    Returns:
        Matching candidate skills in their original spelling, deduplicated,
        in candidate order
    """
    job_lower = [s.lower() for s in job_skills if s]
    matches: List[str] = []
    seen = set()

    for original in candidate_skills:
        if not original:
            continue
        skill = original.lower()
        if skill in seen:
            continue

        for job_skill in job_lower:
            if skill in job_skill or job_skill in skill or _aliases_link(skill, job_skill):
                seen.add(skill)
                matches.append(original)
                break

    return matches


def parse_job_skills(skills: Optional[str]) -> List[str]:
    """Split a comma separated skill string into trimmed, non-empty names."""
    if not skills:
        return []
    return [s.strip() for s in skills.split(",") if s.strip()]


def extract_candidate_skills(skills: Any) -> List[str]:
    """Extract skill names from a candidate's skill records."""
    if not isinstance(skills, list):
        return []

    names = []
    for skill in skills:
        if isinstance(skill, dict):
            name = skill.get("name")
        elif isinstance(skill, str):
            name = skill
        else:
            name = None
        if name:
            names.append(name)
    return names

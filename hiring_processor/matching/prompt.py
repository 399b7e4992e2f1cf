"""Prompt construction for the match analysis."""

from typing import List

from hiring_processor.matching.profiles import CandidateProfile, JobRequirements
from hiring_processor.matching.scoring import (
    EDUCATION_WEIGHT,
    EXPERIENCE_WEIGHT,
    LANGUAGES_WEIGHT,
    LOW_SKILLS_CAP,
    LOW_SKILLS_THRESHOLD,
    SKILLS_WEIGHT,
    UNMET_REQUIREMENT_CAP,
)

NOT_SPECIFIED = "Not specified"
NONE_LISTED = "None"

RESPONSE_SCHEMA = """{
  "resume": {
    "score": number (0-100),
    "correspondance": {
      "competences": number (0-100),
      "experience": boolean,
      "formation": boolean,
      "langues": number (0-100)
    },
    "matchedKeywords": string[],
    "highlightsToStandOut": string[],
    "suggestions": string[]
  },
  "signauxAlerte": [
    {
      "type": "Skill" | "Experience" | "Education" | "Language",
      "probleme": string,
      "severite": "low" | "medium" | "high",
      "score": number (0-100)
    }
  ]
}"""


def _pct(weight: float) -> str:
    return f"{round(weight * 100)}%"


def _or(value, default: str = NOT_SPECIFIED) -> str:
    return str(value) if value not in (None, "") else default


def describe_candidate(candidate: CandidateProfile) -> str:
    skills = ", ".join(candidate.skill_names) or NONE_LISTED
    experience = "; ".join(
        f"{e.get('position', NOT_SPECIFIED)} at {e.get('company', NOT_SPECIFIED)}" for e in candidate.experience
    ) or NONE_LISTED
    education = "; ".join(
        f"{e.get('degree', NOT_SPECIFIED)} in {e.get('field_of_study', NOT_SPECIFIED)}" for e in candidate.education
    ) or NONE_LISTED

    return "\n".join([
        f"- Skills: {skills}",
        f"- Experience: {experience}",
        f"- Years of experience: {candidate.years_of_experience}",
        f"- Education: {education}",
        f"- Professional status: {_or(candidate.professional_status)}",
        f"- Current situation: {_or(candidate.employment_status)}",
        f"- City/Country: {_or(candidate.city)}, {_or(candidate.country)}",
        f"- Availability: {_or(candidate.availability_date)}",
    ])


def describe_job(job: JobRequirements) -> str:
    return "\n".join([
        f"Title: {_or(job.title)}",
        f"Required level: {_or(job.education_level)} in {_or(job.field_of_study)}",
        f"Experience: {job.years_experience_required} years in {_or(job.experience_domain)}",
        f"Technical skills: {_or(job.hard_skills)}",
        f"Soft skills: {_or(job.soft_skills)}",
        f"Languages: {_or(job.languages)}",
    ])


def build_match_prompt(job: JobRequirements, candidate: CandidateProfile, potential_matches: List[str]) -> str:
    """Build the single prompt sent to the AI for one candidate/job pair.

    Args:
        job: Job posting requirements
        candidate: Candidate profile
        potential_matches: Candidate skills pre-matched by the heuristic matcher

    Returns:
        Prompt text asking for JSON only
    """
    return f"""Analyze the candidate profile for this position and return ONLY a valid JSON object matching exactly this schema:
{RESPONSE_SCHEMA}

Job details:
{describe_job(job)}

Candidate profile:
{describe_candidate(candidate)}

STRICT analysis rules:
1. The global score must be computed as:
   - {_pct(SKILLS_WEIGHT)} skills (0-100)
   - {_pct(LANGUAGES_WEIGHT)} languages (0-100)
   - {_pct(EXPERIENCE_WEIGHT)} experience (0 if false, 100 if true)
   - {_pct(EDUCATION_WEIGHT)} education (0 if false, 100 if true)
2. experience=true ONLY if the candidate has at least the required years of experience
3. formation=true ONLY if the candidate has at least the required education level
4. matchedKeywords MUST contain EVERY candidate skill that matches a required skill
   For example: if the candidate has "JavaScript" and the job asks for "JavaScript/TypeScript", "JavaScript" MUST be included
5. Examine every candidate skill carefully for partial or similar matches
   For example: "Node.js" matches "NodeJS", "React" matches "ReactJS", "Express" matches "ExpressJS"
6. Do NOT ignore matches such as "MongoDB" when the job asks for "MongoDB/Mongoose" or the reverse
7. If experience=false, the global score cannot exceed {UNMET_REQUIREMENT_CAP}
8. If formation=false, the global score cannot exceed {UNMET_REQUIREMENT_CAP}
9. If skills match less than {LOW_SKILLS_THRESHOLD}%, the global score cannot exceed {LOW_SKILLS_CAP}
10. highlightsToStandOut = 2-4 strengths of the profile
11. signauxAlerte = major weaknesses with score and severity

Additional context:
- The analysis is for the Tunisian market, which is strict about technical skills.
- Typical salary range in Tunisia: 800-5000 TND depending on experience and skills.
- Potential skill matches detected: {", ".join(potential_matches) or NONE_LISTED}

Output ONLY the JSON - no additional text, comments or markdown."""

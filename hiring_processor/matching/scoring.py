"""Match score rules shared by the prompt and the formatter."""

SKILLS_WEIGHT = 0.40
LANGUAGES_WEIGHT = 0.10
EXPERIENCE_WEIGHT = 0.25
EDUCATION_WEIGHT = 0.25

UNMET_REQUIREMENT_CAP = 50
LOW_SKILLS_THRESHOLD = 40
LOW_SKILLS_CAP = 30


def apply_score_caps(score: float, skills: float, experience: bool, education: bool) -> int:
    """Clamp a score to 0-100 and apply the requirement caps.

    Unmet experience or education caps the score at 50, a skills match
    below 40 caps it at 30. Applying it twice changes nothing.
    """
    capped = max(0, min(100, round(score)))
    if not experience:
        capped = min(capped, UNMET_REQUIREMENT_CAP)
    if not education:
        capped = min(capped, UNMET_REQUIREMENT_CAP)
    if skills < LOW_SKILLS_THRESHOLD:
        capped = min(capped, LOW_SKILLS_CAP)
    return capped

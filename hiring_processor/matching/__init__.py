"""Candidate/job matching: heuristics, AI analysis and response formatting."""

from .engine import (
    AnalysisResult,
    Complete,
    Fallback,
    MatchAnalysisEngine,
    MatchOutcome,
    Recovered,
)
from .formatter import MatchResponseFormatter
from .schemas import AnalysisRecord, MatchResponse, Provenance

__all__ = [
    "AnalysisRecord",
    "AnalysisResult",
    "Complete",
    "Fallback",
    "MatchAnalysisEngine",
    "MatchOutcome",
    "MatchResponse",
    "MatchResponseFormatter",
    "Provenance",
    "Recovered",
]

"""Job processors for the analysis pipeline.

1. AnalyzeApplicationProcessor - AI match analysis of an application
"""

from .base import BaseProcessor
from .analyze import AnalyzeApplicationProcessor

__all__ = [
    "BaseProcessor",
    "AnalyzeApplicationProcessor",
]

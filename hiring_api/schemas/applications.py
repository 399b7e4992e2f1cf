"""Pydantic schemas for Application endpoints."""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from .base import CamelModel


class ApplicationCreate(CamelModel):
    """Schema for submitting an application."""

    candidate_id: int = Field(gt=0)
    job_posting_id: int = Field(gt=0)


class ApplicationCreated(CamelModel):
    """Schema returned after a successful submission."""

    id: int
    status: str
    queue_job_id: int


class ApplicationResponse(CamelModel):
    """Schema for full application response."""

    id: int
    candidate_id: int
    job_posting_id: int
    status: str
    status_note: Optional[str] = None
    analysis: Optional[dict[str, Any]] = None
    analysis_error: Optional[str] = None
    applied_at: datetime
    analyzed_at: Optional[datetime] = None
    updated_at: datetime

    @field_validator("analysis", mode="before")
    @classmethod
    def parse_analysis(cls, v: Any) -> Optional[dict]:
        """Analysis is stored as JSON text."""
        if v is None or isinstance(v, dict):
            return v
        try:
            return json.loads(v)
        except (json.JSONDecodeError, TypeError):
            return None

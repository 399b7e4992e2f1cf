"""Pydantic schemas for API request/response validation.

All schemas use CamelCase for JSON field names (via alias_generator).
"""

from .base import CamelModel, ErrorResponse
from .applications import ApplicationCreate, ApplicationCreated, ApplicationResponse

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "ApplicationCreate",
    "ApplicationCreated",
    "ApplicationResponse",
]

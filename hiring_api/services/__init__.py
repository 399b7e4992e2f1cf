"""Business services for the API."""

from .applications import ApplicationService

__all__ = ["ApplicationService"]

"""Middleware for the hiring pipeline API."""

from .error_handler import setup_exception_handlers
from .logging import LoggingMiddleware

__all__ = ["setup_exception_handlers", "LoggingMiddleware"]

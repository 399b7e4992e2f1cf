"""External service integrations."""

from .claude import ClaudeClient, ClaudeError

__all__ = ["ClaudeClient", "ClaudeError"]

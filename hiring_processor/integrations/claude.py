"""Claude AI integration for match analysis text generation."""

from typing import Optional

import structlog
from anthropic import AsyncAnthropic, APIError

from hiring_processor.config import settings


class ClaudeClient:
    """Client for Claude AI API.

    Generates the raw text of a match analysis. Parsing and validation of
    that text happen in the matching engine.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, logger=None):
        """Initialize Claude client."""
        self.client = AsyncAnthropic(api_key=api_key or settings.ANTHROPIC_API_KEY)
        self.model = model or settings.CLAUDE_MODEL
        self.max_tokens = settings.CLAUDE_MAX_TOKENS
        self.logger = logger or structlog.get_logger().bind(component="claude")

    async def generate_content(self, prompt: str) -> str:
        """Send a prompt and return the concatenated text of the reply.

        Raises:
            ClaudeError: If the API call fails
        """
        self.logger.info("Generating match analysis with Claude", model=self.model, prompt_chars=len(prompt))

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": prompt,
                    }
                ],
            )
        except APIError as e:
            self.logger.error("Claude API error during match analysis", error=str(e))
            raise ClaudeError(f"Match analysis generation failed: {str(e)}") from e

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        self.logger.info("Claude response received", response_chars=len(text))
        return text


class ClaudeError(Exception):
    """Raised when Claude API calls fail."""

    pass

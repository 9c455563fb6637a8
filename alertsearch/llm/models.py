"""Chat request and completion models for alert summaries."""

from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Role of a prompt message. Summaries send a system and a user turn."""

    SYSTEM = "system"
    USER = "user"


class Message(BaseModel):
    """One prompt message sent to the chat completions API."""

    role: Role = Field(description="Message role")
    content: str = Field(description="Message content")


class GenerationResult(BaseModel):
    """A completed summary generation.

    Attributes:
        content: Generated answer text.
        model: Model that produced it, as reported by the backend.
        prompt_tokens: Prompt tokens billed, 0 when not reported.
        completion_tokens: Completion tokens billed, 0 when not reported.
        finish_reason: Why generation stopped, if reported.
    """

    content: str = Field(description="Generated text")
    model: str = Field(description="Model used")
    prompt_tokens: int = Field(default=0, description="Prompt token count")
    completion_tokens: int = Field(default=0, description="Completion token count")
    finish_reason: str | None = Field(default=None, description="Stop reason")

    @property
    def truncated(self) -> bool:
        """True when the answer was cut off by the token limit."""
        return self.finish_reason == "length"

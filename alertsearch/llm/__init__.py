"""LLM client module."""

from alertsearch.llm.client import LLMClient, OpenAICompatibleClient
from alertsearch.llm.models import GenerationResult, Message, Role
from alertsearch.llm.prompts import AlertSummaryPromptTemplate, PromptTemplate

__all__ = [
    "AlertSummaryPromptTemplate",
    "GenerationResult",
    "LLMClient",
    "Message",
    "OpenAICompatibleClient",
    "PromptTemplate",
    "Role",
]

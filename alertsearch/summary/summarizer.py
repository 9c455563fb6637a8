"""Summarizers that turn ranked alerts into a prose answer."""

from abc import ABC, abstractmethod

from alertsearch.exceptions import LLMError, SummarizationUnavailable
from alertsearch.llm.client import LLMClient
from alertsearch.llm.prompts import AlertSummaryPromptTemplate
from alertsearch.logging_config import get_logger
from alertsearch.retrieval.models import SummaryInput

logger = get_logger(__name__)

NO_RESULTS_ANSWER = "No relevant alerts found for your query."


class Summarizer(ABC):
    """Abstract base class for summarizers."""

    name: str

    @abstractmethod
    async def summarize(self, summary_input: SummaryInput) -> str:
        """Summarize ranked alerts for a query.

        Args:
            summary_input: Query, requester location and ranked alerts.

        Returns:
            Answer text.

        Raises:
            SummarizationUnavailable: If no answer could be produced.
        """
        ...


class LLMSummarizer(Summarizer):
    """Summarizer backed by a chat LLM."""

    name = "llm"

    def __init__(
        self,
        llm_client: LLMClient,
        prompt_template: AlertSummaryPromptTemplate | None = None,
    ) -> None:
        self._llm_client = llm_client
        self._prompt_template = prompt_template or AlertSummaryPromptTemplate()

    async def summarize(self, summary_input: SummaryInput) -> str:
        system_prompt, user_prompt = self._prompt_template.build_prompt(summary_input)

        try:
            result = await self._llm_client.generate_text(
                prompt=user_prompt,
                system_prompt=system_prompt,
            )
        except LLMError as e:
            raise SummarizationUnavailable(
                f"Summary generation failed: {e.message}",
                details={"llm_error_code": e.code.value},
            ) from e

        answer = result.content.strip()
        if not answer:
            raise SummarizationUnavailable(
                "Summary generation returned no text",
                details={"model": result.model},
            )
        if result.truncated:
            logger.warning(
                "Summary was cut off at the token limit",
                extra={"model": result.model, "completion_tokens": result.completion_tokens},
            )
        return answer


class TemplateSummarizer(Summarizer):
    """Deterministic, template-based summary. Never fails."""

    name = "template"

    async def summarize(self, summary_input: SummaryInput) -> str:
        return self.render(summary_input)

    @staticmethod
    def render(summary_input: SummaryInput) -> str:
        """Numbered list of the ranked alerts."""
        alerts = summary_input.alerts
        if not alerts:
            return NO_RESULTS_ANSWER

        plural = "" if len(alerts) == 1 else "s"
        parts = [f"Found {len(alerts)} relevant alert{plural}.", ""]

        for index, alert in enumerate(alerts, start=1):
            parts.append(f"{index}. {alert.title}")
            parts.append(f"   Severity: {alert.severity.capitalize()}")
            if alert.location:
                parts.append(f"   Location: {alert.location}")
            if alert.distance_km is not None:
                parts.append(f"   Distance: {alert.distance_km:.1f} km away")
            if alert.description:
                parts.append(f"   {alert.description}")
            parts.append(f"   Issued: {alert.issued.strftime('%Y-%m-%d %H:%M %Z')}")
            parts.append("")

        return "\n".join(parts).rstrip()

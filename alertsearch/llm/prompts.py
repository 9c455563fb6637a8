"""Prompt templates for alert summaries."""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

from alertsearch.retrieval.models import SummaryAlert, SummaryInput


class PromptTemplate(ABC):
    """Abstract base class for prompt templates."""

    @abstractmethod
    def format(self, **kwargs: Any) -> str:
        """Format the template with provided variables.

        Args:
            **kwargs: Template variables.

        Returns:
            Formatted prompt string.
        """
        ...


class AlertSummaryPromptTemplate(PromptTemplate):
    """Prompt template that turns ranked alerts into a short answer."""

    DEFAULT_SYSTEM_PROMPT = """You are an assistant for a public alert service. Answer the user's question using only the alerts provided.

Rules:
- Be concise, direct and factual
- Prioritize higher severity alerts
- If distance information is available, mention the closest alerts first and say how far away each one is
- If the alerts do not answer the question, say so

Current date: {now}"""

    DEFAULT_USER_TEMPLATE = """Question: {question}

Most relevant alerts:
{context}
{location}
Please provide a helpful answer to the question."""

    def __init__(
        self,
        system_prompt: str | None = None,
        user_template: str | None = None,
    ) -> None:
        """Initialize the summary prompt template.

        Args:
            system_prompt: Custom system prompt; may use ``{now}``.
            user_template: Custom user message template.
        """
        self.system_prompt = system_prompt or self.DEFAULT_SYSTEM_PROMPT
        self.user_template = user_template or self.DEFAULT_USER_TEMPLATE

    def format(self, **kwargs: Any) -> str:
        """Format the user template.

        Args:
            **kwargs: Must include 'question', 'context' and 'location'.

        Returns:
            Formatted user prompt.
        """
        return self.user_template.format(**kwargs)

    def format_alert(self, alert: SummaryAlert) -> str:
        """Render one alert as a block of labelled lines."""
        lines = [
            f"ID: {alert.id}",
            f"Title: {alert.title}",
            f"Description: {alert.description}",
            f"Category: {alert.category}",
            f"Severity: {alert.severity}",
            f"Location: {alert.location}",
            f"Issued: {alert.issued.isoformat()}",
        ]
        if alert.expected_resolution is not None:
            lines.append(f"Expected Resolution: {alert.expected_resolution.isoformat()}")
        if alert.issuer:
            lines.append(f"Issuer: {alert.issuer}")
        if alert.distance_km is not None:
            lines.append(f"Distance: {alert.distance_km:.1f} km")
        if alert.relevance_percent is not None:
            lines.append(f"Relevance Score: {alert.relevance_percent:.2f}%")
        return "\n".join(lines)

    def format_context(self, alerts: list[SummaryAlert], separator: str = "\n\n") -> str:
        """Render all alerts, in ranked order."""
        return separator.join(self.format_alert(a) for a in alerts)

    def build_prompt(
        self,
        summary_input: SummaryInput,
        now: datetime | None = None,
    ) -> tuple[str, str]:
        """Build the complete prompt.

        Args:
            summary_input: Query, requester location and ranked alerts.
            now: Current time shown to the model.

        Returns:
            Tuple of (system_prompt, user_prompt).
        """
        now = now or datetime.now(UTC)
        location = ""
        if summary_input.requester_location is not None:
            loc = summary_input.requester_location
            location = (
                f"\nThe user is located at latitude {loc.latitude}, "
                f"longitude {loc.longitude}.\n"
            )

        system_prompt = self.system_prompt.format(now=now.strftime("%Y-%m-%d %H:%M %Z"))
        user_prompt = self.format(
            question=summary_input.query,
            context=self.format_context(summary_input.alerts),
            location=location,
        )
        return system_prompt, user_prompt

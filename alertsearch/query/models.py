"""Query service data models."""

from pydantic import BaseModel, Field

from alertsearch.retrieval.models import MatchMode, RankedResult


class QueryAnswer(BaseModel):
    """Answer to a natural-language alert query.

    Attributes:
        answer: Prose answer.
        relevant_alerts: Ranked alerts the answer is based on.
        mode: Strategy that produced the alerts.
        summarized_by: Summarizer that wrote the answer ("llm", "template"
            or "none" when nothing was found).
    """

    answer: str = Field(description="Prose answer")
    relevant_alerts: list[RankedResult] = Field(
        default_factory=list,
        description="Ranked alerts",
    )
    mode: MatchMode = Field(description="Retrieval mode")
    summarized_by: str = Field(description="Summarizer used")

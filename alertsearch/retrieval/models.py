"""Retrieval data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from alertsearch.alerts.models import Alert, Coordinate
from alertsearch.config import RetrievalSettings, get_settings

# Similarity reported for keyword matches, which have no real score.
KEYWORD_MATCH_SCORE = -1.0


class MatchMode(str, Enum):
    """How a result was matched."""

    SEMANTIC = "semantic"
    KEYWORD = "keyword"


@dataclass(frozen=True)
class Candidate:
    """An alert under consideration, with its embedding if one is known."""

    alert: Alert
    embedding: list[float] | None = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class RankingOptions(BaseModel):
    """Threshold, cap and weights for one ranking pass.

    Attributes:
        similarity_floor: Minimum similarity to keep a candidate; 0 keeps all.
        max_results: Maximum results returned.
        relevance_weight: Weight of the similarity rank.
        distance_weight: Weight of the distance rank.
    """

    similarity_floor: float = Field(default=0.0, ge=0.0, le=1.0)
    max_results: int = Field(default=10, ge=1)
    relevance_weight: float = Field(default=0.7, ge=0.0)
    distance_weight: float = Field(default=0.3, ge=0.0)

    @model_validator(mode="after")
    def _check_weights(self) -> "RankingOptions":
        if self.relevance_weight + self.distance_weight == 0:
            raise ValueError("relevance_weight and distance_weight cannot both be 0")
        return self

    @classmethod
    def from_settings(
        cls,
        settings: RetrievalSettings | None = None,
        listing: bool = False,
    ) -> "RankingOptions":
        """Build options from configured defaults.

        Args:
            settings: Retrieval settings. Uses application settings if omitted.
            listing: Use the listing floor instead of the query floor.
        """
        settings = settings or get_settings().retrieval
        return cls(
            similarity_floor=(
                settings.listing_similarity_floor if listing else settings.similarity_floor
            ),
            max_results=settings.max_results,
            relevance_weight=settings.relevance_weight,
            distance_weight=settings.distance_weight,
        )


class RankedResult(BaseModel):
    """A ranked alert.

    Attributes:
        alert: The underlying alert.
        similarity_score: Cosine similarity to the query, or
            KEYWORD_MATCH_SCORE for keyword matches.
        distance_km: Distance to the requester, None when unknown.
        combined_score: Ordering score; not meaningful on its own.
        matched_by: Strategy that produced the result.
    """

    alert: Alert = Field(description="Ranked alert")
    similarity_score: float = Field(description="Similarity to the query")
    distance_km: float | None = Field(default=None, description="Distance to requester")
    combined_score: float = Field(description="Ordering score")
    matched_by: MatchMode = Field(default=MatchMode.SEMANTIC, description="Match mode")


class SummaryAlert(BaseModel):
    """One alert formatted for summarization."""

    id: str
    title: str
    description: str
    category: str
    severity: str
    location: str
    issued: datetime
    expected_resolution: datetime | None = None
    issuer: str | None = None
    distance_km: float | None = None
    relevance_percent: float | None = None

    @classmethod
    def from_result(cls, result: RankedResult) -> "SummaryAlert":
        alert = result.alert
        relevance = None
        if result.matched_by == MatchMode.SEMANTIC:
            relevance = round(result.similarity_score * 100, 2)
        return cls(
            id=alert.id,
            title=alert.title,
            description=alert.description,
            category=alert.category.value,
            severity=alert.severity.value,
            location=alert.location,
            issued=alert.time_issued,
            expected_resolution=alert.expected_resolution,
            issuer=alert.issuer,
            distance_km=result.distance_km,
            relevance_percent=relevance,
        )


class SummaryInput(BaseModel):
    """Everything a summarizer needs, in ranked order."""

    query: str = Field(description="User query")
    requester_location: Coordinate | None = Field(default=None)
    alerts: list[SummaryAlert] = Field(default_factory=list)

    @classmethod
    def from_results(
        cls,
        query: str,
        results: list[RankedResult],
        requester_location: Coordinate | None = None,
    ) -> "SummaryInput":
        return cls(
            query=query,
            requester_location=requester_location,
            alerts=[SummaryAlert.from_result(r) for r in results],
        )


class RetrievalResponse(BaseModel):
    """Output of one retrieval.

    Attributes:
        relevant_alerts: Ranked alerts, best first.
        summary_input: The same alerts formatted for summarization.
        mode: Strategy that produced the alerts.
    """

    relevant_alerts: list[RankedResult] = Field(default_factory=list)
    summary_input: SummaryInput
    mode: MatchMode = Field(default=MatchMode.SEMANTIC)

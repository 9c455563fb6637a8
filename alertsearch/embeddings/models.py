"""Embedding data models."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class EmbeddingResult(BaseModel):
    """Result of an embedding operation.

    Attributes:
        text: The original text that was embedded.
        embedding: The embedding vector.
        model: The model used to generate the embedding.
        dimensions: Number of dimensions in the embedding.
    """

    text: str = Field(description="Original text")
    embedding: list[float] = Field(description="Embedding vector")
    model: str = Field(description="Model used for embedding")
    dimensions: int = Field(description="Vector dimensions")

    def model_post_init(self, __context: object) -> None:
        """Validate dimensions match embedding length."""
        if self.dimensions != len(self.embedding):
            raise ValueError(
                f"dimensions ({self.dimensions}) does not match "
                f"embedding length ({len(self.embedding)})"
            )


class EmbeddingRecord(BaseModel):
    """Cached embedding of one alert.

    The vector always corresponds to ``source_text``; a record whose source
    text differs from the alert's current text is stale.

    Attributes:
        alert_id: Alert the vector belongs to.
        vector: The embedding vector.
        source_text: Exact text the vector was computed from.
        last_updated: When the vector was computed.
    """

    alert_id: str = Field(description="Alert identifier")
    vector: list[float] = Field(description="Embedding vector")
    source_text: str = Field(description="Text the vector was derived from")
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Computation timestamp",
    )

    def matches(self, text: str) -> bool:
        """True when the record was computed from exactly this text."""
        return self.source_text == text

"""Alert data models."""

import math
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Severity(str, Enum):
    """Alert severity, ordered low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Position in the severity order (0 = lowest)."""
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = (Severity.LOW, Severity.MEDIUM, Severity.HIGH)


class Category(str, Enum):
    """Alert category."""

    FIRE = "fire"
    WEATHER = "weather"
    TRANSPORT = "transport"
    OTHER = "other"


class Coordinate(BaseModel):
    """A geographic point in decimal degrees.

    Values are not range-checked here: stored positions can be malformed,
    and distance computation is where bad values are rejected.
    """

    latitude: float = Field(description="Latitude in degrees")
    longitude: float = Field(description="Longitude in degrees")

    model_config = ConfigDict(frozen=True)

    @property
    def is_valid(self) -> bool:
        """True for finite values inside the latitude/longitude ranges."""
        return (
            math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
            and -90.0 <= self.latitude <= 90.0
            and -180.0 <= self.longitude <= 180.0
        )


class Alert(BaseModel):
    """A public alert as read from the alert store.

    Attributes:
        id: Opaque unique identifier.
        title: Short headline.
        description: Full alert text.
        location: Free-text location as published.
        category: Alert category.
        severity: Alert severity.
        position: Geocoded position, None until geocoded.
        active: Only active alerts are retrieval candidates.
        time_issued: When the alert was issued.
    """

    id: str = Field(description="Alert identifier")
    title: str = Field(description="Alert headline")
    description: str = Field(default="", description="Alert body")
    location: str = Field(default="", description="Free-text location")
    category: Category = Field(default=Category.OTHER, description="Category")
    severity: Severity = Field(default=Severity.MEDIUM, description="Severity")
    position: Coordinate | None = Field(default=None, description="Geocoded position")
    active: bool = Field(default=True, description="Whether the alert is active")
    time_issued: datetime = Field(description="Issue timestamp")
    expected_resolution: datetime | None = Field(
        default=None,
        description="Expected resolution timestamp",
    )
    issuer: str | None = Field(default=None, description="Issuing authority")
    source: str | None = Field(default=None, description="Scraped source name")
    source_url: str | None = Field(default=None, description="Source page URL")

    @property
    def has_position(self) -> bool:
        """True when the alert carries a usable position."""
        return self.position is not None and self.position.is_valid

    def embedding_text(self) -> str:
        """Text the alert's embedding is derived from."""
        return f"{self.title}. {self.description}. Location: {self.location}."

    @field_validator("time_issued", "expected_resolution")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC so alerts always compare."""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

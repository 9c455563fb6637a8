"""API routes for alert search."""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from alertsearch.alerts.models import Coordinate
from alertsearch.api.dependencies import AppServices, get_services
from alertsearch.config import get_settings
from alertsearch.exceptions import ErrorCode, GeocodingError
from alertsearch.geo.distance import nearby_alerts
from alertsearch.geo.models import AddressInfo
from alertsearch.logging_config import get_logger
from alertsearch.query.models import QueryAnswer
from alertsearch.retrieval.models import MatchMode, RankedResult, RankingOptions

logger = get_logger(__name__)


router = APIRouter(prefix="/api/v1", tags=["Alerts"])


class LocationIn(BaseModel):
    """Requester location in decimal degrees."""

    lat: float = Field(ge=-90.0, le=90.0, description="Latitude")
    lng: float = Field(ge=-180.0, le=180.0, description="Longitude")

    def to_coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.lat, longitude=self.lng)


class QueryRequest(BaseModel):
    """Request body for an alert query."""

    query: str = Field(min_length=1, description="Natural-language question")
    user_location: LocationIn | None = Field(default=None, description="Requester location")
    similarity_floor: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Minimum similarity (0 keeps everything)",
    )
    max_results: int | None = Field(
        default=None,
        ge=1,
        le=50,
        description="Maximum alerts returned",
    )


class AlertOut(BaseModel):
    """An alert as returned by the API."""

    id: str
    title: str
    description: str
    location: str
    category: str
    severity: str
    position: dict[str, float] | None = None
    time_issued: datetime
    similarity_score: float | None = None
    distance_km: float | None = None


class QueryResponse(BaseModel):
    """Response from an alert query."""

    answer: str = Field(description="Prose answer")
    relevant_alerts: list[AlertOut] = Field(description="Ranked alerts")
    mode: MatchMode = Field(description="Retrieval mode")
    summarized_by: str = Field(description="Summarizer used")


def ranked_result_to_alert_out(result: RankedResult) -> AlertOut:
    """Convert a RankedResult to its API shape; keyword matches get no score."""
    alert = result.alert
    position = None
    if alert.position is not None:
        position = {"lat": alert.position.latitude, "lng": alert.position.longitude}
    return AlertOut(
        id=alert.id,
        title=alert.title,
        description=alert.description,
        location=alert.location,
        category=alert.category.value,
        severity=alert.severity.value,
        position=position,
        time_issued=alert.time_issued,
        similarity_score=(
            result.similarity_score if result.matched_by == MatchMode.SEMANTIC else None
        ),
        distance_km=result.distance_km,
    )


def query_answer_to_response(answer: QueryAnswer) -> QueryResponse:
    """Convert internal QueryAnswer to API QueryResponse."""
    return QueryResponse(
        answer=answer.answer,
        relevant_alerts=[ranked_result_to_alert_out(r) for r in answer.relevant_alerts],
        mode=answer.mode,
        summarized_by=answer.summarized_by,
    )


def query_request_to_options(request: QueryRequest) -> RankingOptions:
    """Apply request overrides on top of the configured ranking options."""
    options = RankingOptions.from_settings(get_settings().retrieval)
    overrides: dict[str, Any] = {}
    if request.similarity_floor is not None:
        overrides["similarity_floor"] = request.similarity_floor
    if request.max_results is not None:
        overrides["max_results"] = request.max_results
    return RankingOptions(**{**options.model_dump(), **overrides})


@router.post("/query", response_model=QueryResponse)
async def query_endpoint(
    request: QueryRequest,
    services: Annotated[AppServices, Depends(get_services)],
) -> QueryResponse:
    """Answer a natural-language question about current alerts."""
    location = request.user_location.to_coordinate() if request.user_location else None
    answer = await services.query_service.answer(
        request.query,
        requester_location=location,
        options=query_request_to_options(request),
    )
    return query_answer_to_response(answer)


@router.get("/alerts/nearby")
async def nearby_endpoint(
    services: Annotated[AppServices, Depends(get_services)],
    lat: Annotated[float, Query(ge=-90.0, le=90.0)],
    lng: Annotated[float, Query(ge=-180.0, le=180.0)],
    radius: Annotated[float | None, Query(gt=0.0, le=20000.0)] = None,
) -> dict[str, Any]:
    """Active alerts within a radius of a point, closest first."""
    radius_km = radius or get_settings().retrieval.search_radius_km
    alerts = await services.store.fetch_active_alerts()
    matched = nearby_alerts(alerts, Coordinate(latitude=lat, longitude=lng), radius_km)

    return {
        "radius_km": radius_km,
        "alerts": [
            {**alert.model_dump(mode="json"), "distance_km": round(dist, 3)}
            for alert, dist in matched
        ],
    }


@router.get("/geocode/forward")
async def forward_geocode_endpoint(
    services: Annotated[AppServices, Depends(get_services)],
    address: Annotated[str, Query(min_length=1)],
) -> dict[str, Any]:
    """Resolve an address to coordinates."""
    coordinate = await services.geocoder.forward_geocode(address)
    if coordinate is None:
        raise GeocodingError(
            "Could not geocode the provided address",
            code=ErrorCode.GEOCODE_NOT_FOUND,
            details={"address": address},
        )
    return {"coordinates": {"lat": coordinate.latitude, "lng": coordinate.longitude}}


@router.get("/geocode/reverse", response_model=AddressInfo)
async def reverse_geocode_endpoint(
    services: Annotated[AppServices, Depends(get_services)],
    lat: Annotated[float, Query(ge=-90.0, le=90.0)],
    lng: Annotated[float, Query(ge=-180.0, le=180.0)],
) -> AddressInfo:
    """Resolve coordinates to address details."""
    info = await services.geocoder.reverse_geocode(Coordinate(latitude=lat, longitude=lng))
    if info is None:
        raise GeocodingError(
            "Could not reverse geocode the provided coordinates",
            code=ErrorCode.GEOCODE_NOT_FOUND,
            details={"lat": lat, "lng": lng},
        )
    return info

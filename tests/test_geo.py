"""Tests for distance computation and geocoding."""

import math
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from alertsearch.alerts.models import Alert, Coordinate
from alertsearch.config import GeocodingSettings
from alertsearch.exceptions import ErrorCode, InvalidCoordinate, ValidationError
from alertsearch.geo.distance import distance_km, nearby_alerts, try_distance_km
from alertsearch.geo.geocoder import Geocoder, NominatimGeocoder, enrich_alert_position
from alertsearch.geo.models import AddressInfo

CHENNAI = Coordinate(latitude=13.0827, longitude=80.2707)
BANGALORE = Coordinate(latitude=12.9716, longitude=77.5946)
MELBOURNE = Coordinate(latitude=-37.8136, longitude=144.9631)


def _create_mock_client(json_data: object) -> AsyncMock:
    """Create a mock HTTP client whose GET returns json_data."""
    mock_response = MagicMock()
    mock_response.json.return_value = json_data
    mock_response.raise_for_status = MagicMock()

    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get.return_value = mock_response
    return mock_client


class TestDistance:
    """Tests for distance_km."""

    def test_known_distance(self) -> None:
        """Chennai to Bangalore is about 290 km."""
        assert distance_km(CHENNAI, BANGALORE) == pytest.approx(290.2, abs=0.5)

    def test_identical_points_are_zero(self) -> None:
        """Distance from a point to itself is exactly zero."""
        assert distance_km(MELBOURNE, MELBOURNE) == 0.0

    def test_symmetric(self) -> None:
        """Swapping the points gives the identical value."""
        pairs = [
            (CHENNAI, BANGALORE),
            (MELBOURNE, CHENNAI),
            (Coordinate(latitude=89.9, longitude=-179.9), Coordinate(latitude=-0.1, longitude=0.2)),
        ]
        for a, b in pairs:
            assert distance_km(a, b) == distance_km(b, a)

    def test_antipodal_points(self) -> None:
        """Antipodal points are half the circumference apart."""
        a = Coordinate(latitude=0.0, longitude=0.0)
        b = Coordinate(latitude=0.0, longitude=180.0)
        assert distance_km(a, b) == pytest.approx(math.pi * 6371.0, rel=1e-9)

    def test_non_negative(self) -> None:
        """Distances are never negative."""
        assert distance_km(BANGALORE, MELBOURNE) > 0

    def test_missing_point_rejected(self) -> None:
        """A missing point raises InvalidCoordinate."""
        with pytest.raises(InvalidCoordinate):
            distance_km(None, MELBOURNE)

    def test_out_of_range_rejected(self) -> None:
        """Latitude beyond 90 raises InvalidCoordinate."""
        with pytest.raises(InvalidCoordinate):
            distance_km(Coordinate(latitude=91.0, longitude=0.0), MELBOURNE)

    def test_non_finite_rejected(self) -> None:
        """NaN coordinates raise InvalidCoordinate."""
        with pytest.raises(InvalidCoordinate):
            distance_km(MELBOURNE, Coordinate(latitude=float("nan"), longitude=0.0))

    def test_try_distance_returns_none(self) -> None:
        """Unusable points give None, never zero."""
        assert try_distance_km(MELBOURNE, None) is None
        assert try_distance_km(MELBOURNE, Coordinate(latitude=0.0, longitude=200.0)) is None
        assert try_distance_km(CHENNAI, BANGALORE) == pytest.approx(290.2, abs=0.5)


class TestNearbyAlerts:
    """Tests for nearby_alerts."""

    def test_filters_and_sorts_by_distance(self, make_alert: Callable[..., Alert]) -> None:
        """Only alerts inside the radius are returned, closest first."""
        alerts = [
            make_alert("far", position=(12.00, 82.00)),
            make_alert("fl", position=(13.05, 80.25)),
            make_alert("eq", position=(13.10, 80.30)),
            make_alert("unknown"),
        ]

        result = nearby_alerts(alerts, CHENNAI, radius_km=10.0)

        assert [a.id for a, _ in result] == ["eq", "fl"]
        assert all(d <= 10.0 for _, d in result)

    def test_ties_broken_by_id(self, make_alert: Callable[..., Alert]) -> None:
        """Alerts at the same distance are ordered by id."""
        alerts = [
            make_alert("b", position=(13.0827, 80.2707)),
            make_alert("a", position=(13.0827, 80.2707)),
        ]

        result = nearby_alerts(alerts, CHENNAI, radius_km=1.0)

        assert [a.id for a, _ in result] == ["a", "b"]

    def test_rejects_non_positive_radius(self, make_alert: Callable[..., Alert]) -> None:
        """Radius must be positive."""
        with pytest.raises(ValidationError, match="positive") as exc_info:
            nearby_alerts([make_alert("a")], CHENNAI, radius_km=0)
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR

    def test_rejects_invalid_center(self) -> None:
        """An unusable center raises InvalidCoordinate."""
        with pytest.raises(InvalidCoordinate):
            nearby_alerts([], Coordinate(latitude=100.0, longitude=0.0), radius_km=5.0)


class TestNominatimGeocoder:
    """Tests for NominatimGeocoder."""

    @pytest.mark.asyncio
    async def test_forward_geocode(self) -> None:
        """Address resolves to the first result's coordinates."""
        mock_client = _create_mock_client([{"lat": "-37.8136", "lon": "144.9631"}])
        geocoder = NominatimGeocoder(
            settings=GeocodingSettings(base_url="http://geo", user_agent="tests/1.0"),
            client=mock_client,
        )

        result = await geocoder.forward_geocode("Melbourne VIC")

        assert result == MELBOURNE
        call = mock_client.get.call_args
        assert call.args[0] == "http://geo/search"
        assert call.kwargs["params"]["q"] == "Melbourne VIC"
        assert call.kwargs["headers"]["User-Agent"] == "tests/1.0"

    @pytest.mark.asyncio
    async def test_forward_geocode_no_results(self) -> None:
        """Empty result list gives None."""
        geocoder = NominatimGeocoder(
            settings=GeocodingSettings(base_url="http://geo"),
            client=_create_mock_client([]),
        )
        assert await geocoder.forward_geocode("Nowhere") is None

    @pytest.mark.asyncio
    async def test_forward_geocode_blank_address(self) -> None:
        """Blank addresses are not sent to the backend."""
        mock_client = _create_mock_client([])
        geocoder = NominatimGeocoder(
            settings=GeocodingSettings(base_url="http://geo"),
            client=mock_client,
        )

        assert await geocoder.forward_geocode("   ") is None
        mock_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_forward_geocode_connection_error(self) -> None:
        """Transport failures give None instead of raising."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.get.side_effect = httpx.RequestError("Connection failed")
        geocoder = NominatimGeocoder(
            settings=GeocodingSettings(base_url="http://geo"),
            client=mock_client,
        )

        assert await geocoder.forward_geocode("Melbourne") is None

    @pytest.mark.asyncio
    async def test_reverse_geocode(self) -> None:
        """Coordinates resolve to address details."""
        mock_client = _create_mock_client(
            {
                "display_name": "Flinders St, Melbourne VIC 3000, Australia",
                "address": {
                    "city": "Melbourne",
                    "state": "Victoria",
                    "country": "Australia",
                    "postcode": "3000",
                },
            }
        )
        geocoder = NominatimGeocoder(
            settings=GeocodingSettings(base_url="http://geo"),
            client=mock_client,
        )

        result = await geocoder.reverse_geocode(MELBOURNE)

        assert result == AddressInfo(
            address="Flinders St, Melbourne VIC 3000, Australia",
            suburb="Melbourne",
            state="Victoria",
            country="Australia",
            postcode="3000",
        )

    @pytest.mark.asyncio
    async def test_reverse_geocode_prefers_suburb(self) -> None:
        """Suburb wins over town and city."""
        geocoder = NominatimGeocoder(
            settings=GeocodingSettings(base_url="http://geo"),
            client=_create_mock_client(
                {
                    "display_name": "Somewhere",
                    "address": {"suburb": "Carlton", "city": "Melbourne"},
                }
            ),
        )

        result = await geocoder.reverse_geocode(MELBOURNE)

        assert result is not None
        assert result.suburb == "Carlton"

    @pytest.mark.asyncio
    async def test_reverse_geocode_error_payload(self) -> None:
        """Backend error payloads give None."""
        geocoder = NominatimGeocoder(
            settings=GeocodingSettings(base_url="http://geo"),
            client=_create_mock_client({"error": "Unable to geocode"}),
        )
        assert await geocoder.reverse_geocode(MELBOURNE) is None

    @pytest.mark.asyncio
    async def test_reverse_geocode_http_error(self) -> None:
        """HTTP errors give None."""
        mock_response = MagicMock()
        mock_response.status_code = 503
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Unavailable",
            request=MagicMock(),
            response=mock_response,
        )
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.get.return_value = mock_response
        geocoder = NominatimGeocoder(
            settings=GeocodingSettings(base_url="http://geo"),
            client=mock_client,
        )

        assert await geocoder.reverse_geocode(MELBOURNE) is None


class TestEnrichAlertPosition:
    """Tests for enrich_alert_position."""

    @pytest.mark.asyncio
    async def test_sets_position(self, make_alert: Callable[..., Alert]) -> None:
        """An alert without a position gets one from its location text."""
        geocoder = AsyncMock(spec=Geocoder)
        geocoder.forward_geocode.return_value = MELBOURNE
        alert = make_alert("a1", location="Melbourne CBD")

        enriched = await enrich_alert_position(alert, geocoder)

        assert enriched.position == MELBOURNE
        assert alert.position is None
        geocoder.forward_geocode.assert_awaited_once_with("Melbourne CBD")

    @pytest.mark.asyncio
    async def test_keeps_existing_position(self, make_alert: Callable[..., Alert]) -> None:
        """Alerts that already have a position are not geocoded."""
        geocoder = AsyncMock(spec=Geocoder)
        alert = make_alert("a1", location="Melbourne", position=(-37.8, 144.9))

        assert await enrich_alert_position(alert, geocoder) is alert
        geocoder.forward_geocode.assert_not_called()

    @pytest.mark.asyncio
    async def test_unresolved_location(self, make_alert: Callable[..., Alert]) -> None:
        """Unresolved locations leave the alert unchanged."""
        geocoder = AsyncMock(spec=Geocoder)
        geocoder.forward_geocode.return_value = None
        alert = make_alert("a1", location="Atlantis")

        assert await enrich_alert_position(alert, geocoder) is alert

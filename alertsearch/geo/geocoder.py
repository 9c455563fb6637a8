"""Geocoding interface and Nominatim implementation."""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from alertsearch.alerts.models import Alert, Coordinate
from alertsearch.config import GeocodingSettings, get_settings
from alertsearch.exceptions import ErrorCode, GeocodingError
from alertsearch.geo.models import AddressInfo
from alertsearch.logging_config import get_logger

logger = get_logger(__name__)


class Geocoder(ABC):
    """Abstract base class for geocoders.

    Both directions return None when nothing usable comes back; a failing
    backend is never fatal to callers.
    """

    @abstractmethod
    async def forward_geocode(self, address: str) -> Coordinate | None:
        """Resolve a free-text address to coordinates.

        Args:
            address: Address or place name.

        Returns:
            Coordinate, or None if the address could not be resolved.
        """
        ...

    @abstractmethod
    async def reverse_geocode(self, coordinate: Coordinate) -> AddressInfo | None:
        """Resolve coordinates to address details.

        Args:
            coordinate: Position to look up.

        Returns:
            AddressInfo, or None if the position could not be resolved.
        """
        ...


class NominatimGeocoder(Geocoder):
    """Geocoder for the OpenStreetMap Nominatim HTTP API."""

    def __init__(
        self,
        settings: GeocodingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Nominatim geocoder.

        Args:
            settings: Geocoding configuration.
            client: HTTP client (for testing).
        """
        self._settings = settings or get_settings().geocoding
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def forward_geocode(self, address: str) -> Coordinate | None:
        if not address.strip():
            return None

        try:
            data = await self._get_json(
                "/search",
                {"q": address, "format": "json", "limit": 1},
            )
            if not data:
                return None
            return Coordinate(
                latitude=float(data[0]["lat"]),
                longitude=float(data[0]["lon"]),
            )
        except GeocodingError as e:
            logger.warning(f"Forward geocoding failed: {e.message}", extra=e.details)
            return None
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Unexpected forward geocoding response: {e}")
            return None

    async def reverse_geocode(self, coordinate: Coordinate) -> AddressInfo | None:
        try:
            data = await self._get_json(
                "/reverse",
                {
                    "lat": coordinate.latitude,
                    "lon": coordinate.longitude,
                    "format": "json",
                },
            )
            if not data or "error" in data:
                return None

            address = data.get("address", {})
            return AddressInfo(
                address=data["display_name"],
                suburb=address.get("suburb") or address.get("town") or address.get("city"),
                state=address.get("state"),
                country=address.get("country"),
                postcode=address.get("postcode"),
            )
        except GeocodingError as e:
            logger.warning(f"Reverse geocoding failed: {e.message}", extra=e.details)
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Unexpected reverse geocoding response: {e}")
            return None

    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        """GET a Nominatim endpoint and decode the JSON body.

        Raises:
            GeocodingError: On HTTP or transport failure.
        """
        client = await self._get_client()
        url = f"{self._settings.base_url}{path}"
        headers = {"User-Agent": self._settings.user_agent}

        try:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GeocodingError(
                f"Geocoding service returned {e.response.status_code}",
                code=ErrorCode.GEOCODING_ERROR,
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            raise GeocodingError(
                f"Failed to connect to geocoding service: {e}",
                code=ErrorCode.GEOCODING_ERROR,
                details={"url": url},
            ) from e

        return response.json()


async def enrich_alert_position(alert: Alert, geocoder: Geocoder) -> Alert:
    """Attach a geocoded position to an alert that lacks one.

    Args:
        alert: Alert to enrich.
        geocoder: Geocoder used for the alert's free-text location.

    Returns:
        A copy with ``position`` set, or the alert unchanged when it already
        has a position, has no location text, or the location does not resolve.
    """
    if alert.has_position or not alert.location.strip():
        return alert

    position = await geocoder.forward_geocode(alert.location)
    if position is None:
        return alert

    logger.debug("Geocoded alert location", extra={"alert_id": alert.id})
    return alert.model_copy(update={"position": position})

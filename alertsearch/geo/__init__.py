"""Geographic distance and geocoding."""

from alertsearch.geo.distance import (
    EARTH_RADIUS_KM,
    distance_km,
    nearby_alerts,
    try_distance_km,
)
from alertsearch.geo.geocoder import Geocoder, NominatimGeocoder, enrich_alert_position
from alertsearch.geo.models import AddressInfo

__all__ = [
    "EARTH_RADIUS_KM",
    "AddressInfo",
    "Geocoder",
    "NominatimGeocoder",
    "distance_km",
    "enrich_alert_position",
    "nearby_alerts",
    "try_distance_km",
]

"""Great-circle distance and radius filtering.

Distances are in kilometers on a spherical Earth; coordinates are decimal
degrees. The haversine form is used:

    a = sin²(Δφ / 2) + cos(φ₁) · cos(φ₂) · sin²(Δλ / 2)
    d = 2R · atan2(√a, √(1 − a))
"""

import math

from alertsearch.alerts.models import Alert, Coordinate
from alertsearch.exceptions import InvalidCoordinate, ValidationError

EARTH_RADIUS_KM = 6371.0


def _check(point: Coordinate | None, name: str) -> Coordinate:
    if point is None:
        raise InvalidCoordinate(f"{name} coordinate is missing", details={"point": name})
    if not point.is_valid:
        raise InvalidCoordinate(
            f"{name} coordinate is not a valid position",
            details={
                "point": name,
                "latitude": point.latitude,
                "longitude": point.longitude,
            },
        )
    return point


def distance_km(a: Coordinate | None, b: Coordinate | None) -> float:
    """Haversine distance between two points.

    Symmetric and exactly zero for identical points.

    Args:
        a: First point.
        b: Second point.

    Returns:
        Great-circle distance in kilometers.

    Raises:
        InvalidCoordinate: If either point is missing, non-finite or out of range.
    """
    a = _check(a, "first")
    b = _check(b, "second")

    lat_a = math.radians(a.latitude)
    lat_b = math.radians(b.latitude)
    # abs() keeps the half-angle terms bit-identical when a and b swap
    d_lat = abs(lat_b - lat_a)
    d_lon = abs(math.radians(b.longitude) - math.radians(a.longitude))

    h = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(lat_a) * math.cos(lat_b) * math.sin(d_lon / 2.0) ** 2
    )
    # Rounding can push h a hair above 1 for antipodal points
    h = min(1.0, h)
    return 2.0 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))


def try_distance_km(a: Coordinate | None, b: Coordinate | None) -> float | None:
    """Distance between two points, or None when either is unusable."""
    try:
        return distance_km(a, b)
    except InvalidCoordinate:
        return None


def nearby_alerts(
    alerts: list[Alert],
    location: Coordinate,
    radius_km: float,
) -> list[tuple[Alert, float]]:
    """Alerts within a radius of a location, closest first.

    Alerts without a usable position are skipped.

    Args:
        alerts: Alerts to filter.
        location: Center of the search circle.
        radius_km: Radius in kilometers.

    Returns:
        (alert, distance_km) pairs inside the radius, sorted by distance
        then alert id.

    Raises:
        InvalidCoordinate: If the center location is unusable.
        ValidationError: If the radius is not positive.
    """
    if radius_km <= 0:
        raise ValidationError(
            f"Radius must be positive, got {radius_km}",
            details={"radius_km": radius_km},
        )
    _check(location, "center")

    matched: list[tuple[Alert, float]] = []
    for alert in alerts:
        dist = try_distance_km(location, alert.position)
        if dist is not None and dist <= radius_km:
            matched.append((alert, dist))

    matched.sort(key=lambda pair: (pair[1], pair[0].id))
    return matched

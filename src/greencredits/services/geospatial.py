"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Optional

from ..errors import InvalidCoordinate
from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0


def ensure_coordinate(point: Optional[Coordinate]) -> Coordinate:
    """Return the coordinate unchanged or raise ``InvalidCoordinate``."""

    if point is None:
        raise InvalidCoordinate("Coordinate is required.")
    lat, lon = point.latitude, point.longitude
    if lat is None or lon is None or math.isnan(lat) or math.isnan(lon):
        raise InvalidCoordinate("Coordinate is missing latitude or longitude.")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate(f"Latitude {lat} must be between -90 and 90.")
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinate(f"Longitude {lon} must be between -180 and 180.")
    return point


def haversine_km(origin: Optional[Coordinate], target: Optional[Coordinate]) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    origin = ensure_coordinate(origin)
    target = ensure_coordinate(target)

    phi1, phi2 = math.radians(origin.latitude), math.radians(target.latitude)
    d_phi = math.radians(target.latitude - origin.latitude)
    d_lambda = math.radians(target.longitude - origin.longitude)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def format_distance(distance_km: float) -> str:
    """Human label for a distance: metres below one kilometre, else one decimal km."""

    if distance_km < 1:
        return f"{round(distance_km * 1000)}m"
    return f"{distance_km:.1f}km"

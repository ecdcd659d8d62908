import math

import pytest

from greencredits.errors import InvalidCoordinate
from greencredits.models.domain import Coordinate
from greencredits.services.geospatial import EARTH_RADIUS_KM, ensure_coordinate, format_distance, haversine_km

JEDDAH = Coordinate(21.5433, 39.1728)
MAKKAH = Coordinate(21.3891, 39.8579)


def test_haversine_is_symmetric() -> None:
    assert haversine_km(JEDDAH, MAKKAH) == pytest.approx(haversine_km(MAKKAH, JEDDAH))


def test_haversine_same_point_is_zero() -> None:
    assert haversine_km(JEDDAH, JEDDAH) == 0.0


def test_haversine_one_degree_on_equator() -> None:
    expected = EARTH_RADIUS_KM * math.pi / 180
    assert haversine_km(Coordinate(0.0, 0.0), Coordinate(0.0, 1.0)) == pytest.approx(expected)
    assert haversine_km(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0)) == pytest.approx(expected)


def test_haversine_between_cities_is_reasonable() -> None:
    assert 65 < haversine_km(JEDDAH, MAKKAH) < 80


@pytest.mark.parametrize(
    "point",
    [
        None,
        Coordinate(91.0, 0.0),
        Coordinate(-90.5, 0.0),
        Coordinate(0.0, 180.1),
        Coordinate(float("nan"), 10.0),
    ],
)
def test_invalid_coordinates_are_rejected(point) -> None:
    with pytest.raises(InvalidCoordinate):
        haversine_km(point, JEDDAH)


def test_boundary_coordinates_are_valid() -> None:
    corner = Coordinate(-90.0, 180.0)
    assert ensure_coordinate(corner) is corner


def test_format_distance_switches_units_at_one_kilometre() -> None:
    assert format_distance(0.25) == "250m"
    assert format_distance(0.0) == "0m"
    assert format_distance(1.0) == "1.0km"
    assert format_distance(2.44) == "2.4km"

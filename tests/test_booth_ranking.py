import pytest

from greencredits.errors import InvalidCoordinate
from greencredits.models.domain import Booth, BoothStatus, Coordinate
from greencredits.services.booths import rank_booths

ORIGIN = Coordinate(21.5, 39.2)


def _booth(booth_id: str, lat: float | None, lon: float | None, **kwargs) -> Booth:
    location = Coordinate(lat, lon) if lat is not None and lon is not None else None
    kwargs.setdefault("name", f"Booth {booth_id}")
    return Booth(booth_id=booth_id, location=location, **kwargs)


def _booths() -> list[Booth]:
    return [
        _booth("far", 21.9, 39.6, area="North"),
        _booth("nowhere-1", None, None, area="Central"),
        _booth("near", 21.501, 39.201, address="Corniche Road"),
        _booth("mid", 21.6, 39.3, status=BoothStatus.MAINTENANCE),
        _booth("nowhere-2", None, None, name="Mall Kiosk"),
    ]


def test_orders_by_distance_with_unlocated_booths_last() -> None:
    ranked = rank_booths(_booths(), location=ORIGIN)

    assert [item.booth.booth_id for item in ranked] == ["near", "mid", "far", "nowhere-1", "nowhere-2"]
    distances = [item.distance_km for item in ranked if item.distance_km is not None]
    assert distances == sorted(distances)
    assert not ranked[0].distance_label.endswith("km")
    assert ranked[2].distance_label.endswith("km")
    assert ranked[-1].distance_km is None
    assert ranked[-1].distance_label is None


def test_input_order_kept_without_location() -> None:
    booths = _booths()
    ranked = rank_booths(booths)
    assert [item.booth for item in ranked] == booths
    assert all(item.distance_km is None for item in ranked)


def test_input_is_not_modified() -> None:
    booths = _booths()
    snapshot = list(booths)
    rank_booths(booths, location=ORIGIN, query="booth")
    assert booths == snapshot


@pytest.mark.parametrize(
    "query, expected",
    [
        ("corniche", ["near"]),
        ("NORTH", ["far"]),
        ("kiosk", ["nowhere-2"]),
        ("  ", ["far", "nowhere-1", "near", "mid", "nowhere-2"]),
    ],
)
def test_text_query_matches_name_address_and_area(query: str, expected: list[str]) -> None:
    ranked = rank_booths(_booths(), query=query)
    assert [item.booth.booth_id for item in ranked] == expected


def test_status_filter() -> None:
    ranked = rank_booths(_booths(), status="maintenance")
    assert [item.booth.booth_id for item in ranked] == ["mid"]

    active = rank_booths(_booths(), status="active", location=ORIGIN)
    assert "mid" not in [item.booth.booth_id for item in active]


def test_unknown_status_filter() -> None:
    with pytest.raises(ValueError):
        rank_booths(_booths(), status="closed")


def test_invalid_origin() -> None:
    with pytest.raises(InvalidCoordinate):
        rank_booths(_booths(), location=Coordinate(120.0, 0.0))


def test_booth_with_invalid_coordinates_is_treated_as_unlocated() -> None:
    booths = [_booth("broken", 95.0, 10.0), _booth("near", 21.501, 39.201)]
    ranked = rank_booths(booths, location=ORIGIN)
    assert [item.booth.booth_id for item in ranked] == ["near", "broken"]
    assert ranked[1].distance_km is None

"""Booth search, status filtering and proximity ordering."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ...errors import InvalidCoordinate
from ...models.domain import Booth, BoothStatus, Coordinate
from ..geospatial import ensure_coordinate, format_distance, haversine_km

logger = logging.getLogger(__name__)

ALL_STATUSES = "all"


@dataclass(frozen=True, slots=True)
class RankedBooth:
    booth: Booth
    distance_km: Optional[float] = None

    @property
    def distance_label(self) -> Optional[str]:
        if self.distance_km is None:
            return None
        return format_distance(self.distance_km)


def _matches_query(booth: Booth, needle: str) -> bool:
    haystacks = (booth.name, booth.address, booth.area)
    return any(needle in (value or "").lower() for value in haystacks)


def _distance_to(origin: Coordinate, booth: Booth) -> Optional[float]:
    if booth.location is None:
        return None
    try:
        return haversine_km(origin, booth.location)
    except InvalidCoordinate as exc:
        logger.warning(f"Ignoring coordinates of booth {booth.booth_id}: {exc}")
        return None


def _normalize_status(status: Optional[str]) -> Optional[BoothStatus]:
    if status is None or status == ALL_STATUSES:
        return None
    try:
        return BoothStatus(status)
    except ValueError as exc:
        raise ValueError(f"Unknown booth status filter '{status}'.") from exc


def rank_booths(
    booths: Sequence[Booth],
    *,
    query: Optional[str] = None,
    status: Optional[str] = ALL_STATUSES,
    location: Optional[Coordinate] = None,
) -> list[RankedBooth]:
    """Filter by text, then by status, then order by distance from ``location``.

    Booths without coordinates keep their relative order after every booth that
    has one. The input sequence is never modified.
    """

    wanted_status = _normalize_status(status)
    filtered = list(booths)

    needle = (query or "").strip().lower()
    if needle:
        filtered = [booth for booth in filtered if _matches_query(booth, needle)]

    if wanted_status is not None:
        filtered = [booth for booth in filtered if booth.status == wanted_status]

    if location is None:
        return [RankedBooth(booth=booth) for booth in filtered]

    origin = ensure_coordinate(location)
    ranked = [RankedBooth(booth=booth, distance_km=_distance_to(origin, booth)) for booth in filtered]
    # sorted() is stable, so ties and coordinate-less booths keep input order
    return sorted(
        ranked,
        key=lambda item: (item.distance_km is None, item.distance_km or 0.0),
    )

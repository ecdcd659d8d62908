"""Booth locator endpoints."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.domain import BoothStatus, Coordinate
from ...schemas.booths import BoothListResponse, BoothModel, BoothResolveRequest, RankedBoothModel
from ...services.booths import ALL_STATUSES, rank_booths
from ...services.ports import BoothDirectory
from ..dependencies import get_booth_directory

router = APIRouter(prefix="/booths", tags=["booths"])


@router.get("", response_model=BoothListResponse, status_code=status.HTTP_200_OK)
def list_booths(
    q: str | None = Query(default=None, description="Case-insensitive search over name, address and area"),
    status_filter: str = Query(default=ALL_STATUSES, alias="status", description="'all' or one booth status"),
    lat: float | None = Query(default=None, description="Caller latitude for distance ordering"),
    lon: float | None = Query(default=None, description="Caller longitude for distance ordering"),
    directory: BoothDirectory = Depends(get_booth_directory),
) -> BoothListResponse:
    if (lat is None) != (lon is None):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Provide both lat and lon, or neither.")
    location = Coordinate(latitude=lat, longitude=lon) if lat is not None else None
    try:
        ranked = rank_booths(directory.list_booths(), query=q, status=status_filter, location=location)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return BoothListResponse(items=[RankedBoothModel.from_domain(item) for item in ranked], total=len(ranked))


@router.post("/resolve", response_model=BoothModel, status_code=status.HTTP_200_OK)
def resolve_booth(
    payload: BoothResolveRequest,
    directory: BoothDirectory = Depends(get_booth_directory),
) -> BoothModel:
    """Validate a scanned booth QR code."""
    booth = directory.resolve_booth_by_token(payload.token)
    if booth is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid QR code or booth not found")
    if booth.status != BoothStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Booth is currently {booth.status.value}. Please try another booth.",
        )
    if not booth.is_open_at(datetime.now()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Booth is currently closed")
    if booth.is_full:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=booth.capacity_problem())
    logging.info(f"Resolved booth QR code to booth {booth.booth_id}")
    return BoothModel.from_domain(booth)

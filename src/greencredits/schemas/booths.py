"""Booth-facing API schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import Booth, Coordinate
from ..services.booths import RankedBooth


class CoordinateModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class OperatingHoursModel(BaseModel):
    open_time: str
    close_time: str
    closed_days: List[str] = []
    is_24h: bool = False


class BoothModel(BaseModel):
    booth_id: str
    name: str
    address: str
    area: str
    status: str
    location: Optional[CoordinateModel] = None
    accepted_waste_types: List[str]
    operating_hours: Optional[OperatingHoursModel] = None
    contact_number: Optional[str] = None
    max_kg_per_day: Optional[float] = None
    kg_today: float = 0.0
    is_full: bool = False

    @classmethod
    def from_domain(cls, booth: Booth) -> "BoothModel":
        hours = booth.operating_hours
        return cls(
            booth_id=booth.booth_id,
            name=booth.name,
            address=booth.address,
            area=booth.area,
            status=booth.status.value,
            location=(
                CoordinateModel(latitude=booth.location.latitude, longitude=booth.location.longitude)
                if booth.location
                else None
            ),
            accepted_waste_types=list(booth.accepted_waste_types),
            operating_hours=(
                OperatingHoursModel(
                    open_time=hours.open_time.strftime("%H:%M"),
                    close_time=hours.close_time.strftime("%H:%M"),
                    closed_days=list(hours.closed_days),
                    is_24h=hours.is_24h,
                )
                if hours
                else None
            ),
            contact_number=booth.contact_number,
            max_kg_per_day=booth.max_kg_per_day,
            kg_today=booth.kg_today,
            is_full=booth.is_full,
        )


class RankedBoothModel(BaseModel):
    booth: BoothModel
    distance_km: Optional[float] = None
    distance_label: Optional[str] = None

    @classmethod
    def from_domain(cls, ranked: RankedBooth) -> "RankedBoothModel":
        return cls(
            booth=BoothModel.from_domain(ranked.booth),
            distance_km=round(ranked.distance_km, 3) if ranked.distance_km is not None else None,
            distance_label=ranked.distance_label,
        )


class BoothListResponse(BaseModel):
    items: List[RankedBoothModel]
    total: int


class BoothResolveRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Decoded booth QR payload.")

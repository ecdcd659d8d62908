"""Waste type catalog endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from ...schemas.submissions import WasteTypeModel
from ...services.rewards import CO2_FACTORS, RateTable
from ..dependencies import get_rate_table

router = APIRouter(prefix="/waste-types", tags=["rewards"])


@router.get("", response_model=List[WasteTypeModel], status_code=status.HTTP_200_OK)
def list_waste_types(rates: RateTable = Depends(get_rate_table)) -> List[WasteTypeModel]:
    return [
        WasteTypeModel(type=waste_type, points_per_kg=rate, co2_per_kg=CO2_FACTORS.get(waste_type))
        for waste_type, rate in rates.items()
    ]

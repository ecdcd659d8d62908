"""Self-service submission API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import SubmissionRecord
from .booths import CoordinateModel


class PhotoModel(BaseModel):
    filename: str
    size_bytes: int = Field(..., ge=0)


class SubmissionRequest(BaseModel):
    booth_token: Optional[str] = Field(default=None, description="Booth QR payload scanned by the user.")
    booth_id: Optional[str] = Field(default=None, description="Booth picked manually when scanning is skipped.")
    waste_type: Optional[str] = None
    quantity_kg: float = 0.0
    photos: List[PhotoModel] = []
    notes: str = ""
    location: Optional[CoordinateModel] = None


class SubmissionResponse(BaseModel):
    submission_id: str
    waste_type: str
    quantity_kg: float
    points: int
    status: str
    co2_saved_kg: float


class SubmissionRecordModel(BaseModel):
    submission_id: str
    booth_id: Optional[str] = None
    waste_type: str
    quantity_kg: float
    points: int
    status: str
    method: str
    submitted_at: datetime
    notes: str = ""

    @classmethod
    def from_domain(cls, record: SubmissionRecord) -> "SubmissionRecordModel":
        return cls(
            submission_id=record.submission_id,
            booth_id=record.booth_id,
            waste_type=record.waste_type,
            quantity_kg=record.quantity_kg,
            points=record.points,
            status=record.status.value,
            method=record.method.value,
            submitted_at=record.submitted_at,
            notes=record.notes,
        )


class WasteTypeModel(BaseModel):
    type: str
    points_per_kg: float
    co2_per_kg: Optional[float] = None

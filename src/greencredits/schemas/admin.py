"""Booth-operator API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import CreditLedgerEntry, SubmissionRecord, User


class UserSummaryModel(BaseModel):
    user_id: str
    name: str
    username: str
    green_credits: int
    total_waste_kg: float
    rank: str

    @classmethod
    def from_domain(cls, user: User) -> "UserSummaryModel":
        return cls(
            user_id=user.user_id,
            name=user.name,
            username=user.username,
            green_credits=user.green_credits,
            total_waste_kg=user.total_waste_kg,
            rank=user.rank,
        )


class ScanRequest(BaseModel):
    user_token: str = Field(..., min_length=1)


class ScanResponse(BaseModel):
    user: UserSummaryModel
    booth_ids: List[str]


class CollectionRequest(BaseModel):
    user_token: str = Field(..., min_length=1)
    booth_id: Optional[str] = Field(default=None, description="Defaults to the operator's first assigned booth.")
    waste_type: str
    quantity_kg: float = Field(..., gt=0)
    notes: str = ""


class LedgerEntryModel(BaseModel):
    entry_id: str
    user_id: str
    booth_id: str
    operator_id: str
    waste_type: str
    quantity_kg: float
    points_delta: int
    resulting_balance: int
    created_at: datetime
    notes: str = ""

    @classmethod
    def from_domain(cls, entry: CreditLedgerEntry) -> "LedgerEntryModel":
        return cls(
            entry_id=entry.entry_id,
            user_id=entry.user_id,
            booth_id=entry.booth_id,
            operator_id=entry.operator_id,
            waste_type=entry.waste_type,
            quantity_kg=entry.quantity_kg,
            points_delta=entry.points_delta,
            resulting_balance=entry.resulting_balance,
            created_at=entry.created_at,
            notes=entry.notes,
        )


class CollectionResponse(BaseModel):
    user_id: str
    points: int
    balance: int
    rank: str
    entry: LedgerEntryModel


class ReviewSubmissionModel(BaseModel):
    submission_id: str
    booth_id: Optional[str] = None
    user_id: str
    waste_type: str
    quantity_kg: float
    points: int
    status: str
    method: str
    submitted_at: datetime
    notes: str = ""
    photo_count: int = 0
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, record: SubmissionRecord) -> "ReviewSubmissionModel":
        return cls(
            submission_id=record.submission_id,
            booth_id=record.booth_id,
            user_id=record.user_id,
            waste_type=record.waste_type,
            quantity_kg=record.quantity_kg,
            points=record.points,
            status=record.status.value,
            method=record.method.value,
            submitted_at=record.submitted_at,
            notes=record.notes,
            photo_count=len(record.photos),
            reviewed_by=record.reviewed_by,
            reviewed_at=record.reviewed_at,
        )


class ApproveRequest(BaseModel):
    notes: str = ""


class RejectRequest(BaseModel):
    reason: str = Field(..., description="Shown to the user; required.")


class ApprovalResponse(BaseModel):
    submission: ReviewSubmissionModel
    entry: LedgerEntryModel

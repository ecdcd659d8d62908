"""Domain models for booths, users, submissions and credit ledger entries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum
from typing import Optional


class WasteType(str, Enum):
    PLASTIC = "plastic"
    PAPER = "paper"
    METAL = "metal"
    GLASS = "glass"
    ORGANIC = "organic"
    ELECTRONIC = "electronic"
    TEXTILE = "textile"
    HAZARDOUS = "hazardous"


class BoothStatus(str, Enum):
    ACTIVE = "active"
    BUSY = "busy"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class SubmissionMethod(str, Enum):
    QR_SCAN = "qr_scan"
    MANUAL = "manual"
    BOOTH_OPERATOR = "booth_operator"


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class OperatingHours:
    """Daily opening window; ``closed_days`` uses lowercase English weekday names."""

    open_time: time = time(0, 0)
    close_time: time = time(23, 59)
    closed_days: tuple[str, ...] = ()
    is_24h: bool = False

    def is_open_at(self, moment: datetime) -> bool:
        if moment.strftime("%A").lower() in self.closed_days:
            return False
        if self.is_24h:
            return True
        current = moment.time().replace(second=0, microsecond=0)
        return self.open_time <= current <= self.close_time


@dataclass(frozen=True, slots=True)
class Booth:
    """Represents a physical collection booth."""

    booth_id: str
    name: str
    address: str = ""
    area: str = ""
    location: Optional[Coordinate] = None
    status: BoothStatus = BoothStatus.ACTIVE
    accepted_waste_types: tuple[str, ...] = ()
    operating_hours: Optional[OperatingHours] = None
    contact_number: Optional[str] = None
    qr_code: Optional[str] = None
    max_kg_per_day: Optional[float] = None
    kg_today: float = 0.0

    @property
    def is_full(self) -> bool:
        return self.max_kg_per_day is not None and self.kg_today >= self.max_kg_per_day

    def capacity_problem(self, quantity_kg: float = 0.0) -> Optional[str]:
        """Reason the booth cannot take ``quantity_kg`` more today, or ``None``."""
        if self.max_kg_per_day is None:
            return None
        if self.is_full:
            return "Booth has reached daily capacity"
        if quantity_kg and self.kg_today + quantity_kg > self.max_kg_per_day:
            return "Adding this quantity would exceed daily capacity"
        return None

    def accepts(self, waste_type: str) -> bool:
        """An empty accepted list means the booth takes every waste type."""
        return not self.accepted_waste_types or waste_type in self.accepted_waste_types

    def is_open_at(self, moment: datetime) -> bool:
        if self.operating_hours is None:
            return True
        return self.operating_hours.is_open_at(moment)


@dataclass(slots=True)
class User:
    user_id: str
    name: str
    username: str
    green_credits: int = 0
    total_waste_kg: float = 0.0
    qr_code: Optional[str] = None

    @property
    def rank(self) -> str:
        from ..services.rewards.calculator import rank_for_credits

        return rank_for_credits(self.green_credits)


@dataclass(frozen=True, slots=True)
class Operator:
    """A booth operator (admin) who weighs waste and credits users."""

    operator_id: str
    name: str
    booth_ids: tuple[str, ...] = ()
    is_super_admin: bool = False

    def can_operate(self, booth_id: str) -> bool:
        return self.is_super_admin or booth_id in self.booth_ids


@dataclass(frozen=True, slots=True)
class PhotoAttachment:
    filename: str
    size_bytes: int


@dataclass(frozen=True, slots=True)
class SubmissionDraft:
    """In-progress self-service submission. Replaced, never mutated, on each input event."""

    booth: Optional[Booth] = None
    waste_type: Optional[str] = None
    quantity_kg: float = 0.0
    photos: tuple[PhotoAttachment, ...] = ()
    notes: str = ""
    location: Optional[Coordinate] = None


@dataclass(frozen=True, slots=True)
class SubmissionRecord:
    submission_id: str
    booth_id: Optional[str]
    user_id: str
    waste_type: str
    quantity_kg: float
    points: int
    submitted_at: datetime
    status: SubmissionStatus = SubmissionStatus.PENDING
    method: SubmissionMethod = SubmissionMethod.QR_SCAN
    notes: str = ""
    location: Optional[Coordinate] = None
    photos: tuple[PhotoAttachment, ...] = ()
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class CreditMetadata:
    """Context recorded alongside a credit application."""

    booth_id: str
    operator_id: str
    waste_type: str
    quantity_kg: float
    notes: str = ""


@dataclass(frozen=True, slots=True)
class CreditLedgerEntry:
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

"""In-process implementations of the collaborator interfaces.

Used when Supabase is not configured and throughout the test suite.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

from ..errors import PersistenceFailure, SubmissionAlreadyProcessed, UnknownSubmission, UnknownUser
from ..models.domain import (
    Booth,
    Coordinate,
    CreditLedgerEntry,
    CreditMetadata,
    Operator,
    SubmissionRecord,
    SubmissionStatus,
    User,
)


class DailyLoadCounter:
    """Kilograms collected per booth since midnight.

    A booth's seeded ``kg_today`` only counts on the day the counter was created.
    """

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today
        self._started = today()
        self._day = self._started
        self._loads: dict[str, float] = {}
        self._lock = threading.Lock()

    def _roll_over(self) -> None:
        today = self._today()
        if today != self._day:
            self._day = today
            self._loads.clear()

    def add(self, booth_id: str, quantity_kg: float) -> None:
        if not quantity_kg > 0:
            raise ValueError("Quantity must be greater than 0.")
        with self._lock:
            self._roll_over()
            self._loads[booth_id] = self._loads.get(booth_id, 0.0) + quantity_kg

    def apply(self, booth: Booth) -> Booth:
        with self._lock:
            self._roll_over()
            seeded = booth.kg_today if self._day == self._started else 0.0
            added = self._loads.get(booth.booth_id, 0.0)
        if seeded + added == booth.kg_today:
            return booth
        return replace(booth, kg_today=seeded + added)


class InMemoryBoothDirectory:
    def __init__(self, booths: Iterable[Booth] = (), loads: DailyLoadCounter | None = None) -> None:
        self._booths = tuple(booths)
        self._loads = loads or DailyLoadCounter()

    def list_booths(self) -> tuple[Booth, ...]:
        return tuple(self._loads.apply(booth) for booth in self._booths)

    def resolve_booth_by_token(self, token: str) -> Optional[Booth]:
        token = (token or "").strip()
        if not token:
            return None
        return next((booth for booth in self.list_booths() if booth.qr_code == token), None)

    def get_booth(self, booth_id: str) -> Optional[Booth]:
        return next((booth for booth in self.list_booths() if booth.booth_id == booth_id), None)

    def record_load(self, booth_id: str, quantity_kg: float) -> None:
        self._loads.add(booth_id, quantity_kg)


class InMemorySubmissionStore:
    def __init__(self) -> None:
        self._records: list[SubmissionRecord] = []
        self._lock = threading.Lock()

    def create_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        with self._lock:
            if any(existing.submission_id == record.submission_id for existing in self._records):
                raise PersistenceFailure(f"Submission {record.submission_id} already exists.")
            self._records.append(record)
        return record

    def list_submissions(
        self,
        user_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> list[SubmissionRecord]:
        with self._lock:
            records = list(self._records)
        return [
            record
            for record in records
            if (user_id is None or record.user_id == user_id) and (status is None or record.status == status)
        ]

    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        with self._lock:
            return next((record for record in self._records if record.submission_id == submission_id), None)

    def update_submission(
        self,
        record: SubmissionRecord,
        *,
        expected_status: SubmissionStatus = SubmissionStatus.PENDING,
    ) -> SubmissionRecord:
        with self._lock:
            for index, existing in enumerate(self._records):
                if existing.submission_id != record.submission_id:
                    continue
                if existing.status != expected_status:
                    raise SubmissionAlreadyProcessed(record.submission_id)
                self._records[index] = record
                return record
        raise UnknownSubmission(record.submission_id)


class InMemoryAccountStore:
    """Users, operators and the credit ledger behind one lock.

    Balance updates and ledger appends happen inside the same critical section,
    so readers never observe one without the other.
    """

    def __init__(self, users: Iterable[User] = (), operators: Iterable[Operator] = ()) -> None:
        self._users = {user.user_id: replace(user) for user in users}
        self._operators = {operator.operator_id: operator for operator in operators}
        self._entries: list[CreditLedgerEntry] = []
        self._lock = threading.Lock()

    def resolve_user_by_token(self, token: str) -> Optional[User]:
        token = (token or "").strip()
        with self._lock:
            for user in self._users.values():
                if token and user.qr_code == token:
                    return replace(user)
        return None

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    def get_operator(self, operator_id: str) -> Optional[Operator]:
        return self._operators.get(operator_id)

    def apply_credit(self, user_id: str, delta: int, metadata: CreditMetadata) -> CreditLedgerEntry:
        if delta < 0:
            raise ValueError("Credit delta cannot be negative.")
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise UnknownUser(user_id)
            entry = CreditLedgerEntry(
                entry_id=uuid.uuid4().hex,
                user_id=user_id,
                booth_id=metadata.booth_id,
                operator_id=metadata.operator_id,
                waste_type=metadata.waste_type,
                quantity_kg=metadata.quantity_kg,
                points_delta=delta,
                resulting_balance=user.green_credits + delta,
                created_at=datetime.now(timezone.utc),
                notes=metadata.notes,
            )
            user.green_credits = entry.resulting_balance
            user.total_waste_kg += metadata.quantity_kg
            self._entries.append(entry)
        return entry

    def list_entries(
        self,
        booth_id: Optional[str] = None,
        limit: Optional[int] = None,
        booth_ids: Optional[Sequence[str]] = None,
    ) -> list[CreditLedgerEntry]:
        allowed = None if booth_ids is None else set(booth_ids)
        with self._lock:
            entries = [
                entry
                for entry in reversed(self._entries)
                if (booth_id is None or entry.booth_id == booth_id) and (allowed is None or entry.booth_id in allowed)
            ]
        return entries[:limit] if limit else entries


class StaticLocationProvider:
    def __init__(self, location: Optional[Coordinate] = None) -> None:
        self.location = location

    def current_location(self) -> Optional[Coordinate]:
        return self.location

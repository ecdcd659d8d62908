"""Database persistence for waste submissions and the credit ledger."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..db.supabase import get_supabase_client
from ..errors import (
    ConcurrentCreditConflict,
    PersistenceFailure,
    SubmissionAlreadyProcessed,
    UnknownSubmission,
    UnknownUser,
)
from ..models.domain import (
    Coordinate,
    CreditLedgerEntry,
    CreditMetadata,
    PhotoAttachment,
    SubmissionMethod,
    SubmissionRecord,
    SubmissionStatus,
)

# Postgres SQLSTATE codes raised by apply_green_credit
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
NO_DATA_FOUND = "P0002"


def _require_client(client: Any) -> Any:
    client = client or get_supabase_client()
    if client is None:
        raise ValueError("Supabase is not configured.")
    return client


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def submission_to_row(record: SubmissionRecord) -> dict[str, Any]:
    return {
        "submission_id": record.submission_id,
        "booth_id": record.booth_id,
        "user_id": record.user_id,
        "waste_type": record.waste_type,
        "quantity_kg": record.quantity_kg,
        "points": record.points,
        "submitted_at": record.submitted_at.isoformat(),
        "status": record.status.value,
        "method": record.method.value,
        "notes": record.notes,
        "latitude": record.location.latitude if record.location else None,
        "longitude": record.location.longitude if record.location else None,
        "photos": [{"filename": photo.filename, "size_bytes": photo.size_bytes} for photo in record.photos],
        "reviewed_by": record.reviewed_by,
        "reviewed_at": record.reviewed_at.isoformat() if record.reviewed_at else None,
    }


def submission_from_row(row: Mapping[str, Any]) -> SubmissionRecord:
    lat, lon = row.get("latitude"), row.get("longitude")
    return SubmissionRecord(
        submission_id=str(row["submission_id"]),
        booth_id=row.get("booth_id"),
        user_id=str(row["user_id"]),
        waste_type=str(row["waste_type"]),
        quantity_kg=float(row["quantity_kg"]),
        points=int(row["points"]),
        submitted_at=_parse_timestamp(row["submitted_at"]),
        status=SubmissionStatus(row.get("status") or SubmissionStatus.PENDING.value),
        method=SubmissionMethod(row.get("method") or SubmissionMethod.QR_SCAN.value),
        notes=row.get("notes") or "",
        location=Coordinate(float(lat), float(lon)) if lat is not None and lon is not None else None,
        photos=tuple(
            PhotoAttachment(filename=photo.get("filename", ""), size_bytes=int(photo.get("size_bytes", 0)))
            for photo in (row.get("photos") or [])
        ),
        reviewed_by=row.get("reviewed_by"),
        reviewed_at=_parse_timestamp(row["reviewed_at"]) if row.get("reviewed_at") else None,
    )


def ledger_entry_from_row(row: Mapping[str, Any]) -> CreditLedgerEntry:
    return CreditLedgerEntry(
        entry_id=str(row["entry_id"]),
        user_id=str(row["user_id"]),
        booth_id=str(row.get("booth_id") or ""),
        operator_id=str(row["operator_id"]),
        waste_type=str(row["waste_type"]),
        quantity_kg=float(row["quantity_kg"]),
        points_delta=int(row["points_delta"]),
        resulting_balance=int(row["resulting_balance"]),
        created_at=_parse_timestamp(row["created_at"]),
        notes=row.get("notes") or "",
    )


class SupabaseSubmissionStore:
    def __init__(self, client: Any = None) -> None:
        self.client = _require_client(client)

    def create_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        try:
            response = self.client.table("waste_submissions").insert(submission_to_row(record)).execute()
        except Exception as e:
            logging.error(f"Failed to save submission {record.submission_id}: {e}")
            raise PersistenceFailure(f"Failed to save submission: {e}") from e
        if response.data:
            return submission_from_row(response.data[0])
        return record

    def list_submissions(
        self,
        user_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> list[SubmissionRecord]:
        try:
            query = self.client.table("waste_submissions").select("*")
            if user_id:
                query = query.eq("user_id", user_id)
            if status is not None:
                query = query.eq("status", status.value)
            response = query.order("submitted_at", desc=True).execute()
        except Exception as e:
            logging.error(f"Failed to load submissions: {e}")
            raise PersistenceFailure(f"Failed to load submissions: {e}") from e
        return [submission_from_row(row) for row in (response.data or [])]

    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        try:
            response = (
                self.client.table("waste_submissions")
                .select("*")
                .eq("submission_id", submission_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logging.error(f"Failed to load submission {submission_id}: {e}")
            raise PersistenceFailure(f"Failed to load submission: {e}") from e
        return submission_from_row(response.data[0]) if response.data else None

    def update_submission(
        self,
        record: SubmissionRecord,
        *,
        expected_status: SubmissionStatus = SubmissionStatus.PENDING,
    ) -> SubmissionRecord:
        """Only a row still in ``expected_status`` is updated."""
        changes = {
            key: value
            for key, value in submission_to_row(record).items()
            if key in ("status", "points", "notes", "reviewed_by", "reviewed_at")
        }
        try:
            response = (
                self.client.table("waste_submissions")
                .update(changes)
                .eq("submission_id", record.submission_id)
                .eq("status", expected_status.value)
                .execute()
            )
        except Exception as e:
            logging.error(f"Failed to update submission {record.submission_id}: {e}")
            raise PersistenceFailure(f"Failed to update submission: {e}") from e
        if response.data:
            return submission_from_row(response.data[0])
        if self.get_submission(record.submission_id) is None:
            raise UnknownSubmission(record.submission_id)
        raise SubmissionAlreadyProcessed(record.submission_id)


class SupabaseCreditLedger:
    """Credit ledger backed by the ``apply_green_credit`` database function.

    The function increments the balance and inserts the ledger row inside one
    transaction, so concurrent credits to the same user from different booths
    serialize in Postgres rather than in this process.
    """

    def __init__(self, client: Any = None) -> None:
        self.client = _require_client(client)

    def apply_credit(self, user_id: str, delta: int, metadata: CreditMetadata) -> CreditLedgerEntry:
        if delta < 0:
            raise ValueError("Credit delta cannot be negative.")
        params = {
            "p_user_id": user_id,
            "p_delta": delta,
            "p_booth_id": metadata.booth_id or None,
            "p_operator_id": metadata.operator_id,
            "p_waste_type": metadata.waste_type,
            "p_quantity_kg": metadata.quantity_kg,
            "p_notes": metadata.notes,
        }
        try:
            response = self.client.rpc("apply_green_credit", params).execute()
        except Exception as e:
            code = str(getattr(e, "code", "") or "")
            if code in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED):
                raise ConcurrentCreditConflict(f"Credit for user {user_id} conflicted with another update.") from e
            if code == NO_DATA_FOUND:
                raise UnknownUser(user_id) from e
            logging.error(f"Failed to apply credit for user {user_id}: {e}")
            raise PersistenceFailure(f"Failed to apply credit: {e}") from e

        data = response.data
        row = data[0] if isinstance(data, list) and data else data
        if not row:
            raise PersistenceFailure(f"apply_green_credit returned no ledger row for user {user_id}.")
        return ledger_entry_from_row(row)

    def list_entries(
        self,
        booth_id: Optional[str] = None,
        limit: Optional[int] = None,
        booth_ids: Optional[Sequence[str]] = None,
    ) -> list[CreditLedgerEntry]:
        if booth_ids is not None and not booth_ids:
            return []
        try:
            query = self.client.table("credit_ledger").select("*")
            if booth_id:
                query = query.eq("booth_id", booth_id)
            if booth_ids is not None:
                query = query.in_("booth_id", list(booth_ids))
            query = query.order("created_at", desc=True)
            if limit:
                query = query.limit(limit)
            response = query.execute()
        except Exception as e:
            logging.error(f"Failed to load ledger entries: {e}")
            raise PersistenceFailure(f"Failed to load ledger entries: {e}") from e
        return [ledger_entry_from_row(row) for row in (response.data or [])]

"""Operator review of pending self-service submissions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from ...errors import (
    BoothAccessDenied,
    ConcurrentCreditConflict,
    PersistenceFailure,
    SubmissionAlreadyProcessed,
    UnknownSubmission,
    UnknownUser,
)
from ...models.domain import CreditLedgerEntry, CreditMetadata, Operator, SubmissionRecord, SubmissionStatus
from ..ports import CreditLedgerStore, SubmissionStore
from ..rewards import RateTable, calculate_points, default_rate_table

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ApprovalResult:
    record: SubmissionRecord
    entry: CreditLedgerEntry


class SubmissionReviewer:
    """Approves or rejects pending submissions on behalf of one operator.

    Approval marks the record verified first, then credits the user through the
    ledger. If the credit fails the record goes back to pending so the review
    can be repeated. Submissions without a booth are reviewed by super admins only.
    """

    def __init__(
        self,
        operator: Operator,
        *,
        store: SubmissionStore,
        ledger: CreditLedgerStore,
        rates: RateTable | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.operator = operator
        self.store = store
        self.ledger = ledger
        self.rates = rates or default_rate_table()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def may_review(self, record: SubmissionRecord) -> bool:
        if record.booth_id is None:
            return self.operator.is_super_admin
        return self.operator.can_operate(record.booth_id)

    def pending(self) -> list[SubmissionRecord]:
        records = self.store.list_submissions(status=SubmissionStatus.PENDING)
        return [record for record in records if self.may_review(record)]

    def approve(self, submission_id: str, notes: str = "") -> ApprovalResult:
        record = self._pending_record(submission_id)
        points = calculate_points(record.waste_type, record.quantity_kg, self.rates)
        approved = self.store.update_submission(
            replace(
                record,
                status=SubmissionStatus.VERIFIED,
                points=points,
                notes=notes.strip() or record.notes,
                reviewed_by=self.operator.operator_id,
                reviewed_at=self.clock(),
            )
        )
        metadata = CreditMetadata(
            booth_id=record.booth_id or "",
            operator_id=self.operator.operator_id,
            waste_type=record.waste_type,
            quantity_kg=record.quantity_kg,
            notes=f"Approved submission {record.submission_id}",
        )
        try:
            entry = self.ledger.apply_credit(record.user_id, points, metadata)
        except (PersistenceFailure, ConcurrentCreditConflict, UnknownUser) as exc:
            logger.warning(f"Credit for submission {submission_id} not applied, reopening it: {exc}")
            self._reopen(record)
            raise
        logger.info(
            f"Operator {self.operator.operator_id} approved submission {submission_id}: "
            f"{points} pts to user {record.user_id}, balance {entry.resulting_balance}"
        )
        return ApprovalResult(record=approved, entry=entry)

    def reject(self, submission_id: str, reason: str) -> SubmissionRecord:
        reason = (reason or "").strip()
        if not reason:
            raise ValueError("Rejection reason is required")
        record = self._pending_record(submission_id)
        rejected = self.store.update_submission(
            replace(
                record,
                status=SubmissionStatus.REJECTED,
                points=0,
                notes=reason,
                reviewed_by=self.operator.operator_id,
                reviewed_at=self.clock(),
            )
        )
        logger.info(f"Operator {self.operator.operator_id} rejected submission {submission_id}: {reason}")
        return rejected

    def _pending_record(self, submission_id: str) -> SubmissionRecord:
        record: Optional[SubmissionRecord] = self.store.get_submission(submission_id)
        if record is None:
            raise UnknownSubmission(submission_id)
        if not self.may_review(record):
            raise BoothAccessDenied("Access denied. You are not assigned to this booth.")
        if record.status != SubmissionStatus.PENDING:
            raise SubmissionAlreadyProcessed(submission_id)
        return record

    def _reopen(self, record: SubmissionRecord) -> None:
        try:
            self.store.update_submission(record, expected_status=SubmissionStatus.VERIFIED)
        except PersistenceFailure as exc:
            logger.error(f"Submission {record.submission_id} is verified without a credit; reopen failed: {exc}")

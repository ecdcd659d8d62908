"""Collaborator contracts the reward engine calls through."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

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


class BoothDirectory(Protocol):
    def list_booths(self) -> Sequence[Booth]:
        ...

    def resolve_booth_by_token(self, token: str) -> Optional[Booth]:
        ...

    def get_booth(self, booth_id: str) -> Optional[Booth]:
        ...

    def record_load(self, booth_id: str, quantity_kg: float) -> None:
        """Add ``quantity_kg`` to the booth's load for today; counters restart each day."""
        ...


class IdentityResolver(Protocol):
    def resolve_user_by_token(self, token: str) -> Optional[User]:
        ...


class OperatorDirectory(Protocol):
    def get_operator(self, operator_id: str) -> Optional[Operator]:
        ...


class SubmissionStore(Protocol):
    def create_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        """Persist a record; raises ``PersistenceFailure`` when the store is unavailable."""
        ...

    def list_submissions(
        self,
        user_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> Sequence[SubmissionRecord]:
        ...

    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        ...

    def update_submission(
        self,
        record: SubmissionRecord,
        *,
        expected_status: SubmissionStatus = SubmissionStatus.PENDING,
    ) -> SubmissionRecord:
        """Replace the stored record only while it still has ``expected_status``.

        Raises ``UnknownSubmission`` or ``SubmissionAlreadyProcessed``.
        """
        ...


class CreditLedgerStore(Protocol):
    def apply_credit(self, user_id: str, delta: int, metadata: CreditMetadata) -> CreditLedgerEntry:
        """Atomically add ``delta`` to the user's balance and append a ledger entry.

        Raises ``PersistenceFailure`` or ``ConcurrentCreditConflict``; on either, nothing
        has been applied.
        """
        ...

    def list_entries(
        self,
        booth_id: Optional[str] = None,
        limit: Optional[int] = None,
        booth_ids: Optional[Sequence[str]] = None,
    ) -> Sequence[CreditLedgerEntry]:
        """Newest first. ``booth_ids`` restricts entries to any of those booths before ``limit`` applies."""
        ...


class LocationProvider(Protocol):
    def current_location(self) -> Optional[Coordinate]:
        ...

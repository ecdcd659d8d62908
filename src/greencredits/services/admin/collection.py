"""Booth-operator scan-and-credit workflow."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Optional

from ...errors import (
    BoothAccessDenied,
    BoothUnavailable,
    ConcurrentCreditConflict,
    PersistenceFailure,
    UnknownBooth,
    UnknownUser,
    WasteTypeNotAccepted,
)
from ...models.domain import Booth, BoothStatus, CreditLedgerEntry, CreditMetadata, Operator, User
from ..ports import BoothDirectory, CreditLedgerStore, IdentityResolver
from ..rewards import RateTable, calculate_points, default_rate_table, rank_for_credits

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WeighedCollection:
    """Values entered by the operator at the scale; kept until credit is applied."""

    booth_id: str
    waste_type: str
    quantity_kg: float
    notes: str = ""


@dataclass(frozen=True, slots=True)
class CreditConfirmation:
    user_id: str
    balance: int
    points: int
    rank: str
    entry: CreditLedgerEntry


class CreditInProgress(RuntimeError):
    """Raised when apply_credit is called while a previous call has not returned."""


class AdminCollectionWorkflow:
    """Operator session that identifies a user, weighs waste and credits points instantly.

    Each step can fail on its own; a failed step leaves earlier results in place
    so the operator can retry without re-entering the weighed values.
    """

    def __init__(
        self,
        operator: Operator,
        *,
        identity: IdentityResolver,
        booths: BoothDirectory,
        ledger: CreditLedgerStore,
        rates: RateTable | None = None,
    ) -> None:
        self.operator = operator
        self.identity = identity
        self.booths = booths
        self.ledger = ledger
        self.rates = rates or default_rate_table()
        self.user: Optional[User] = None
        self.booth: Optional[Booth] = None
        self.collection: Optional[WeighedCollection] = None
        self._apply_guard = threading.Lock()

    def identify_user(self, token: str) -> User:
        user = self.identity.resolve_user_by_token(token)
        if user is None:
            raise UnknownUser(token)
        self.user = user
        return user

    def authorize(self, waste_type: str, booth_id: Optional[str] = None) -> Booth:
        """Check the operator's booth is usable and accepts ``waste_type``."""

        booth_id = booth_id or (self.operator.booth_ids[0] if self.operator.booth_ids else None)
        if not booth_id:
            raise BoothAccessDenied("Operator has no assigned booths.")
        if not self.operator.can_operate(booth_id):
            raise BoothAccessDenied("Access denied. You are not assigned to this booth.")
        booth = self.booths.get_booth(booth_id)
        if booth is None:
            raise UnknownBooth(booth_id)
        if booth.status != BoothStatus.ACTIVE:
            raise BoothUnavailable(f"Booth is currently {booth.status.value}.")
        if booth.is_full:
            raise BoothUnavailable(booth.capacity_problem())
        self.rates.rate_for(waste_type)
        if not booth.accepts(waste_type):
            raise WasteTypeNotAccepted(waste_type, booth.accepted_waste_types)
        self.booth = booth
        return booth

    def record_quantity(self, waste_type: str, quantity_kg: float, notes: str = "") -> WeighedCollection:
        if self.booth is None or not self.booth.accepts(waste_type):
            self.authorize(waste_type, self.booth.booth_id if self.booth else None)
        if quantity_kg is None or not quantity_kg > 0:
            raise ValueError("Quantity must be greater than 0.")
        capacity_problem = self.booth.capacity_problem(quantity_kg)
        if capacity_problem:
            raise BoothUnavailable(capacity_problem)
        self.collection = WeighedCollection(
            booth_id=self.booth.booth_id,
            waste_type=waste_type,
            quantity_kg=float(quantity_kg),
            notes=notes or "",
        )
        return self.collection

    def compute_reward(self) -> int:
        if self.collection is None:
            raise ValueError("Record the weighed quantity before computing the reward.")
        return calculate_points(self.collection.waste_type, self.collection.quantity_kg, self.rates)

    def apply_credit(self) -> CreditConfirmation:
        """Credit the identified user in one atomic ledger call.

        On ``PersistenceFailure`` or ``ConcurrentCreditConflict`` the weighed values
        remain recorded and the call can simply be repeated.
        """

        if self.user is None:
            raise ValueError("Identify the user before applying credit.")
        if self.collection is None:
            raise ValueError("Record the weighed quantity before applying credit.")
        if not self._apply_guard.acquire(blocking=False):
            raise CreditInProgress("A credit for this collection is already being applied.")
        try:
            points = self.compute_reward()
            metadata = CreditMetadata(
                booth_id=self.collection.booth_id,
                operator_id=self.operator.operator_id,
                waste_type=self.collection.waste_type,
                quantity_kg=self.collection.quantity_kg,
                notes=self.collection.notes,
            )
            try:
                entry = self.ledger.apply_credit(self.user.user_id, points, metadata)
            except (PersistenceFailure, ConcurrentCreditConflict) as exc:
                logger.warning(f"Credit for user {self.user.user_id} not applied: {exc}")
                raise
            logger.info(
                f"Operator {self.operator.operator_id} credited {points} pts to user {self.user.user_id} "
                f"at booth {metadata.booth_id}; balance {entry.resulting_balance}"
            )
            self.user.green_credits = entry.resulting_balance
            self.user.total_waste_kg += metadata.quantity_kg
            self._record_load(metadata)
            confirmation = CreditConfirmation(
                user_id=self.user.user_id,
                balance=entry.resulting_balance,
                points=points,
                rank=rank_for_credits(entry.resulting_balance),
                entry=entry,
            )
            self.collection = None
            return confirmation
        finally:
            self._apply_guard.release()

    def _record_load(self, metadata: CreditMetadata) -> None:
        try:
            self.booths.record_load(metadata.booth_id, metadata.quantity_kg)
        except PersistenceFailure as exc:
            logger.warning(f"Credit applied but booth {metadata.booth_id} load not updated: {exc}")
            return
        if self.booth is not None and self.booth.booth_id == metadata.booth_id:
            self.booth = replace(self.booth, kg_today=self.booth.kg_today + metadata.quantity_kg)

    def collect(
        self,
        token: str,
        waste_type: str,
        quantity_kg: float,
        *,
        notes: str = "",
        booth_id: Optional[str] = None,
    ) -> CreditConfirmation:
        """Run every step for one scan-and-weigh event."""

        self.identify_user(token)
        self.authorize(waste_type, booth_id)
        self.record_quantity(waste_type, quantity_kg, notes)
        return self.apply_credit()

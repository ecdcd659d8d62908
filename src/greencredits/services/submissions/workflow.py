"""Self-service submission workflow: scan a booth, fill the form, submit.

The workflow is an explicit state machine. ``transition`` is a pure function of
``(state, draft, event)`` that returns the next state, the next draft and any
effects the caller has to perform (only persisting a record today).
``SubmissionWorkflow`` drives it for one user session: it resolves booth
tokens, performs effects against the submission store and guarantees that at
most one submit is in flight.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Union

from ...errors import PersistenceFailure, UnknownWasteType
from ...models.domain import (
    Booth,
    BoothStatus,
    Coordinate,
    PhotoAttachment,
    SubmissionDraft,
    SubmissionMethod,
    SubmissionRecord,
    SubmissionStatus,
)
from ..ports import BoothDirectory, LocationProvider, SubmissionStore
from ..rewards import RateTable, calculate_points, default_rate_table
from .validator import SubmissionLimits, validate_draft

logger = logging.getLogger(__name__)

UNKNOWN_BOOTH_MESSAGE = "Invalid QR code or booth not found"


class Step(str, Enum):
    SCAN = "scan"
    FORM = "form"
    SUCCESS = "success"


@dataclass(frozen=True, slots=True)
class SubmissionSummary:
    submission_id: str
    waste_type: str
    quantity_kg: float
    points: int
    status: SubmissionStatus


@dataclass(frozen=True, slots=True)
class WorkflowState:
    step: Step
    entry_step: Step
    method: SubmissionMethod = SubmissionMethod.QR_SCAN
    errors: dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None
    summary: Optional[SubmissionSummary] = None
    in_flight: bool = False


# events


@dataclass(frozen=True, slots=True)
class BoothResolved:
    booth: Booth
    at: datetime


@dataclass(frozen=True, slots=True)
class ScanFailed:
    message: str


@dataclass(frozen=True, slots=True)
class ManualEntry:
    pass


@dataclass(frozen=True, slots=True)
class BoothSelected:
    booth: Booth


@dataclass(frozen=True, slots=True)
class DetailsChanged:
    """Form edits; ``None`` leaves a field unchanged."""

    waste_type: Optional[str] = None
    quantity_kg: Optional[float] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PhotoAdded:
    photo: PhotoAttachment


@dataclass(frozen=True, slots=True)
class PhotoRemoved:
    index: int


@dataclass(frozen=True, slots=True)
class LocationCaptured:
    location: Optional[Coordinate]


@dataclass(frozen=True, slots=True)
class SubmitRequested:
    user_id: str
    submission_id: str
    submitted_at: datetime


@dataclass(frozen=True, slots=True)
class SubmitSucceeded:
    record: SubmissionRecord


@dataclass(frozen=True, slots=True)
class SubmitFailed:
    message: str


@dataclass(frozen=True, slots=True)
class Reset:
    pass


Event = Union[
    BoothResolved,
    ScanFailed,
    ManualEntry,
    BoothSelected,
    DetailsChanged,
    PhotoAdded,
    PhotoRemoved,
    LocationCaptured,
    SubmitRequested,
    SubmitSucceeded,
    SubmitFailed,
    Reset,
]


@dataclass(frozen=True, slots=True)
class PersistSubmission:
    record: SubmissionRecord


@dataclass(frozen=True, slots=True)
class Transition:
    state: WorkflowState
    draft: SubmissionDraft
    effects: tuple[PersistSubmission, ...] = ()


def initial_state(entry_step: Step) -> WorkflowState:
    if entry_step not in (Step.SCAN, Step.FORM):
        raise ValueError(f"Workflow cannot start at '{entry_step}'.")
    method = SubmissionMethod.QR_SCAN if entry_step is Step.SCAN else SubmissionMethod.MANUAL
    return WorkflowState(step=entry_step, entry_step=entry_step, method=method)


def entry_step_for(has_cached_identity: bool) -> Step:
    """Accounts without a cached QR identity start by scanning a booth code."""
    return Step.FORM if has_cached_identity else Step.SCAN


def preview_points(draft: SubmissionDraft, rates: RateTable) -> int:
    """Points the current draft would earn, or 0 while it is incomplete."""
    if not draft.waste_type or not draft.quantity_kg or draft.quantity_kg <= 0:
        return 0
    try:
        return calculate_points(draft.waste_type, draft.quantity_kg, rates)
    except UnknownWasteType:
        return 0


def _booth_rejection(booth: Booth, at: datetime) -> Optional[str]:
    if booth.status != BoothStatus.ACTIVE:
        return f"Booth is currently {booth.status.value}. Please try another booth."
    if not booth.is_open_at(at):
        return "Booth is currently closed"
    return booth.capacity_problem()


def _on_scan(state: WorkflowState, draft: SubmissionDraft, event: Event) -> Transition:
    if isinstance(event, BoothResolved):
        rejection = _booth_rejection(event.booth, event.at)
        if rejection:
            return Transition(replace(state, message=rejection), draft)
        next_state = replace(state, step=Step.FORM, method=SubmissionMethod.QR_SCAN, message=None, errors={})
        return Transition(next_state, replace(draft, booth=event.booth))
    if isinstance(event, ScanFailed):
        return Transition(replace(state, message=event.message), draft)
    if isinstance(event, ManualEntry):
        next_state = replace(state, step=Step.FORM, method=SubmissionMethod.MANUAL, message=None, errors={})
        return Transition(next_state, draft)
    return Transition(state, draft)


def _on_form(
    state: WorkflowState,
    draft: SubmissionDraft,
    event: Event,
    rates: RateTable,
    limits: SubmissionLimits,
) -> Transition:
    if isinstance(event, BoothSelected):
        return Transition(state, replace(draft, booth=event.booth))
    if isinstance(event, DetailsChanged):
        changes = {
            name: value
            for name, value in (
                ("waste_type", event.waste_type),
                ("quantity_kg", event.quantity_kg),
                ("notes", event.notes),
            )
            if value is not None
        }
        return Transition(state, replace(draft, **changes))
    if isinstance(event, PhotoAdded):
        return Transition(state, replace(draft, photos=draft.photos + (event.photo,)))
    if isinstance(event, PhotoRemoved):
        photos = tuple(photo for index, photo in enumerate(draft.photos) if index != event.index)
        return Transition(state, replace(draft, photos=photos))
    if isinstance(event, LocationCaptured):
        return Transition(state, replace(draft, location=event.location))

    if isinstance(event, SubmitRequested):
        if state.in_flight:
            return Transition(state, draft)
        errors = validate_draft(
            draft,
            require_booth=state.entry_step is Step.SCAN,
            rates=rates,
            limits=limits,
        )
        if errors:
            return Transition(replace(state, errors=errors, message="Please fix the form errors"), draft)
        record = SubmissionRecord(
            submission_id=event.submission_id,
            booth_id=draft.booth.booth_id if draft.booth else None,
            user_id=event.user_id,
            waste_type=draft.waste_type,
            quantity_kg=draft.quantity_kg,
            points=calculate_points(draft.waste_type, draft.quantity_kg, rates),
            submitted_at=event.submitted_at,
            status=SubmissionStatus.PENDING,
            method=state.method,
            notes=draft.notes,
            location=draft.location,
            photos=draft.photos,
        )
        next_state = replace(state, errors={}, message=None, in_flight=True)
        return Transition(next_state, draft, (PersistSubmission(record),))

    if isinstance(event, SubmitSucceeded):
        record = event.record
        summary = SubmissionSummary(
            submission_id=record.submission_id,
            waste_type=record.waste_type,
            quantity_kg=record.quantity_kg,
            points=record.points,
            status=record.status,
        )
        next_state = replace(state, step=Step.SUCCESS, summary=summary, in_flight=False, errors={}, message=None)
        return Transition(next_state, SubmissionDraft())
    if isinstance(event, SubmitFailed):
        return Transition(replace(state, in_flight=False, message=event.message), draft)
    return Transition(state, draft)


def transition(
    state: WorkflowState,
    draft: SubmissionDraft,
    event: Event,
    *,
    rates: RateTable,
    limits: SubmissionLimits | None = None,
) -> Transition:
    """Compute the next workflow state; never mutates its inputs or performs I/O."""

    if isinstance(event, Reset):
        return Transition(initial_state(state.entry_step), SubmissionDraft())
    if state.step is Step.SCAN:
        return _on_scan(state, draft, event)
    if state.step is Step.FORM:
        return _on_form(state, draft, event, rates, limits or SubmissionLimits())
    return Transition(state, draft)


class SubmissionWorkflow:
    """One user's self-service submission session."""

    def __init__(
        self,
        user_id: str,
        *,
        booths: BoothDirectory,
        store: SubmissionStore,
        location_provider: LocationProvider | None = None,
        rates: RateTable | None = None,
        limits: SubmissionLimits | None = None,
        entry_step: Step = Step.SCAN,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.user_id = user_id
        self.booths = booths
        self.store = store
        self.location_provider = location_provider
        self.rates = rates or default_rate_table()
        self.limits = limits or SubmissionLimits.from_settings()
        self.clock = clock or (lambda: datetime.now().astimezone())
        self.state = initial_state(entry_step)
        self.draft = SubmissionDraft()
        self._state_lock = threading.Lock()
        self._submit_guard = threading.Lock()

    def dispatch(self, event: Event) -> Transition:
        with self._state_lock:
            result = transition(self.state, self.draft, event, rates=self.rates, limits=self.limits)
            self.state = result.state
            self.draft = result.draft
        return result

    def scan(self, token: str) -> WorkflowState:
        booth = self.booths.resolve_booth_by_token(token)
        if booth is None:
            logger.info("Booth QR code did not resolve to a booth")
            self.dispatch(ScanFailed(UNKNOWN_BOOTH_MESSAGE))
        else:
            self.dispatch(BoothResolved(booth=booth, at=self.clock()))
        return self.state

    def skip_scan(self) -> WorkflowState:
        self.dispatch(ManualEntry())
        return self.state

    def select_booth(self, booth: Booth) -> WorkflowState:
        self.dispatch(BoothSelected(booth))
        return self.state

    def update_details(
        self,
        *,
        waste_type: Optional[str] = None,
        quantity_kg: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> SubmissionDraft:
        self.dispatch(DetailsChanged(waste_type=waste_type, quantity_kg=quantity_kg, notes=notes))
        return self.draft

    def add_photo(self, photo: PhotoAttachment) -> SubmissionDraft:
        self.dispatch(PhotoAdded(photo))
        return self.draft

    def remove_photo(self, index: int) -> SubmissionDraft:
        self.dispatch(PhotoRemoved(index))
        return self.draft

    def capture_location(self, location: Optional[Coordinate] = None) -> SubmissionDraft:
        """Record an explicit location or ask the location provider; absence stays absence."""
        if location is None and self.location_provider is not None:
            location = self.location_provider.current_location()
        self.dispatch(LocationCaptured(location))
        return self.draft

    def estimated_points(self) -> int:
        return preview_points(self.draft, self.rates)

    def submit(self) -> WorkflowState:
        """Validate and persist the draft.

        A submit issued while another is still in flight is ignored and the
        current state is returned unchanged.
        """
        if not self._submit_guard.acquire(blocking=False):
            logger.info(f"Ignoring duplicate submit for user {self.user_id} while one is in flight")
            return self.state
        try:
            self._refresh_booth()
            result = self.dispatch(
                SubmitRequested(
                    user_id=self.user_id,
                    submission_id=uuid.uuid4().hex,
                    submitted_at=self.clock(),
                )
            )
            for effect in result.effects:
                self._persist(effect)
            return self.state
        finally:
            self._submit_guard.release()

    def reset(self) -> WorkflowState:
        self.dispatch(Reset())
        return self.state

    def _refresh_booth(self) -> None:
        """Swap in the directory's current copy of the selected booth so today's load is up to date."""
        booth = self.draft.booth
        if booth is None or self.state.step is not Step.FORM:
            return
        current = self.booths.get_booth(booth.booth_id)
        if current is not None and current != booth:
            self.dispatch(BoothSelected(current))

    def _persist(self, effect: PersistSubmission) -> None:
        try:
            saved = self.store.create_submission(effect.record)
        except PersistenceFailure as exc:
            logger.warning(f"Failed to persist submission {effect.record.submission_id}: {exc}")
            self.dispatch(SubmitFailed(f"Failed to submit waste. Please try again. ({exc})"))
            return
        except Exception:
            logger.exception(f"Unexpected error while storing submission {effect.record.submission_id}")
            self.dispatch(SubmitFailed("Failed to submit waste. Please try again."))
            return
        self._record_load(effect.record)
        logger.info(
            f"Submission {effect.record.submission_id} stored as pending "
            f"({effect.record.quantity_kg}kg {effect.record.waste_type}, {effect.record.points} pts)"
        )
        self.dispatch(SubmitSucceeded(saved or effect.record))

    def _record_load(self, record: SubmissionRecord) -> None:
        if record.booth_id is None:
            return
        try:
            self.booths.record_load(record.booth_id, record.quantity_kg)
        except PersistenceFailure as exc:
            logger.warning(f"Submission {record.submission_id} stored but booth {record.booth_id} load not updated: {exc}")

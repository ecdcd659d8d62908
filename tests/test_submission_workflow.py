import threading
from dataclasses import replace
from datetime import datetime, time, timezone

import pytest

from greencredits.config import DEFAULT_RATE_TABLE
from greencredits.errors import PersistenceFailure
from greencredits.models.domain import (
    Booth,
    BoothStatus,
    Coordinate,
    OperatingHours,
    PhotoAttachment,
    SubmissionDraft,
    SubmissionMethod,
    SubmissionRecord,
    SubmissionStatus,
)
from greencredits.persistence.memory import InMemoryBoothDirectory, InMemorySubmissionStore, StaticLocationProvider
from greencredits.services.rewards import RateTable
from greencredits.services.submissions import (
    Step,
    SubmissionLimits,
    SubmissionWorkflow,
    entry_step_for,
    initial_state,
    preview_points,
    transition,
)
from greencredits.services.submissions.workflow import (
    BoothResolved,
    DetailsChanged,
    ManualEntry,
    PersistSubmission,
    PhotoAdded,
    PhotoRemoved,
    Reset,
    ScanFailed,
    SubmitFailed,
    SubmitRequested,
    SubmitSucceeded,
)

RATES = RateTable(DEFAULT_RATE_TABLE)
# a Monday
NOON = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
BOOTH = Booth(
    booth_id="B1",
    name="Corniche Booth",
    location=Coordinate(21.5, 39.2),
    accepted_waste_types=("plastic", "paper"),
    operating_hours=OperatingHours(open_time=time(8, 0), close_time=time(20, 0), closed_days=("friday",)),
    qr_code="BOOTH-B1",
)
HERE = Coordinate(21.5001, 39.2001)


def _step(state, draft, event):
    return transition(state, draft, event, rates=RATES, limits=SubmissionLimits())


def _valid_draft() -> SubmissionDraft:
    return SubmissionDraft(
        booth=BOOTH,
        waste_type="plastic",
        quantity_kg=2.5,
        photos=(PhotoAttachment("bag.jpg", 1024),),
        location=HERE,
    )


def _submit_event() -> SubmitRequested:
    return SubmitRequested(user_id="u1", submission_id="s1", submitted_at=NOON)


def _workflow(store=None, **kwargs) -> SubmissionWorkflow:
    return SubmissionWorkflow(
        "u1",
        booths=InMemoryBoothDirectory([BOOTH, replace(BOOTH, booth_id="B2", status=BoothStatus.BUSY, qr_code="BOOTH-B2")]),
        store=store or InMemorySubmissionStore(),
        location_provider=StaticLocationProvider(HERE),
        rates=RATES,
        limits=SubmissionLimits(),
        clock=lambda: NOON,
        **kwargs,
    )


def _fill(workflow: SubmissionWorkflow) -> None:
    workflow.update_details(waste_type="plastic", quantity_kg=2.5)
    workflow.add_photo(PhotoAttachment("bag.jpg", 1024))
    workflow.capture_location()


def test_entry_step_depends_on_cached_identity() -> None:
    assert entry_step_for(has_cached_identity=False) is Step.SCAN
    assert entry_step_for(has_cached_identity=True) is Step.FORM


def test_initial_state_rejects_success_step() -> None:
    with pytest.raises(ValueError):
        initial_state(Step.SUCCESS)


def test_scan_resolves_active_open_booth() -> None:
    result = _step(initial_state(Step.SCAN), SubmissionDraft(), BoothResolved(BOOTH, NOON))

    assert result.state.step is Step.FORM
    assert result.state.method is SubmissionMethod.QR_SCAN
    assert result.draft.booth == BOOTH
    assert result.effects == ()


@pytest.mark.parametrize("status", [BoothStatus.BUSY, BoothStatus.INACTIVE, BoothStatus.MAINTENANCE])
def test_scan_rejects_unavailable_booth(status: BoothStatus) -> None:
    result = _step(initial_state(Step.SCAN), SubmissionDraft(), BoothResolved(replace(BOOTH, status=status), NOON))

    assert result.state.step is Step.SCAN
    assert status.value in result.state.message
    assert result.draft.booth is None


def test_scan_rejects_closed_booth() -> None:
    early = datetime(2026, 10, 19, 7, 30)
    friday = datetime(2026, 10, 23, 12, 0)
    for moment in (early, friday):
        result = _step(initial_state(Step.SCAN), SubmissionDraft(), BoothResolved(BOOTH, moment))
        assert result.state.step is Step.SCAN
        assert result.state.message == "Booth is currently closed"


def test_closing_minute_is_still_open() -> None:
    closing = datetime(2026, 10, 19, 20, 0, 45)
    assert BOOTH.is_open_at(closing)
    assert not BOOTH.is_open_at(datetime(2026, 10, 19, 20, 1))
    assert BOOTH.is_open_at(datetime(2026, 10, 19, 8, 0))

    result = _step(initial_state(Step.SCAN), SubmissionDraft(), BoothResolved(BOOTH, closing))
    assert result.state.step is Step.FORM


def test_scan_failure_keeps_scan_step() -> None:
    result = _step(initial_state(Step.SCAN), SubmissionDraft(), ScanFailed("Invalid QR code or booth not found"))
    assert result.state.step is Step.SCAN
    assert result.state.message == "Invalid QR code or booth not found"


def test_manual_entry_moves_to_form() -> None:
    result = _step(initial_state(Step.SCAN), SubmissionDraft(), ManualEntry())
    assert result.state.step is Step.FORM
    assert result.state.method is SubmissionMethod.MANUAL


def test_form_edits_replace_the_draft() -> None:
    state = initial_state(Step.FORM)
    draft = SubmissionDraft()

    draft = _step(state, draft, DetailsChanged(waste_type="paper", quantity_kg=3.0)).draft
    draft = _step(state, draft, DetailsChanged(notes="two bags")).draft
    draft = _step(state, draft, PhotoAdded(PhotoAttachment("a.jpg", 10))).draft
    draft = _step(state, draft, PhotoAdded(PhotoAttachment("b.jpg", 10))).draft
    draft = _step(state, draft, PhotoRemoved(0)).draft

    assert draft.waste_type == "paper"
    assert draft.quantity_kg == 3.0
    assert draft.notes == "two bags"
    assert [photo.filename for photo in draft.photos] == ["b.jpg"]


def test_invalid_submit_stays_on_form() -> None:
    state = initial_state(Step.SCAN)
    state = replace(state, step=Step.FORM)
    draft = replace(_valid_draft(), quantity_kg=150)

    result = _step(state, draft, _submit_event())

    assert result.state.step is Step.FORM
    assert result.state.errors
    assert "quantity" in result.state.errors
    assert result.state.message == "Please fix the form errors"
    assert result.effects == ()
    assert result.draft == draft


def test_valid_submit_emits_one_persist_effect() -> None:
    state = replace(initial_state(Step.SCAN), step=Step.FORM)
    result = _step(state, _valid_draft(), _submit_event())

    assert result.state.in_flight is True
    assert result.state.step is Step.FORM
    assert len(result.effects) == 1
    effect = result.effects[0]
    assert isinstance(effect, PersistSubmission)
    assert effect.record.points == 25
    assert effect.record.status is SubmissionStatus.PENDING
    assert effect.record.booth_id == "B1"


def test_submit_while_in_flight_is_ignored() -> None:
    state = replace(initial_state(Step.SCAN), step=Step.FORM)
    first = _step(state, _valid_draft(), _submit_event())
    second = _step(first.state, first.draft, _submit_event())

    assert second.effects == ()
    assert second.state == first.state


def test_success_clears_draft_and_keeps_summary() -> None:
    state = replace(initial_state(Step.SCAN), step=Step.FORM)
    pending = _step(state, _valid_draft(), _submit_event())
    record = pending.effects[0].record

    done = _step(pending.state, pending.draft, SubmitSucceeded(record))

    assert done.state.step is Step.SUCCESS
    assert done.state.in_flight is False
    assert done.draft == SubmissionDraft()
    assert done.state.summary.points == 25
    assert done.state.summary.waste_type == "plastic"
    assert done.state.summary.status is SubmissionStatus.PENDING


def test_failure_keeps_draft_and_message() -> None:
    state = replace(initial_state(Step.SCAN), step=Step.FORM)
    pending = _step(state, _valid_draft(), _submit_event())

    failed = _step(pending.state, pending.draft, SubmitFailed("Failed to submit waste. Please try again."))

    assert failed.state.step is Step.FORM
    assert failed.state.in_flight is False
    assert failed.state.message.startswith("Failed to submit waste")
    assert failed.draft == _valid_draft()


def test_reset_returns_to_entry_step() -> None:
    for entry in (Step.SCAN, Step.FORM):
        success = replace(initial_state(entry), step=Step.SUCCESS)
        result = _step(success, SubmissionDraft(), Reset())
        assert result.state == initial_state(entry)


def test_preview_points() -> None:
    assert preview_points(_valid_draft(), RATES) == 25
    assert preview_points(SubmissionDraft(), RATES) == 0
    assert preview_points(replace(_valid_draft(), waste_type="styrofoam"), RATES) == 0


def test_workflow_happy_path_creates_pending_record() -> None:
    store = InMemorySubmissionStore()
    workflow = _workflow(store)

    assert workflow.scan("BOOTH-B1").step is Step.FORM
    _fill(workflow)
    assert workflow.estimated_points() == 25

    state = workflow.submit()

    assert state.step is Step.SUCCESS
    records = store.list_submissions(user_id="u1")
    assert len(records) == 1
    assert records[0].points == 25
    assert records[0].status is SubmissionStatus.PENDING
    assert records[0].location == HERE
    assert records[0].submitted_at == NOON
    assert workflow.draft == SubmissionDraft()

    assert workflow.reset().step is Step.SCAN


def test_workflow_unknown_and_busy_booth_tokens() -> None:
    workflow = _workflow()
    assert workflow.scan("nope").message == "Invalid QR code or booth not found"
    state = workflow.scan("BOOTH-B2")
    assert state.step is Step.SCAN
    assert "busy" in state.message


def test_workflow_manual_entry_without_booth() -> None:
    store = InMemorySubmissionStore()
    workflow = _workflow(store, entry_step=Step.FORM)
    _fill(workflow)

    assert workflow.submit().step is Step.SUCCESS
    record = store.list_submissions()[0]
    assert record.booth_id is None
    assert record.method is SubmissionMethod.MANUAL


def test_workflow_missing_location_is_a_validation_error() -> None:
    workflow = _workflow(entry_step=Step.FORM)
    workflow.location_provider = StaticLocationProvider(None)
    _fill(workflow)

    state = workflow.submit()
    assert state.step is Step.FORM
    assert "location" in state.errors


class FailingStore(InMemorySubmissionStore):
    def __init__(self, failures: int, error: Exception | None = None) -> None:
        super().__init__()
        self.failures = failures
        self.error = error or PersistenceFailure("database unavailable")

    def create_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        if self.failures:
            self.failures -= 1
            raise self.error
        return super().create_submission(record)


def test_persistence_failure_keeps_form_then_retry_succeeds() -> None:
    store = FailingStore(failures=1)
    workflow = _workflow(store)
    workflow.scan("BOOTH-B1")
    _fill(workflow)
    draft_before = workflow.draft

    failed = workflow.submit()
    assert failed.step is Step.FORM
    assert failed.in_flight is False
    assert "Failed to submit waste" in failed.message
    assert workflow.draft == draft_before
    assert store.list_submissions() == []

    assert workflow.submit().step is Step.SUCCESS
    assert len(store.list_submissions()) == 1


def test_unexpected_store_error_releases_the_form() -> None:
    store = FailingStore(failures=1, error=ConnectionError("connection reset by peer"))
    workflow = _workflow(store)
    workflow.scan("BOOTH-B1")
    _fill(workflow)

    failed = workflow.submit()
    assert failed.step is Step.FORM
    assert failed.in_flight is False
    assert failed.message == "Failed to submit waste. Please try again."
    assert store.list_submissions() == []

    assert workflow.submit().step is Step.SUCCESS
    assert len(store.list_submissions()) == 1


class BlockingStore(InMemorySubmissionStore):
    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def create_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        self.calls += 1
        self.entered.set()
        assert self.release.wait(timeout=5)
        return super().create_submission(record)


def test_duplicate_submit_while_in_flight_is_ignored() -> None:
    store = BlockingStore()
    workflow = _workflow(store)
    workflow.scan("BOOTH-B1")
    _fill(workflow)

    results = []
    worker = threading.Thread(target=lambda: results.append(workflow.submit()))
    worker.start()
    assert store.entered.wait(timeout=5)

    duplicate = workflow.submit()
    assert duplicate.in_flight is True
    assert duplicate.step is Step.FORM

    store.release.set()
    worker.join(timeout=5)

    assert results[0].step is Step.SUCCESS
    assert store.calls == 1
    assert len(store.list_submissions()) == 1


def test_scan_rejects_booth_at_daily_capacity() -> None:
    full = replace(BOOTH, max_kg_per_day=50.0, kg_today=50.0)
    result = _step(initial_state(Step.SCAN), SubmissionDraft(), BoothResolved(full, NOON))
    assert result.state.step is Step.SCAN
    assert result.state.message == "Booth has reached daily capacity"


def test_submit_counts_against_booth_capacity() -> None:
    store = InMemorySubmissionStore()
    booths = InMemoryBoothDirectory([replace(BOOTH, max_kg_per_day=50.0, kg_today=46.0)])
    first = SubmissionWorkflow(
        "u1",
        booths=booths,
        store=store,
        location_provider=StaticLocationProvider(HERE),
        rates=RATES,
        limits=SubmissionLimits(),
        clock=lambda: NOON,
    )
    second = SubmissionWorkflow(
        "u2",
        booths=booths,
        store=store,
        location_provider=StaticLocationProvider(HERE),
        rates=RATES,
        limits=SubmissionLimits(),
        clock=lambda: NOON,
    )
    first.scan("BOOTH-B1")
    second.scan("BOOTH-B1")
    _fill(first)
    _fill(second)

    assert first.submit().step is Step.SUCCESS
    assert booths.get_booth("B1").kg_today == 48.5

    state = second.submit()
    assert state.step is Step.FORM
    assert state.errors["quantity"] == "Adding this quantity would exceed daily capacity"
    assert len(store.list_submissions()) == 1

from datetime import date, datetime, timedelta, timezone

import pytest

from greencredits.config import DEFAULT_RATE_TABLE
from greencredits.errors import (
    BoothAccessDenied,
    PersistenceFailure,
    SubmissionAlreadyProcessed,
    UnknownSubmission,
)
from greencredits.models.domain import (
    Booth,
    CreditLedgerEntry,
    CreditMetadata,
    Operator,
    SubmissionRecord,
    SubmissionStatus,
    User,
)
from greencredits.persistence.memory import DailyLoadCounter, InMemoryAccountStore, InMemorySubmissionStore
from greencredits.services.admin import SubmissionReviewer
from greencredits.services.rewards import RateTable

RATES = RateTable(DEFAULT_RATE_TABLE)
REVIEWED_AT = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)
NORTH_OPERATOR = Operator(operator_id="op-north", name="Nora", booth_ids=("north",))
SUPER_ADMIN = Operator(operator_id="root", name="Admin", is_super_admin=True)


def _record(submission_id: str = "s1", booth_id: str | None = "north", **overrides) -> SubmissionRecord:
    values = dict(
        submission_id=submission_id,
        booth_id=booth_id,
        user_id="u1",
        waste_type="metal",
        quantity_kg=8.2,
        points=122,
        submitted_at=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
        notes="cans",
    )
    values.update(overrides)
    return SubmissionRecord(**values)


@pytest.fixture
def accounts() -> InMemoryAccountStore:
    user = User(user_id="u1", name="Layla", username="layla", green_credits=100, qr_code="USER-u1")
    return InMemoryAccountStore(users=[user], operators=[NORTH_OPERATOR, SUPER_ADMIN])


@pytest.fixture
def store() -> InMemorySubmissionStore:
    store = InMemorySubmissionStore()
    store.create_submission(_record("s1"))
    store.create_submission(_record("s2", booth_id="south", waste_type="plastic", quantity_kg=2.0, points=20))
    store.create_submission(_record("s3", booth_id=None, waste_type="paper", quantity_kg=3.0, points=15))
    return store


def _reviewer(store, ledger, operator: Operator = NORTH_OPERATOR) -> SubmissionReviewer:
    return SubmissionReviewer(operator, store=store, ledger=ledger, rates=RATES, clock=lambda: REVIEWED_AT)


def test_approve_credits_recomputed_points(store, accounts) -> None:
    result = _reviewer(store, accounts).approve("s1", notes="weighed again")

    assert result.record.status is SubmissionStatus.VERIFIED
    assert result.record.points == 123
    assert result.record.reviewed_by == "op-north"
    assert result.record.reviewed_at == REVIEWED_AT
    assert result.record.notes == "weighed again"
    assert result.entry.points_delta == 123
    assert result.entry.booth_id == "north"
    assert accounts.get_user("u1").green_credits == 223
    assert accounts.get_user("u1").total_waste_kg == 8.2
    assert store.get_submission("s1").status is SubmissionStatus.VERIFIED


def test_reject_requires_reason_and_zeroes_points(store, accounts) -> None:
    reviewer = _reviewer(store, accounts)
    with pytest.raises(ValueError):
        reviewer.reject("s1", "   ")

    rejected = reviewer.reject("s1", "Photo does not show the waste")

    assert rejected.status is SubmissionStatus.REJECTED
    assert rejected.points == 0
    assert rejected.notes == "Photo does not show the waste"
    assert accounts.get_user("u1").green_credits == 100
    assert accounts.list_entries() == []


def test_processed_submission_cannot_be_reviewed_again(store, accounts) -> None:
    reviewer = _reviewer(store, accounts)
    reviewer.approve("s1")

    with pytest.raises(SubmissionAlreadyProcessed):
        reviewer.approve("s1")
    with pytest.raises(SubmissionAlreadyProcessed):
        reviewer.reject("s1", "late")
    assert len(accounts.list_entries()) == 1


def test_unknown_submission(store, accounts) -> None:
    with pytest.raises(UnknownSubmission):
        _reviewer(store, accounts).approve("missing")


def test_operator_reviews_only_own_booths(store, accounts) -> None:
    reviewer = _reviewer(store, accounts)
    assert [record.submission_id for record in reviewer.pending()] == ["s1"]
    with pytest.raises(BoothAccessDenied):
        reviewer.approve("s2")
    with pytest.raises(BoothAccessDenied):
        reviewer.reject("s3", "no booth")

    admin = _reviewer(store, accounts, operator=SUPER_ADMIN)
    assert {record.submission_id for record in admin.pending()} == {"s1", "s2", "s3"}
    result = admin.approve("s3")
    assert result.entry.booth_id == ""
    assert result.record.points == 15


class FailingLedger:
    def __init__(self, accounts: InMemoryAccountStore) -> None:
        self.accounts = accounts
        self.failures = 1

    def apply_credit(self, user_id: str, delta: int, metadata: CreditMetadata) -> CreditLedgerEntry:
        if self.failures:
            self.failures -= 1
            raise PersistenceFailure("timeout")
        return self.accounts.apply_credit(user_id, delta, metadata)

    def list_entries(self, booth_id=None, limit=None, booth_ids=None):
        return self.accounts.list_entries(booth_id=booth_id, limit=limit, booth_ids=booth_ids)


def test_failed_credit_reopens_submission(store, accounts) -> None:
    reviewer = _reviewer(store, FailingLedger(accounts))

    with pytest.raises(PersistenceFailure):
        reviewer.approve("s1")
    assert store.get_submission("s1").status is SubmissionStatus.PENDING
    assert accounts.get_user("u1").green_credits == 100

    assert reviewer.approve("s1").entry.resulting_balance == 223


def test_daily_load_counter_restarts_each_day() -> None:
    today = [date(2026, 10, 19)]
    counter = DailyLoadCounter(today=lambda: today[0])
    booth = Booth(booth_id="north", name="North Booth", max_kg_per_day=50.0, kg_today=10.0)

    counter.add("north", 40.0)
    assert counter.apply(booth).is_full

    today[0] += timedelta(days=1)
    assert counter.apply(booth).kg_today == 0.0
    counter.add("north", 5.0)
    assert counter.apply(booth).kg_today == 5.0

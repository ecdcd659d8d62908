from dataclasses import replace

import pytest

from greencredits.config import DEFAULT_RATE_TABLE
from greencredits.models.domain import Booth, BoothStatus, Coordinate, PhotoAttachment, SubmissionDraft
from greencredits.services.rewards import RateTable
from greencredits.services.submissions import SubmissionLimits, validate_draft

RATES = RateTable(DEFAULT_RATE_TABLE)
FIVE_MB = 5 * 1024 * 1024
BOOTH = Booth(booth_id="B1", name="Corniche Booth", accepted_waste_types=("plastic", "paper", "metal"))


def _draft(**overrides) -> SubmissionDraft:
    draft = SubmissionDraft(
        booth=BOOTH,
        waste_type="plastic",
        quantity_kg=2.5,
        photos=(PhotoAttachment("bag.jpg", 200_000),),
        notes="",
        location=Coordinate(21.5, 39.2),
    )
    return replace(draft, **overrides)


def _validate(draft: SubmissionDraft, require_booth: bool = True) -> dict[str, str]:
    return validate_draft(draft, require_booth=require_booth, rates=RATES, limits=SubmissionLimits())


def test_valid_draft_has_no_errors() -> None:
    assert _validate(_draft()) == {}


@pytest.mark.parametrize("quantity", [0, -1, 150])
def test_quantity_out_of_range(quantity: float) -> None:
    assert "quantity" in _validate(_draft(quantity_kg=quantity))


def test_quantity_at_cap_is_valid() -> None:
    assert "quantity" not in _validate(_draft(quantity_kg=100))


def test_quantity_cap_message() -> None:
    assert _validate(_draft(quantity_kg=100.5))["quantity"] == "Maximum 100kg per submission"


def test_six_photos_rejected() -> None:
    photos = tuple(PhotoAttachment(f"p{i}.jpg", 1000) for i in range(6))
    assert "photos" in _validate(_draft(photos=photos))


def test_five_photos_of_five_megabytes_accepted() -> None:
    photos = tuple(PhotoAttachment(f"p{i}.jpg", FIVE_MB) for i in range(5))
    assert "photos" not in _validate(_draft(photos=photos))


def test_oversized_photo_rejected() -> None:
    errors = _validate(_draft(photos=(PhotoAttachment("big.jpg", FIVE_MB + 1),)))
    assert errors["photos"] == "Each photo must be 5MB or smaller"


def test_missing_photo_rejected() -> None:
    assert _validate(_draft(photos=()))["photos"] == "Please add at least one photo"


def test_booth_required_only_for_scan_entry() -> None:
    assert "booth" in _validate(_draft(booth=None), require_booth=True)
    assert "booth" not in _validate(_draft(booth=None), require_booth=False)


def test_inactive_booth_rejected() -> None:
    inactive = replace(BOOTH, status=BoothStatus.INACTIVE)
    assert "booth" in _validate(_draft(booth=inactive))


def test_waste_type_rules() -> None:
    assert "wasteType" in _validate(_draft(waste_type=None))
    assert "wasteType" in _validate(_draft(waste_type="styrofoam"))
    assert "wasteType" in _validate(_draft(waste_type="glass"))
    assert "wasteType" not in _validate(_draft(booth=None, waste_type="glass"), require_booth=False)


def test_booth_without_accepted_list_takes_any_type() -> None:
    open_booth = replace(BOOTH, accepted_waste_types=())
    assert _validate(_draft(booth=open_booth, waste_type="glass")) == {}


def test_location_required_and_in_range() -> None:
    assert "location" in _validate(_draft(location=None))
    assert "location" in _validate(_draft(location=Coordinate(95.0, 39.2)))


def test_notes_length() -> None:
    assert "notes" not in _validate(_draft(notes="x" * 500))
    assert "notes" in _validate(_draft(notes="x" * 501))


def test_all_rules_reported_together() -> None:
    empty = SubmissionDraft()
    errors = _validate(empty)
    assert set(errors) == {"booth", "wasteType", "quantity", "photos", "location"}


def test_custom_limits() -> None:
    limits = SubmissionLimits(max_quantity_kg=10, min_photos=0, max_photos=1)
    errors = validate_draft(_draft(quantity_kg=20, photos=()), require_booth=True, rates=RATES, limits=limits)
    assert errors == {"quantity": "Maximum 10kg per submission"}


@pytest.mark.parametrize(
    "kg_today, quantity, message",
    [
        (50.0, 1.0, "Booth has reached daily capacity"),
        (49.0, 2.5, "Adding this quantity would exceed daily capacity"),
    ],
)
def test_booth_daily_capacity(kg_today: float, quantity: float, message: str) -> None:
    booth = replace(BOOTH, max_kg_per_day=50.0, kg_today=kg_today)
    assert _validate(_draft(booth=booth, quantity_kg=quantity))["quantity"] == message


def test_quantity_filling_the_booth_exactly_is_valid() -> None:
    booth = replace(BOOTH, max_kg_per_day=50.0, kg_today=47.5)
    assert _validate(_draft(booth=booth)) == {}

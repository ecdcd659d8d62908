"""Field-level validation of self-service submission drafts."""

from __future__ import annotations

from dataclasses import dataclass

from ...config import settings
from ...errors import InvalidCoordinate
from ...models.domain import BoothStatus, SubmissionDraft
from ..geospatial import ensure_coordinate
from ..rewards import RateTable


@dataclass(frozen=True, slots=True)
class SubmissionLimits:
    max_quantity_kg: float = 100.0
    min_photos: int = 1
    max_photos: int = 5
    max_photo_bytes: int = 5 * 1024 * 1024
    max_notes_length: int = 500

    @classmethod
    def from_settings(cls) -> "SubmissionLimits":
        return cls(
            max_quantity_kg=settings.max_quantity_kg,
            min_photos=settings.min_photos,
            max_photos=settings.max_photos,
            max_photo_bytes=settings.max_photo_bytes,
            max_notes_length=settings.max_notes_length,
        )


def _megabytes(size_bytes: int) -> str:
    return f"{size_bytes / (1024 * 1024):g}MB"


def validate_draft(
    draft: SubmissionDraft,
    *,
    require_booth: bool,
    rates: RateTable,
    limits: SubmissionLimits | None = None,
) -> dict[str, str]:
    """Return a mapping of field name to message; empty means the draft is valid.

    Every rule is evaluated so callers can display all problems at once.
    """

    limits = limits or SubmissionLimits()
    errors: dict[str, str] = {}

    booth = draft.booth
    if booth is None:
        if require_booth:
            errors["booth"] = "Please scan a valid booth QR code first"
    elif booth.status != BoothStatus.ACTIVE:
        errors["booth"] = f"Booth is currently {booth.status.value}. Please try another booth."

    if not draft.waste_type:
        errors["wasteType"] = "Please select a waste type"
    elif draft.waste_type not in rates:
        errors["wasteType"] = f"Unknown waste type '{draft.waste_type}'"
    elif booth is not None and not booth.accepts(draft.waste_type):
        errors["wasteType"] = f"This booth does not accept {draft.waste_type}"

    quantity = draft.quantity_kg
    if quantity is None or not quantity > 0:
        errors["quantity"] = "Please enter a valid quantity"
    elif quantity > limits.max_quantity_kg:
        errors["quantity"] = f"Maximum {limits.max_quantity_kg:g}kg per submission"
    elif booth is not None and booth.capacity_problem(quantity):
        errors["quantity"] = booth.capacity_problem(quantity)

    photo_count = len(draft.photos)
    if photo_count < limits.min_photos:
        errors["photos"] = "Please add at least one photo" if limits.min_photos == 1 else (
            f"Please add at least {limits.min_photos} photos"
        )
    elif photo_count > limits.max_photos:
        errors["photos"] = f"Maximum {limits.max_photos} photos allowed"
    elif any(photo.size_bytes > limits.max_photo_bytes for photo in draft.photos):
        errors["photos"] = f"Each photo must be {_megabytes(limits.max_photo_bytes)} or smaller"

    if draft.location is None:
        errors["location"] = "Location is required for verification"
    else:
        try:
            ensure_coordinate(draft.location)
        except InvalidCoordinate as exc:
            errors["location"] = str(exc)

    if len(draft.notes or "") > limits.max_notes_length:
        errors["notes"] = f"Notes cannot exceed {limits.max_notes_length} characters"

    return errors

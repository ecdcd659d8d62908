"""Self-service waste submission endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import PersistenceFailure
from ...models.domain import PhotoAttachment
from ...schemas.submissions import SubmissionRecordModel, SubmissionRequest, SubmissionResponse
from ...services.ports import BoothDirectory, SubmissionStore
from ...services.rewards import CO2_FACTORS, RateTable, environmental_impact
from ...services.submissions import UNKNOWN_BOOTH_MESSAGE, Step, SubmissionWorkflow
from ..dependencies import get_booth_directory, get_current_user_id, get_rate_table, get_submission_store

router = APIRouter(prefix="/submissions", tags=["submissions"])


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
def create_submission(
    payload: SubmissionRequest,
    user_id: str = Depends(get_current_user_id),
    booths: BoothDirectory = Depends(get_booth_directory),
    store: SubmissionStore = Depends(get_submission_store),
    rates: RateTable = Depends(get_rate_table),
) -> SubmissionResponse:
    """Submit waste for later verification.

    A ``booth_token`` runs the scan step first; otherwise the form is filled
    directly and ``booth_id`` (if any) selects the booth.
    """
    entry_step = Step.SCAN if payload.booth_token else Step.FORM
    workflow = SubmissionWorkflow(user_id, booths=booths, store=store, rates=rates, entry_step=entry_step)

    if payload.booth_token:
        state = workflow.scan(payload.booth_token)
        if state.step is Step.SCAN:
            code = status.HTTP_404_NOT_FOUND if state.message == UNKNOWN_BOOTH_MESSAGE else status.HTTP_400_BAD_REQUEST
            raise HTTPException(status_code=code, detail=state.message)
    elif payload.booth_id:
        booth = booths.get_booth(payload.booth_id)
        if booth is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Booth '{payload.booth_id}' not found.")
        workflow.select_booth(booth)

    workflow.update_details(waste_type=payload.waste_type, quantity_kg=payload.quantity_kg, notes=payload.notes)
    for photo in payload.photos:
        workflow.add_photo(PhotoAttachment(filename=photo.filename, size_bytes=photo.size_bytes))
    workflow.capture_location(payload.location.to_domain() if payload.location else None)

    state = workflow.submit()
    if state.step is Step.SUCCESS:
        summary = state.summary
        co2_saved = (
            environmental_impact(summary.waste_type, summary.quantity_kg).co2_saved_kg
            if summary.waste_type in CO2_FACTORS
            else 0.0
        )
        return SubmissionResponse(
            submission_id=summary.submission_id,
            waste_type=summary.waste_type,
            quantity_kg=summary.quantity_kg,
            points=summary.points,
            status=summary.status.value,
            co2_saved_kg=co2_saved,
        )
    if state.errors:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": state.message, "errors": state.errors},
        )
    logging.warning(f"Submission for user {user_id} was not stored: {state.message}")
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=state.message)


@router.get("", response_model=List[SubmissionRecordModel], status_code=status.HTTP_200_OK)
def list_my_submissions(
    user_id: str = Depends(get_current_user_id),
    store: SubmissionStore = Depends(get_submission_store),
) -> List[SubmissionRecordModel]:
    try:
        records = store.list_submissions(user_id=user_id)
    except PersistenceFailure as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    records = sorted(records, key=lambda record: record.submitted_at, reverse=True)
    return [SubmissionRecordModel.from_domain(record) for record in records]

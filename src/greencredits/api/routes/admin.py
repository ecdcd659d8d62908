"""Booth-operator endpoints: scan-and-credit and review of self-service submissions."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...config import settings
from ...errors import (
    BoothAccessDenied,
    BoothUnavailable,
    ConcurrentCreditConflict,
    PersistenceFailure,
    UnknownBooth,
    UnknownSubmission,
    UnknownUser,
    UnknownWasteType,
    WasteTypeNotAccepted,
)
from ...models.domain import Operator
from ...schemas.admin import (
    ApprovalResponse,
    ApproveRequest,
    CollectionRequest,
    CollectionResponse,
    LedgerEntryModel,
    RejectRequest,
    ReviewSubmissionModel,
    ScanRequest,
    ScanResponse,
    UserSummaryModel,
)
from ...services.admin import AdminCollectionWorkflow, CreditInProgress, SubmissionReviewer
from ...services.ports import BoothDirectory, CreditLedgerStore, IdentityResolver, SubmissionStore
from ...services.rewards import RateTable
from ..dependencies import (
    get_booth_directory,
    get_credit_ledger,
    get_current_operator,
    get_identity_resolver,
    get_rate_table,
    get_submission_store,
)

router = APIRouter(prefix="/admin", tags=["admin"])


def _workflow(
    operator: Operator = Depends(get_current_operator),
    identity: IdentityResolver = Depends(get_identity_resolver),
    booths: BoothDirectory = Depends(get_booth_directory),
    ledger: CreditLedgerStore = Depends(get_credit_ledger),
    rates: RateTable = Depends(get_rate_table),
) -> AdminCollectionWorkflow:
    return AdminCollectionWorkflow(operator, identity=identity, booths=booths, ledger=ledger, rates=rates)


@router.post("/scan", response_model=ScanResponse, status_code=status.HTTP_200_OK)
def scan_user(payload: ScanRequest, workflow: AdminCollectionWorkflow = Depends(_workflow)) -> ScanResponse:
    """Identify the user behind a scanned QR code."""
    try:
        user = workflow.identify_user(payload.user_token)
    except UnknownUser as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PersistenceFailure as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return ScanResponse(user=UserSummaryModel.from_domain(user), booth_ids=list(workflow.operator.booth_ids))


@router.post("/collections", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED)
def create_collection(
    payload: CollectionRequest,
    workflow: AdminCollectionWorkflow = Depends(_workflow),
) -> CollectionResponse:
    """Weigh a drop-off and credit the user's green credits immediately."""
    try:
        confirmation = workflow.collect(
            payload.user_token,
            payload.waste_type,
            payload.quantity_kg,
            notes=payload.notes,
            booth_id=payload.booth_id,
        )
    except (UnknownUser, UnknownBooth) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except BoothAccessDenied as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except (BoothUnavailable, UnknownWasteType, WasteTypeNotAccepted) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (ConcurrentCreditConflict, CreditInProgress) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PersistenceFailure as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception("Unexpected error while crediting a collection")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process collection: {exc}",
        ) from exc

    return CollectionResponse(
        user_id=confirmation.user_id,
        points=confirmation.points,
        balance=confirmation.balance,
        rank=confirmation.rank,
        entry=LedgerEntryModel.from_domain(confirmation.entry),
    )


@router.get("/collections", response_model=List[LedgerEntryModel], status_code=status.HTTP_200_OK)
def list_collections(
    booth_id: Optional[str] = Query(default=None, description="Restrict to one booth"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    operator: Operator = Depends(get_current_operator),
    ledger: CreditLedgerStore = Depends(get_credit_ledger),
) -> List[LedgerEntryModel]:
    """Recent credits, newest first, limited to the operator's booths."""
    if booth_id and not operator.can_operate(booth_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied. You are not assigned to this booth.")
    booth_ids = None if booth_id or operator.is_super_admin else list(operator.booth_ids)
    try:
        entries = ledger.list_entries(
            booth_id=booth_id,
            limit=limit or settings.recent_collections_limit,
            booth_ids=booth_ids,
        )
    except PersistenceFailure as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return [LedgerEntryModel.from_domain(entry) for entry in entries]


def _reviewer(
    operator: Operator = Depends(get_current_operator),
    store: SubmissionStore = Depends(get_submission_store),
    ledger: CreditLedgerStore = Depends(get_credit_ledger),
    rates: RateTable = Depends(get_rate_table),
) -> SubmissionReviewer:
    return SubmissionReviewer(operator, store=store, ledger=ledger, rates=rates)


@router.get("/submissions", response_model=List[ReviewSubmissionModel], status_code=status.HTTP_200_OK)
def list_pending_submissions(reviewer: SubmissionReviewer = Depends(_reviewer)) -> List[ReviewSubmissionModel]:
    """Pending self-service submissions at the operator's booths, oldest first."""
    try:
        records = reviewer.pending()
    except PersistenceFailure as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    records = sorted(records, key=lambda record: record.submitted_at)
    return [ReviewSubmissionModel.from_domain(record) for record in records]


@router.post("/submissions/{submission_id}/approve", response_model=ApprovalResponse, status_code=status.HTTP_200_OK)
def approve_submission(
    submission_id: str,
    payload: ApproveRequest,
    reviewer: SubmissionReviewer = Depends(_reviewer),
) -> ApprovalResponse:
    """Verify a pending submission and credit its points to the user."""
    try:
        result = reviewer.approve(submission_id, notes=payload.notes)
    except (UnknownSubmission, UnknownUser) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except BoothAccessDenied as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except ConcurrentCreditConflict as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PersistenceFailure as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ApprovalResponse(
        submission=ReviewSubmissionModel.from_domain(result.record),
        entry=LedgerEntryModel.from_domain(result.entry),
    )


@router.post("/submissions/{submission_id}/reject", response_model=ReviewSubmissionModel, status_code=status.HTTP_200_OK)
def reject_submission(
    submission_id: str,
    payload: RejectRequest,
    reviewer: SubmissionReviewer = Depends(_reviewer),
) -> ReviewSubmissionModel:
    """Reject a pending submission; the reason is stored in its notes."""
    try:
        record = reviewer.reject(submission_id, payload.reason)
    except UnknownSubmission as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except BoothAccessDenied as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PersistenceFailure as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return ReviewSubmissionModel.from_domain(record)

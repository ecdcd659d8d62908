"""Booth-operator services."""

from .collection import AdminCollectionWorkflow, CreditConfirmation, CreditInProgress, WeighedCollection
from .verification import ApprovalResult, SubmissionReviewer

__all__ = [
    "AdminCollectionWorkflow",
    "ApprovalResult",
    "CreditConfirmation",
    "CreditInProgress",
    "SubmissionReviewer",
    "WeighedCollection",
]

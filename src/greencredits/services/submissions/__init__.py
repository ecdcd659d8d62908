"""Self-service submission services."""

from .validator import SubmissionLimits, validate_draft
from .workflow import (
    UNKNOWN_BOOTH_MESSAGE,
    Step,
    SubmissionSummary,
    SubmissionWorkflow,
    Transition,
    WorkflowState,
    entry_step_for,
    initial_state,
    preview_points,
    transition,
)

__all__ = [
    "UNKNOWN_BOOTH_MESSAGE",
    "Step",
    "SubmissionLimits",
    "SubmissionSummary",
    "SubmissionWorkflow",
    "Transition",
    "WorkflowState",
    "entry_step_for",
    "initial_state",
    "preview_points",
    "transition",
    "validate_draft",
]

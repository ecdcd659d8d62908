"""Typed errors raised by the reward engine and its workflows."""

from __future__ import annotations

from typing import Mapping


class GreenCreditsError(Exception):
    """Base class for every error raised by this package."""

    retryable: bool = False


class InvalidCoordinate(GreenCreditsError, ValueError):
    """A coordinate is missing or outside the valid latitude/longitude range."""


class UnknownWasteType(GreenCreditsError, ValueError):
    def __init__(self, waste_type: object) -> None:
        super().__init__(f"Unknown waste type '{waste_type}'.")
        self.waste_type = waste_type


class ValidationFailed(GreenCreditsError, ValueError):
    """Carries the per-field error mapping produced by the submission validator."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Submission is invalid ({fields}).")


class UnknownUser(GreenCreditsError, LookupError):
    def __init__(self, token: str) -> None:
        super().__init__("Invalid user QR code or user not found.")
        self.token = token


class UnknownBooth(GreenCreditsError, LookupError):
    def __init__(self, reference: str) -> None:
        super().__init__("Invalid QR code or booth not found.")
        self.reference = reference


class WasteTypeNotAccepted(GreenCreditsError, ValueError):
    def __init__(self, waste_type: str, accepted: tuple[str, ...]) -> None:
        accepted_label = ", ".join(accepted) if accepted else "none"
        super().__init__(f"This booth does not accept {waste_type}. Accepted types: {accepted_label}")
        self.waste_type = waste_type
        self.accepted = accepted


class BoothUnavailable(GreenCreditsError, ValueError):
    """The booth exists but cannot take waste right now."""


class BoothAccessDenied(GreenCreditsError, PermissionError):
    """The operator is not assigned to the booth they are collecting for."""


class UnknownSubmission(GreenCreditsError, LookupError):
    def __init__(self, submission_id: str) -> None:
        super().__init__(f"Submission '{submission_id}' not found.")
        self.submission_id = submission_id


class SubmissionAlreadyProcessed(GreenCreditsError, ValueError):
    """Only pending submissions can be approved or rejected."""

    def __init__(self, submission_id: str) -> None:
        super().__init__("Submission has already been processed.")
        self.submission_id = submission_id


class PersistenceFailure(GreenCreditsError):
    """A submission store or credit ledger call failed; the caller may retry."""

    retryable = True


class ConcurrentCreditConflict(GreenCreditsError):
    """Atomic credit update lost a race with another writer; safe to retry."""

    retryable = True

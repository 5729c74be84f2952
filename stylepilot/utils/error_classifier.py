"""
Error Classifier
================
Standardised error kinds and the remediation suggestions shown with them.

classify_error() maps any raised exception to exactly one kind;
build_error_info() turns it into the PilotErrorInfo handed to the caller.
"""
import asyncio
from typing import Optional

from stylepilot.core.constants import (
    STAGE_COLLECTING_DATA,
    STAGE_TAKING_SCREENSHOT,
    STAGE_GENERATING,
    STAGE_APPLYING,
    STAGE_EVALUATING,
)
from stylepilot.core.errors import PilotError, CancellationError, CredentialsMissingError
from stylepilot.models.error_info import PilotErrorInfo


# ---------------------------------------------------------------------------
# Error Kind Constants
# ---------------------------------------------------------------------------
CONFIG_ERROR = "CONFIG_ERROR"
VALIDATION_ERROR = "VALIDATION_ERROR"
COLLECTION_ERROR = "COLLECTION_ERROR"
GENERATION_ERROR = "GENERATION_ERROR"
APPLICATION_ERROR = "APPLICATION_ERROR"
EVALUATION_ERROR = "EVALUATION_ERROR"
CANCELLED = "CANCELLED"
ALREADY_RUNNING = "ALREADY_RUNNING"
UNKNOWN_ERROR = "UNKNOWN_ERROR"

ALL_ERROR_KINDS = frozenset({
    CONFIG_ERROR,
    VALIDATION_ERROR,
    COLLECTION_ERROR,
    GENERATION_ERROR,
    APPLICATION_ERROR,
    EVALUATION_ERROR,
    CANCELLED,
    ALREADY_RUNNING,
    UNKNOWN_ERROR,
})


# ---------------------------------------------------------------------------
# Remediation suggestions (maps kind → hints)
# ---------------------------------------------------------------------------
SUGGESTIONS = {
    CONFIG_ERROR: ["Add at least one reference image before starting"],
    VALIDATION_ERROR: ["Use a JPG, PNG, GIF or WebP image no larger than 10MB"],
    COLLECTION_ERROR: ["Try refreshing the page", "Check that the target is still reachable"],
    GENERATION_ERROR: ["Check your internet connection", "Try with different reference images"],
    APPLICATION_ERROR: ["Check that the generated stylesheet is valid", "Try applying it manually"],
    EVALUATION_ERROR: ["Check your internet connection", "Try with different reference images"],
    ALREADY_RUNNING: ["Stop the current run before starting or resetting"],
    UNKNOWN_ERROR: ["Try again", "Reset the session if the problem persists"],
}

# Kind assigned to a non-pilot exception, by the stage that raised it
STAGE_ERROR_KINDS = {
    STAGE_COLLECTING_DATA: COLLECTION_ERROR,
    STAGE_TAKING_SCREENSHOT: COLLECTION_ERROR,
    STAGE_GENERATING: GENERATION_ERROR,
    STAGE_APPLYING: APPLICATION_ERROR,
    STAGE_EVALUATING: EVALUATION_ERROR,
}

_CREDENTIALS_SUGGESTION = "Set your Gemini API key in Settings (GEMINI_API_KEY)"


def classify_error(exc: BaseException, stage: Optional[str] = None) -> str:
    """
    Map an exception to one error kind.

    Pilot errors carry their own kind. Anything else raised by a collaborator
    takes the kind of the stage it was raised in; otherwise UNKNOWN_ERROR.
    """
    if isinstance(exc, (CancellationError, asyncio.CancelledError)):
        return CANCELLED
    if isinstance(exc, PilotError):
        return exc.kind if exc.kind in ALL_ERROR_KINDS else UNKNOWN_ERROR
    return STAGE_ERROR_KINDS.get(stage or "", UNKNOWN_ERROR)


def get_suggestions(kind: str, exc: Optional[BaseException] = None) -> list[str]:
    """
    Remediation hints for an error kind.

    Parameters
    ----------
    kind : str
        One of ALL_ERROR_KINDS.
    exc : BaseException or None
        The originating exception; missing credentials get a dedicated hint.
    """
    if isinstance(exc, CredentialsMissingError):
        return [_CREDENTIALS_SUGGESTION]
    return list(SUGGESTIONS.get(kind, SUGGESTIONS[UNKNOWN_ERROR]))


def build_error_info(exc: BaseException, stage: Optional[str] = None) -> PilotErrorInfo:
    kind = classify_error(exc, stage)
    message = str(exc) or exc.__class__.__name__
    details = dict(exc.details) if isinstance(exc, PilotError) else {"exception": exc.__class__.__name__}
    if stage:
        details.setdefault("stage", stage)
    return PilotErrorInfo(
        kind=kind,
        message=message,
        details=details,
        recoverable=not isinstance(exc, CredentialsMissingError),
        suggestions=get_suggestions(kind, exc),
    )

"""
Pilot Errors
============
Exception taxonomy raised by the orchestrator and its collaborators.

Every exception carries a ``kind`` string (see utils/error_classifier.py) so
the orchestrator can classify a failure once, at the top of the run, without
inspecting messages.

    ConfigError          — invalid or missing run inputs (no reference artifacts)
    ValidationError      — rejected reference-artifact upload
    CollectionError      — collector could not produce a complete snapshot
    GenerationError      — generator failed (missing credentials, transport)
    ApplicationError     — applier rejected or failed to apply the artifact
    EvaluationError      — evaluator transport failure (NOT a parse failure)
    CancellationError    — internal stop signal, never surfaced as a failure
    AlreadyRunningError  — start/reset/config edit attempted while a run is active
"""
from typing import Any, Dict, Optional


class PilotError(Exception):
    """Base class for all classified failures."""

    kind = "UNKNOWN_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(PilotError):
    kind = "CONFIG_ERROR"


class ValidationError(PilotError):
    kind = "VALIDATION_ERROR"


class CollectionError(PilotError):
    kind = "COLLECTION_ERROR"


class GenerationError(PilotError):
    kind = "GENERATION_ERROR"


class CredentialsMissingError(GenerationError):
    """Raised when no provider has an API key configured."""


class ApplicationError(PilotError):
    kind = "APPLICATION_ERROR"


class EvaluationError(PilotError):
    kind = "EVALUATION_ERROR"


class CancellationError(PilotError):
    kind = "CANCELLED"

    def __init__(self, message: str = "Processing was aborted") -> None:
        super().__init__(message)


class AlreadyRunningError(PilotError):
    kind = "ALREADY_RUNNING"

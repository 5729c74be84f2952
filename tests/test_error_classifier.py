"""
Error Classifier Tests
======================
Every failure maps to exactly one kind with remediation hints.
"""
import asyncio
import pytest

from stylepilot.core.errors import (
    AlreadyRunningError,
    ApplicationError,
    CancellationError,
    CollectionError,
    ConfigError,
    CredentialsMissingError,
    EvaluationError,
    GenerationError,
    PilotError,
    ValidationError,
)
from stylepilot.utils.error_classifier import (
    ALL_ERROR_KINDS,
    SUGGESTIONS,
    build_error_info,
    classify_error,
    get_suggestions,
)


@pytest.mark.parametrize("exc,kind", [
    (ConfigError("x"), "CONFIG_ERROR"),
    (ValidationError("x"), "VALIDATION_ERROR"),
    (CollectionError("x"), "COLLECTION_ERROR"),
    (GenerationError("x"), "GENERATION_ERROR"),
    (CredentialsMissingError("x"), "GENERATION_ERROR"),
    (ApplicationError("x"), "APPLICATION_ERROR"),
    (EvaluationError("x"), "EVALUATION_ERROR"),
    (CancellationError(), "CANCELLED"),
    (asyncio.CancelledError(), "CANCELLED"),
    (AlreadyRunningError("x"), "ALREADY_RUNNING"),
    (PilotError("x"), "UNKNOWN_ERROR"),
    (RuntimeError("x"), "UNKNOWN_ERROR"),
])
def test_classify(exc, kind):
    assert classify_error(exc) == kind
    assert kind in ALL_ERROR_KINDS


@pytest.mark.parametrize("stage,kind", [
    ("collecting-data", "COLLECTION_ERROR"),
    ("taking-screenshot", "COLLECTION_ERROR"),
    ("generating-artifact", "GENERATION_ERROR"),
    ("applying-artifact", "APPLICATION_ERROR"),
    ("evaluating", "EVALUATION_ERROR"),
    ("setup", "UNKNOWN_ERROR"),
])
def test_foreign_exceptions_take_stage_kind(stage, kind):
    assert classify_error(KeyError("boom"), stage) == kind


def test_pilot_error_kind_wins_over_stage():
    assert classify_error(ApplicationError("x"), "generating-artifact") == "APPLICATION_ERROR"


def test_every_failure_kind_has_suggestions():
    for kind in ALL_ERROR_KINDS - {"CANCELLED"}:
        assert get_suggestions(kind), kind
    assert get_suggestions("NOT_A_KIND") == SUGGESTIONS["UNKNOWN_ERROR"]


def test_missing_credentials_gets_dedicated_hint():
    exc = CredentialsMissingError("No LLM API key configured")
    info = build_error_info(exc, "generating-artifact")

    assert info.kind == "GENERATION_ERROR"
    assert info.recoverable is False
    assert info.suggestions == ["Set your Gemini API key in Settings (GEMINI_API_KEY)"]
    assert info.details["stage"] == "generating-artifact"


def test_build_error_info_for_foreign_exception():
    info = build_error_info(ValueError("bad value"), "applying-artifact")

    assert info.kind == "APPLICATION_ERROR"
    assert info.message == "bad value"
    assert info.details == {"exception": "ValueError", "stage": "applying-artifact"}
    assert info.recoverable is True


def test_build_error_info_keeps_details():
    info = build_error_info(GenerationError("down", details={"provider": "gemini"}))
    assert info.details == {"provider": "gemini"}
    assert info.suggestions == SUGGESTIONS["GENERATION_ERROR"]

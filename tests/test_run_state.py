"""
Run State Tests
===============
RunLog, CancellationToken, ProcessingContext and RunConfig.
"""
import asyncio
import logging
import time
import pytest
from pydantic import ValidationError as PydanticValidationError

from stylepilot.core.errors import CancellationError
from stylepilot.models.evaluation_result import EvaluationResult
from stylepilot.models.reference_artifact import ReferenceArtifact
from stylepilot.models.run_config import RunConfig
from stylepilot.models.snapshot import Snapshot
from stylepilot.services.run_log import RunLog, format_log_message
from stylepilot.state.cancellation import CancellationToken
from stylepilot.state.processing_context import ProcessingContext, generate_session_id


# ===================================================================
# RunLog
# ===================================================================
def test_run_log_appends_in_order():
    log = RunLog()
    log.info("one")
    log.success("two", stage="evaluating", iteration=2)
    log.warning("three")
    log.error("four", details={"kind": "X"})

    assert [e.message for e in log.entries] == ["one", "two", "three", "four"]
    assert [e.level for e in log.entries] == ["info", "success", "warning", "error"]
    assert log.entries[1].stage == "evaluating"
    assert log.entries[3].details == {"kind": "X"}
    assert len({e.id for e in log.entries}) == 4
    assert len(log) == 4


def test_run_log_tail_and_clear():
    log = RunLog()
    for i in range(5):
        log.info(f"m{i}")
    assert [e.message for e in log.tail(2)] == ["m3", "m4"]
    assert log.tail(0) == []
    log.clear()
    assert log.entries == ()


def test_run_log_mirrors_to_logging(caplog):
    log = RunLog()
    with caplog.at_level(logging.INFO, logger="stylepilot.run"):
        log.warning("careful", stage="applying-artifact", iteration=1)
    assert any(r.levelno == logging.WARNING and "careful" in r.getMessage() for r in caplog.records)


def test_format_log_message():
    log = RunLog()
    entry = log.error("boom", stage="generating-artifact", iteration=3)
    assert format_log_message(entry, show_timestamp=False) == "ERROR [generating-artifact] (3) boom"
    assert format_log_message(entry).endswith("ERROR [generating-artifact] (3) boom")


# ===================================================================
# CancellationToken
# ===================================================================
def test_token_cancel_is_idempotent():
    token = CancellationToken()
    assert token.is_cancelled is False
    token.raise_if_cancelled()

    token.cancel("first")
    token.cancel("second")

    assert token.is_cancelled is True
    assert token.reason == "first"
    with pytest.raises(CancellationError):
        token.raise_if_cancelled()


def test_token_wait_returns_after_cancel():
    async def run_test():
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()
        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)

    asyncio.run(run_test())


# ===================================================================
# ProcessingContext
# ===================================================================
def test_session_ids_are_unique():
    ids = {generate_session_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(i.startswith("pilot_") for i in ids)


def test_context_update_and_history():
    context = ProcessingContext()
    snapshot = Snapshot(current_artifact_text="a{}")
    context.update(1, "a{}", snapshot)
    result = EvaluationResult(iteration=1, is_done=False, feedback="more", timestamp=time.time() * 1000)
    context.record_evaluation(result)

    assert context.iteration == 1
    assert context.last_snapshot is snapshot
    assert context.feedback_history == (result,)
    assert context.latest_evaluation is result
    assert context.elapsed_ms >= 0

    with pytest.raises(ValueError):
        context.update(0, "b{}", snapshot)

    data = context.to_dict()
    assert data["has_snapshot"] is True
    assert data["feedback_history"][0]["feedback"] == "more"
    assert "snapshot_after" not in data["feedback_history"][0]


def test_evaluation_result_is_frozen():
    result = EvaluationResult(iteration=1, is_done=True, timestamp=1.0)
    with pytest.raises(PydanticValidationError):
        result.is_done = False


# ===================================================================
# RunConfig
# ===================================================================
def test_run_config_defaults():
    config = RunConfig()
    assert config.max_iterations == 3
    assert config.quality_threshold == 0.8
    assert config.options.generate_responsive_variants is True
    assert config.options.force_overrides is False


@pytest.mark.parametrize("updates", [
    {"max_iterations": 0},
    {"max_iterations": 11},
    {"quality_threshold": -0.1},
    {"quality_threshold": 1.01},
])
def test_run_config_rejects_out_of_range(updates):
    with pytest.raises(PydanticValidationError):
        RunConfig().with_updates(updates)


def test_run_config_with_updates_returns_new_instance():
    config = RunConfig()
    updated = config.with_updates({"intent_description": "Brutalist", "options": {"optimize_for_size": True}})
    assert config.intent_description == ""
    assert updated.intent_description == "Brutalist"
    assert updated.options.optimize_for_size is True
    assert updated.options.generate_responsive_variants is True


def test_run_config_rejects_duplicate_reference_ids():
    ref = ReferenceArtifact(
        id="ref_dup", url="data:image/png;base64,AAE=", data=b"\x00\x01",
        name="a.png", size=2, mime_type="image/png",
    )
    with pytest.raises(PydanticValidationError):
        RunConfig(reference_artifacts=[ref, ref])
    assert RunConfig(reference_artifacts=[ref]).reference_artifacts == [ref]


@pytest.mark.parametrize("overrides", [
    {"mime_type": "text/plain"},
    {"size": 10 * 1024 * 1024 + 1},
    {"size": -1},
])
def test_reference_artifact_enforces_type_and_size(overrides):
    fields = {
        "id": "ref_1", "url": "data:image/png;base64,AAE=", "name": "a.png",
        "size": 2, "mime_type": "image/png",
    }
    fields.update(overrides)
    with pytest.raises(PydanticValidationError):
        ReferenceArtifact(**fields)

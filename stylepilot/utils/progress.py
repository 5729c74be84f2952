"""
Progress Estimator
==================
Pure functions turning (stage, iterations completed, total, stage fraction)
into a 0–100 progress figure and an ETA.

Each iteration is worth 100 / total_iterations percent. Inside an iteration
the stage weights from STAGE_WEIGHTS are laid end to end in stage order, so a
later stage always reports more progress than an earlier one:

    collecting-data   [ 0, 10)
    taking-screenshot [10, 25)
    generating        [25, 55)
    applying          [55, 75)
    evaluating        [75, 100)

Iterations after the first start at the generating offset because the
collected snapshot is carried over. The final iteration never evaluates; the
orchestrator reports "complete" (exactly 100) instead.
"""
from typing import Optional

from stylepilot.core.constants import (
    PROCESSING_STAGES,
    STAGE_WEIGHTS,
    STAGE_COLLECTING_DATA,
    STAGE_TAKING_SCREENSHOT,
    STAGE_GENERATING,
    STAGE_APPLYING,
    STAGE_EVALUATING,
    STATE_SETUP,
    STATE_COMPLETE,
    STATE_ABORTED,
    STATE_ERROR,
)

_TOTAL_WEIGHT = sum(STAGE_WEIGHTS.values())


def _stage_offset(stage: str) -> int:
    offset = 0
    for name in PROCESSING_STAGES:
        if name == stage:
            return offset
        offset += STAGE_WEIGHTS[name]
    return 0


def calculate_progress(
    stage: str,
    iterations_completed: int,
    total_iterations: int,
    stage_fraction: float = 0.0,
) -> float:
    """
    Normalised run progress.

    Parameters
    ----------
    stage : str
        Current stage, or "complete".
    iterations_completed : int
        Iterations fully finished before the current one.
    total_iterations : int
        RunConfig.max_iterations.
    stage_fraction : float
        How far through the current stage we are (0.0–1.0).

    Returns
    -------
    float
        Progress in [0, 100].
    """
    if stage == STATE_COMPLETE:
        return 100.0
    if total_iterations <= 0:
        return 0.0

    per_iteration = 100.0 / total_iterations
    fraction = max(0.0, min(1.0, stage_fraction))

    within = 0.0
    if stage in STAGE_WEIGHTS:
        within = (_stage_offset(stage) + STAGE_WEIGHTS[stage] * fraction) / _TOTAL_WEIGHT

    return min(100.0, (iterations_completed + within) * per_iteration)


def estimate_time_remaining(
    elapsed_ms: float,
    iterations_completed: int,
    total_iterations: int,
) -> Optional[float]:
    """Average time per finished iteration × iterations left. None until one finishes."""
    if iterations_completed <= 0:
        return None
    remaining = max(0, total_iterations - iterations_completed)
    return (elapsed_ms / iterations_completed) * remaining


_MESSAGES = {
    STAGE_COLLECTING_DATA: "Analyzing page structure and elements...",
    STAGE_TAKING_SCREENSHOT: "Capturing page screenshot...",
    STAGE_APPLYING: "Applying stylesheet to page...",
    STAGE_EVALUATING: "Evaluating design match...",
    STATE_SETUP: "Preparing run...",
    STATE_COMPLETE: "Processing complete!",
    STATE_ABORTED: "Processing stopped",
    STATE_ERROR: "Processing failed",
}


def progress_message(stage: str, iteration: int) -> str:
    if stage == STAGE_GENERATING:
        return f"Generating stylesheet (iteration {iteration})..."
    return _MESSAGES.get(stage, "Ready to start...")


def format_duration(milliseconds: float) -> str:
    seconds = int(milliseconds // 1000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"

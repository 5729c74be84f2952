"""
Progress Estimator Tests
========================
Stage-weighted progress, ETA and duration formatting.
"""
import pytest

from stylepilot.core.constants import STAGE_WEIGHTS, PROCESSING_STAGES
from stylepilot.utils.progress import (
    calculate_progress,
    estimate_time_remaining,
    format_duration,
    progress_message,
)


def test_stage_weights_sum_to_100():
    assert sum(STAGE_WEIGHTS.values()) == 100
    assert set(STAGE_WEIGHTS) == set(PROCESSING_STAGES)


def test_complete_is_always_100():
    assert calculate_progress("complete", 0, 3) == 100.0
    assert calculate_progress("complete", 1, 10) == 100.0


def test_first_stage_starts_at_zero():
    assert calculate_progress("collecting-data", 0, 3) == 0.0


def test_stage_offsets_within_one_iteration():
    # One iteration: percentages equal the cumulative stage offsets
    assert calculate_progress("taking-screenshot", 0, 1) == pytest.approx(10.0)
    assert calculate_progress("generating-artifact", 0, 1) == pytest.approx(25.0)
    assert calculate_progress("applying-artifact", 0, 1) == pytest.approx(55.0)
    assert calculate_progress("evaluating", 0, 1) == pytest.approx(75.0)
    assert calculate_progress("evaluating", 0, 1, stage_fraction=1.0) == pytest.approx(100.0)


def test_later_iterations_report_more_progress():
    end_of_first = calculate_progress("evaluating", 0, 4, stage_fraction=1.0)
    start_of_second = calculate_progress("generating-artifact", 1, 4)
    assert end_of_first == pytest.approx(25.0)
    assert start_of_second > end_of_first


def test_progress_is_clamped():
    assert calculate_progress("evaluating", 5, 3, stage_fraction=1.0) == 100.0
    assert calculate_progress("generating-artifact", 0, 3, stage_fraction=7.0) <= 100.0
    assert calculate_progress("generating-artifact", 0, 0) == 0.0


def test_unknown_stage_counts_only_finished_iterations():
    assert calculate_progress("setup", 0, 3) == 0.0
    assert calculate_progress("idle", 1, 2) == pytest.approx(50.0)


def test_eta_unknown_before_first_iteration():
    assert estimate_time_remaining(5000, 0, 3) is None


def test_eta_uses_average_iteration_time():
    assert estimate_time_remaining(6000, 2, 5) == pytest.approx(9000)
    assert estimate_time_remaining(6000, 3, 3) == 0


def test_progress_messages():
    assert progress_message("generating-artifact", 2) == "Generating stylesheet (iteration 2)..."
    assert progress_message("complete", 3) == "Processing complete!"
    assert progress_message("idle", 0) == "Ready to start..."


@pytest.mark.parametrize("millis,expected", [
    (0, "0s"),
    (45_000, "45s"),
    (125_000, "2m 5s"),
    (3_725_000, "1h 2m 5s"),
])
def test_format_duration(millis, expected):
    assert format_duration(millis) == expected

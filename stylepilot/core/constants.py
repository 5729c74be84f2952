"""
Constants
Centralised storage for run states, processing stages and their progress weights.
"""
from typing import Dict

# ---------------------------------------------------------------------------
# Run states
# ---------------------------------------------------------------------------
STATE_IDLE = "idle"
STATE_SETUP = "setup"
STATE_COMPLETE = "complete"
STATE_ABORTED = "aborted"
STATE_ERROR = "error"

# ---------------------------------------------------------------------------
# Processing stages (the repeating part of the state machine)
# ---------------------------------------------------------------------------
STAGE_COLLECTING_DATA = "collecting-data"
STAGE_TAKING_SCREENSHOT = "taking-screenshot"
STAGE_GENERATING = "generating-artifact"
STAGE_APPLYING = "applying-artifact"
STAGE_EVALUATING = "evaluating"

PROCESSING_STAGES = (
    STAGE_COLLECTING_DATA,
    STAGE_TAKING_SCREENSHOT,
    STAGE_GENERATING,
    STAGE_APPLYING,
    STAGE_EVALUATING,
)

TERMINAL_STATES = frozenset({STATE_COMPLETE, STATE_ABORTED, STATE_ERROR})

# Progress weight of each stage within one iteration. Sums to 100.
STAGE_WEIGHTS: Dict[str, int] = {
    STAGE_COLLECTING_DATA: 10,
    STAGE_TAKING_SCREENSHOT: 15,
    STAGE_GENERATING: 30,
    STAGE_APPLYING: 20,
    STAGE_EVALUATING: 25,
}

# ---------------------------------------------------------------------------
# Log levels
# ---------------------------------------------------------------------------
LEVEL_INFO = "info"
LEVEL_WARNING = "warning"
LEVEL_ERROR = "error"
LEVEL_SUCCESS = "success"

LOG_LEVELS = (LEVEL_INFO, LEVEL_WARNING, LEVEL_ERROR, LEVEL_SUCCESS)

DONE_SENTINEL = "DONE"
SESSION_ID_PREFIX = "pilot"

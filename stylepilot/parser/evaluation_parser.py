"""
Evaluation Parser
=================
Strict parser for evaluator model output.

Accepted shapes:
    DONE                                   → Sentinel
    QUALITY_SCORE: 0.72                    → Parsed(score=0.72, feedback=...)
    FEEDBACK: tighten header spacing ...
    {"quality_score": 0.72, "feedback": "..."}  (optionally in a ``` fence)

Anything else — no score, a score outside [0, 1], empty text — is
Unparsable. The parser never raises and never decides acceptance; that is
the evaluation gate's job.
"""
import json
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from stylepilot.core.constants import DONE_SENTINEL


@dataclass(frozen=True)
class Sentinel:
    done: bool = True


@dataclass(frozen=True)
class Parsed:
    score: float
    feedback: Optional[str] = None


@dataclass(frozen=True)
class Unparsable:
    raw: str = ""
    reason: str = ""


ParsedEvaluation = Union[Parsed, Sentinel, Unparsable]

_SCORE_RE = re.compile(r"^\s*QUALITY_SCORE\s*:\s*([-+]?\d*\.?\d+)\s*$", re.MULTILINE | re.IGNORECASE)
_FEEDBACK_RE = re.compile(r"^\s*FEEDBACK\s*:\s*(.+)", re.MULTILINE | re.IGNORECASE | re.DOTALL)
_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?|\n?```\s*$")


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip()).strip()


def _is_sentinel(text: str) -> bool:
    return text.strip().rstrip(".!").upper() == DONE_SENTINEL


def _parse_json(text: str) -> Optional[ParsedEvaluation]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(data, dict):
        return Unparsable(raw=text, reason="JSON response is not an object")

    if data.get("done") is True or data.get("is_done") is True:
        return Sentinel()

    raw_score = data.get("quality_score", data.get("qualityScore"))
    if raw_score is None:
        return Unparsable(raw=text, reason="JSON response has no quality_score")
    try:
        score = float(raw_score)
    except (TypeError, ValueError):
        return Unparsable(raw=text, reason="quality_score is not a number")
    if not 0.0 <= score <= 1.0:
        return Unparsable(raw=text, reason=f"quality_score {score} outside [0, 1]")

    feedback = data.get("feedback")
    if feedback is not None and not isinstance(feedback, str):
        feedback = str(feedback)
    return Parsed(score=score, feedback=(feedback or "").strip() or None)


def parse_evaluation(raw: Optional[str]) -> ParsedEvaluation:
    """Parse one evaluator reply into a tagged result."""
    if raw is None or not raw.strip():
        return Unparsable(raw=raw or "", reason="empty response")

    text = _strip_fences(raw)
    if _is_sentinel(text):
        return Sentinel()

    if text.startswith("{"):
        parsed = _parse_json(text)
        if parsed is not None:
            return parsed

    score_match = _SCORE_RE.search(text)
    if not score_match:
        return Unparsable(raw=raw, reason="no QUALITY_SCORE line")
    try:
        score = float(score_match.group(1))
    except ValueError:
        return Unparsable(raw=raw, reason="QUALITY_SCORE is not a number")
    if not 0.0 <= score <= 1.0:
        return Unparsable(raw=raw, reason=f"QUALITY_SCORE {score} outside [0, 1]")

    feedback_match = _FEEDBACK_RE.search(text)
    feedback = feedback_match.group(1).strip() if feedback_match else None
    return Parsed(score=score, feedback=feedback or None)


# ---------------------------------------------------------------------------
# Improvement suggestions
# ---------------------------------------------------------------------------
_SUGGESTION_PATTERNS = [
    (re.compile(r"colou?r", re.I), "Adjust colors to better match reference"),
    (re.compile(r"spacing|padding|margin", re.I), "Fine-tune spacing and layout"),
    (re.compile(r"font|typography|text", re.I), "Improve typography and text styling"),
    (re.compile(r"size|width|height", re.I), "Adjust element dimensions"),
    (re.compile(r"border|outline", re.I), "Refine borders and outlines"),
    (re.compile(r"background", re.I), "Update background styling"),
    (re.compile(r"shadow|effect", re.I), "Enhance visual effects and shadows"),
    (re.compile(r"responsive|mobile", re.I), "Improve responsive design"),
    (re.compile(r"hover|interaction", re.I), "Add interactive states"),
    (re.compile(r"alignment|position", re.I), "Fix element positioning"),
]

_GENERAL_SUGGESTIONS = [
    "Review overall visual accuracy",
    "Check color consistency",
    "Verify spacing and layout",
]

MAX_SUGGESTIONS = 5


def extract_improvement_suggestions(feedback: Optional[str]) -> List[str]:
    """Keyword-matched follow-up hints for a feedback text (at most five)."""
    if not feedback:
        return []
    suggestions = [hint for pattern, hint in _SUGGESTION_PATTERNS if pattern.search(feedback)]
    if not suggestions:
        suggestions = list(_GENERAL_SUGGESTIONS)
    return suggestions[:MAX_SUGGESTIONS]

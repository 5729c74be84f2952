"""
Evaluation Gate
===============
Single place where an evaluator response becomes an accept/continue decision.

    done  = explicit DONE sentinel  OR  score >= threshold
    soft  = anything unparsable → not done, generic feedback (never fatal)

The gate is pure: no I/O, no state.
"""
import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from stylepilot.models.evaluation_result import EvaluationVerdict
from stylepilot.parser.evaluation_parser import (
    Parsed,
    Sentinel,
    Unparsable,
    ParsedEvaluation,
    parse_evaluation,
    extract_improvement_suggestions,
)

logger = logging.getLogger(__name__)

UNPARSABLE_FEEDBACK = (
    "The evaluation could not be interpreted. Keep refining the design "
    "towards the reference: colors, typography, spacing."
)
SENTINEL_FEEDBACK = "Design matches the reference successfully!"


def _valid_score(score: Any) -> bool:
    return isinstance(score, (int, float)) and 0.0 <= float(score) <= 1.0


def decide(parsed: ParsedEvaluation, threshold: float) -> EvaluationVerdict:
    """Apply the threshold and the soft-failure policy to a parsed reply."""
    if isinstance(parsed, Sentinel):
        return EvaluationVerdict(is_done=True, feedback=SENTINEL_FEEDBACK)

    if isinstance(parsed, Parsed):
        is_done = parsed.score >= threshold
        return EvaluationVerdict(
            is_done=is_done,
            feedback=parsed.feedback,
            quality_score=parsed.score,
            improvements_suggested=[] if is_done else extract_improvement_suggestions(parsed.feedback),
        )

    reason = parsed.reason if isinstance(parsed, Unparsable) else "unknown response type"
    logger.warning("Unparsable evaluation treated as not done: %s", reason)
    return EvaluationVerdict(
        is_done=False,
        feedback=UNPARSABLE_FEEDBACK,
        improvements_suggested=extract_improvement_suggestions(UNPARSABLE_FEEDBACK),
    )


def resolve_verdict(response: Any, threshold: float) -> EvaluationVerdict:
    """
    Normalise whatever an Evaluator returned into a verdict.

    Parameters
    ----------
    response : EvaluationVerdict | dict | str | None
        Evaluator output. Raw text goes through the strict parser.
    threshold : float
        RunConfig.quality_threshold.
    """
    if isinstance(response, str) or response is None:
        return decide(parse_evaluation(response), threshold)

    if isinstance(response, dict):
        try:
            response = EvaluationVerdict.model_validate(response)
        except PydanticValidationError as exc:
            return decide(Unparsable(raw=str(response), reason=f"invalid verdict: {exc.error_count()} error(s)"), threshold)

    if not isinstance(response, EvaluationVerdict):
        return decide(Unparsable(raw=repr(response), reason="unsupported response type"), threshold)

    score = response.quality_score if _valid_score(response.quality_score) else None
    is_done = response.is_done or (score is not None and score >= threshold)
    suggestions = response.improvements_suggested
    if not is_done and not suggestions:
        suggestions = extract_improvement_suggestions(response.feedback)
    return EvaluationVerdict(
        is_done=is_done,
        feedback=response.feedback,
        quality_score=score,
        improvements_suggested=suggestions,
    )

"""
Evaluator Agent
===============
Asks a vision model to compare the page after the latest stylesheet with the
reference images.

The evaluator returns the model's raw reply. Whether that reply means
"done", "keep going" or "could not tell" is decided by the evaluation gate,
so an unreadable reply never fails a run.

Raises EvaluationError only when no provider produced any reply at all.
"""
import logging
from typing import Optional, Sequence

from stylepilot.core.errors import EvaluationError
from stylepilot.llm.client import LLMClient
from stylepilot.llm.prompts import EVALUATION_SYSTEM_PROMPT, build_evaluation_prompt
from stylepilot.llm.router import LLMRouter
from stylepilot.models.reference_artifact import ReferenceArtifact
from stylepilot.models.snapshot import Snapshot
from stylepilot.state.cancellation import CancellationToken
from stylepilot.agents.generator_agent import collect_images

logger = logging.getLogger(__name__)


class LLMEvaluator:
    def __init__(
        self,
        client: Optional[LLMClient] = None,
        router: Optional[LLMRouter] = None,
        intent_description: str = "",
    ) -> None:
        self.client = client or LLMClient()
        self.router = router or LLMRouter()
        self.intent_description = intent_description

    async def evaluate(
        self,
        reference_artifacts: Sequence[ReferenceArtifact],
        snapshot_after: Snapshot,
        artifact_text: str,
        threshold: float,
        token: CancellationToken,
        intent_description: Optional[str] = None,
    ) -> str:
        """The run's intent_description, when given, replaces the one set at construction."""
        token.raise_if_cancelled()
        if not self.router.has_credentials:
            raise EvaluationError("No LLM API key configured")

        if intent_description is None:
            intent_description = self.intent_description
        prompt = build_evaluation_prompt(intent_description, artifact_text, threshold)
        images = collect_images(reference_artifacts, snapshot_after)
        if not snapshot_after.has_visual:
            logger.warning("Evaluating without a page capture; the model only sees the stylesheet")

        response = await self.client.call_with_fallback(prompt, EVALUATION_SYSTEM_PROMPT, self.router, images)
        if not response.success:
            raise EvaluationError(
                f"Evaluation request failed: {response.error}",
                details={"providers": response.attempts},
            )
        logger.debug("Evaluation reply from %s: %r", response.provider_name, response.text[:200])
        return response.text

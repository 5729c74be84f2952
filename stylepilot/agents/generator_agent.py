"""
Generator Agent
===============
Produces the next stylesheet from the reference images, the current
snapshot and the prompt assembled by the orchestrator.

Request Shape:
    - text: the generation prompt (structure, classes, feedback, options)
    - images: every reference image, then the current screenshot if one exists

Failure Rules:
    - No provider API key configured      → CredentialsMissingError
    - All providers failed / empty reply  → GenerationError
    - Reply with no usable stylesheet     → GenerationError

The generator does NOT:
    - Apply the stylesheet (that's the applier's job)
    - Decide whether the result is good enough (that's the evaluator's job)
"""
import logging
from typing import List, Optional, Sequence

from stylepilot.core.errors import CredentialsMissingError, GenerationError
from stylepilot.llm.client import ImagePart, LLMClient
from stylepilot.llm.prompts import GENERATION_SYSTEM_PROMPT
from stylepilot.llm.router import LLMRouter
from stylepilot.models.reference_artifact import ReferenceArtifact
from stylepilot.models.snapshot import Snapshot
from stylepilot.parser.artifact_cleaner import clean_artifact_response
from stylepilot.state.cancellation import CancellationToken

logger = logging.getLogger(__name__)


def collect_images(
    reference_artifacts: Sequence[ReferenceArtifact],
    snapshot: Optional[Snapshot],
) -> List[ImagePart]:
    """Reference images first, then the page capture when present."""
    images: List[ImagePart] = [(ref.mime_type, ref.data) for ref in reference_artifacts if ref.data]
    if snapshot is not None and snapshot.has_visual:
        images.append((snapshot.visual_mime_type, snapshot.visual))
    return images


class LLMGenerator:
    def __init__(
        self,
        client: Optional[LLMClient] = None,
        router: Optional[LLMRouter] = None,
        system_prompt: str = GENERATION_SYSTEM_PROMPT,
    ) -> None:
        self.client = client or LLMClient()
        self.router = router or LLMRouter()
        self.system_prompt = system_prompt

    async def generate(
        self,
        prompt: str,
        snapshot: Snapshot,
        reference_artifacts: Sequence[ReferenceArtifact],
        session_id: str,
        token: CancellationToken,
    ) -> str:
        if not self.router.has_credentials:
            raise CredentialsMissingError(
                "No LLM API key configured",
                details={"session_id": session_id},
            )
        token.raise_if_cancelled()

        images = collect_images(reference_artifacts, snapshot)
        logger.info(
            "[%s] Requesting stylesheet (%d chars prompt, %d images)",
            session_id, len(prompt), len(images),
        )
        response = await self.client.call_with_fallback(prompt, self.system_prompt, self.router, images)
        if not response.success:
            raise GenerationError(
                f"Stylesheet generation failed: {response.error}",
                details={"session_id": session_id, "providers": response.attempts},
            )

        css = clean_artifact_response(response.text)
        if not css:
            raise GenerationError(
                "Stylesheet generation returned no content",
                details={"session_id": session_id, "provider": response.provider_name},
            )
        logger.info("[%s] Stylesheet received from %s (%d chars)", session_id, response.provider_name, len(css))
        return css

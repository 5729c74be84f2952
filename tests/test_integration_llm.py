"""
Integration Test — Real LLM Backend Flow
========================================
Runs the full pilot loop against a real provider, with the file-backed
target in a temp directory.

Flow tested:
    1. StylesheetFileTarget collects markup from disk
    2. LLMGenerator → real Gemini/OpenRouter/Groq call → stylesheet
    3. Stylesheet applied to disk, LLMEvaluator grades it, loop finishes

Run with:
    python -m pytest tests/test_integration_llm.py -v -s

Uses REAL API keys from .env — requires network access.
"""
import asyncio
import base64
import logging
import pytest

from stylepilot.agents.evaluator_agent import LLMEvaluator
from stylepilot.agents.generator_agent import LLMGenerator
from stylepilot.agents.orchestrator import Orchestrator
from stylepilot.llm.client import LLMClient
from stylepilot.llm.router import LLMRouter
from stylepilot.models.run_config import RunConfig
from stylepilot.services.stylesheet_target import StylesheetFileTarget

logger = logging.getLogger(__name__)

_ROUTER = LLMRouter()

skip_no_keys = pytest.mark.skipif(
    not _ROUTER.has_credentials,
    reason="No LLM API keys found in .env — skipping integration tests",
)

# 1x1 dark blue PNG
REFERENCE_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAIAAACQd1PeAAAADElEQVR4nGNgYPgPAAEDAQAIicLsAAAAAElFTkSuQmCC"
)

PAGE_MARKUP = """\
<body>
  <header class="site-header"><h1 class="title">Acme</h1></header>
  <main class="content"><p class="lead">Welcome to Acme.</p><button class="btn">Sign up</button></main>
</body>
"""


@skip_no_keys
def test_full_pilot_run(tmp_path):
    markup = tmp_path / "page.html"
    markup.write_text(PAGE_MARKUP, encoding="utf-8")
    target = StylesheetFileTarget(stylesheet_path=str(tmp_path / "generated.css"), markup_path=str(markup))

    async def run_test():
        client = LLMClient()
        try:
            orchestrator = Orchestrator(
                collector=target,
                generator=LLMGenerator(client, _ROUTER),
                applier=target,
                evaluator=LLMEvaluator(client, _ROUTER, intent_description="Dark navy theme"),
                config=RunConfig(intent_description="Dark navy theme", max_iterations=2),
            )
            orchestrator.add_reference_artifact("navy.png", REFERENCE_PNG, "image/png")
            return orchestrator, await orchestrator.start()
        finally:
            await client.close()

    orchestrator, result = asyncio.run(run_test())
    for entry in orchestrator.logs:
        logger.info("%s %s", entry.level, entry.message)

    assert result.status in ("complete", "error")
    if result.status == "complete":
        assert "{" in result.generated_artifact
        assert (tmp_path / "generated.css").read_text(encoding="utf-8") == result.generated_artifact

"""
Pilot Session
=============
Process-wide holder of the Orchestrator served by the HTTP API.

The API drives exactly one orchestrator. Routes obtain it through the
``get_session`` dependency so tests can swap in an orchestrator built from
fakes (``app.dependency_overrides[get_session] = ...``).

Start Handshake:
    - prepare_start() validates synchronously (409 when busy, 400 without
      references) and reserves the orchestrator, so /stop works before the
      background task reaches start()
    - run() is scheduled as a background task and clears the pending flag
    - after every run the summary JSON is written when PILOT_RESULTS_PATH is set
"""
import asyncio
import logging
from typing import Optional

from fastapi import HTTPException

from stylepilot.agents.evaluator_agent import LLMEvaluator
from stylepilot.agents.generator_agent import LLMGenerator
from stylepilot.agents.orchestrator import Orchestrator
from stylepilot.core.config import RESULTS_PATH
from stylepilot.core.errors import AlreadyRunningError, ConfigError, PilotError, ValidationError
from stylepilot.llm.client import LLMClient
from stylepilot.llm.router import LLMRouter
from stylepilot.models.processing_result import ProcessingResult
from stylepilot.models.run_config import RunConfig
from stylepilot.services.results_writer import ResultsWriter
from stylepilot.services.stylesheet_target import StylesheetFileTarget

logger = logging.getLogger(__name__)


class PilotSession:
    def __init__(
        self,
        orchestrator: Orchestrator,
        router: Optional[LLMRouter] = None,
        results_path: str = RESULTS_PATH,
    ) -> None:
        self.orchestrator = orchestrator
        self.router = router
        self.results_path = results_path
        self._pending = False

    @property
    def busy(self) -> bool:
        return self._pending or self.orchestrator.is_running

    def prepare_start(self) -> RunConfig:
        """Refuse synchronously, or reserve the session for one run."""
        if self.busy:
            raise AlreadyRunningError("A run is already active; stop it before starting another")
        config = self.orchestrator.reserve()
        self._pending = True
        return config

    async def run(self) -> Optional[ProcessingResult]:
        """Background task body: one full run, then the summary file."""
        if self.router is not None:
            self.router.reset()

        result = None
        try:
            result = await self.orchestrator.start()
        except PilotError as exc:
            logger.error("Run refused: %s", exc)
        finally:
            self._pending = False

        if result is not None and self.results_path:
            # Blocking file write runs in a worker thread
            await asyncio.to_thread(
                ResultsWriter.write_results,
                result,
                self.results_path,
                context=self.orchestrator.processing_context,
                logs=list(self.orchestrator.logs),
            )
        return result


def build_default_session() -> PilotSession:
    """LLM generator/evaluator sharing one client and router, file-backed target."""
    client = LLMClient()
    router = LLMRouter()
    target = StylesheetFileTarget()
    orchestrator = Orchestrator(
        collector=target,
        generator=LLMGenerator(client, router),
        applier=target,
        evaluator=LLMEvaluator(client, router),
    )
    logger.info("Pilot session ready (providers: %s)", ", ".join(router.provider_names) or "none")
    return PilotSession(orchestrator, router=router)


_session: Optional[PilotSession] = None


def get_session() -> PilotSession:
    global _session
    if _session is None:
        _session = build_default_session()
    return _session


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
def to_http_error(exc: PilotError) -> HTTPException:
    """ConfigError / ValidationError → 400, AlreadyRunningError → 409."""
    if isinstance(exc, AlreadyRunningError):
        status = 409
    elif isinstance(exc, (ConfigError, ValidationError)):
        status = 400
    else:
        status = 500
    return HTTPException(
        status_code=status,
        detail={"kind": exc.kind, "message": exc.message, "details": exc.details},
    )

"""
Orchestrator Agent
==================
The central state machine of the style pilot.
Drives the Collect → (Generate → Apply → Evaluate)* loop.

States:
    idle → setup → collecting-data → taking-screenshot →
    {generating-artifact → applying-artifact → evaluating}* → complete | aborted | error

Core Rules:
    - One run at a time; start() while running raises AlreadyRunningError
    - reserve() creates the run's token ahead of start(), so a stop that
      arrives before the run begins still aborts it
    - At most max_iterations generate+apply pairs, max_iterations-1 evaluations
    - The final iteration is never evaluated
    - The iteration loop is the only retry mechanism; a failed stage is never re-run
    - Evaluator parse failures are soft (not done + generic feedback)
    - Any other collaborator failure ends the run in "error", classified once
    - Cancellation is cooperative: checked immediately before and after every
      collaborator call; results of an in-flight call are discarded
    - Progress is non-decreasing within a run and exactly 100 at "complete"

Ownership:
    The orchestrator is the only writer of its ProcessingContext, RunLog and
    progress. RunConfig is frozen at start(); edits are rejected while running.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from stylepilot.agents.collaborators import Applier, Collector, Evaluator, Generator
from stylepilot.agents.evaluation_gate import resolve_verdict
from stylepilot.core.constants import (
    STATE_IDLE,
    STATE_SETUP,
    STATE_COMPLETE,
    STATE_ABORTED,
    STATE_ERROR,
    STAGE_COLLECTING_DATA,
    STAGE_TAKING_SCREENSHOT,
    STAGE_GENERATING,
    STAGE_APPLYING,
    STAGE_EVALUATING,
    PROCESSING_STAGES,
    TERMINAL_STATES,
)
from stylepilot.core.errors import (
    AlreadyRunningError,
    ApplicationError,
    CollectionError,
    ConfigError,
    GenerationError,
    ValidationError,
)
from stylepilot.llm.prompts import build_generation_prompt
from stylepilot.models.error_info import PilotErrorInfo
from stylepilot.models.evaluation_result import EvaluationResult
from stylepilot.models.log_entry import LogEntry
from stylepilot.models.processing_result import ProcessingResult
from stylepilot.models.progress_info import ProgressInfo
from stylepilot.models.reference_artifact import ReferenceArtifact
from stylepilot.models.run_config import RunConfig
from stylepilot.models.snapshot import Snapshot
from stylepilot.services.reference_artifacts import ReferenceArtifactManager
from stylepilot.services.run_log import RunLog
from stylepilot.state.cancellation import CancellationToken
from stylepilot.state.processing_context import ProcessingContext
from stylepilot.utils.error_classifier import CANCELLED, build_error_info, classify_error
from stylepilot.utils.progress import (
    calculate_progress,
    estimate_time_remaining,
    progress_message,
)

logger = logging.getLogger(__name__)

PromptBuilder = Callable[[RunConfig, Snapshot, int, Optional[str]], str]
ProgressListener = Callable[[ProgressInfo], None]


class Orchestrator:
    """
    Runs bounded refinement of a target stylesheet against reference images.

    Parameters
    ----------
    collector, generator, applier, evaluator
        Collaborators (see agents/collaborators.py).
    config : RunConfig or None
        Initial configuration; defaults to RunConfig().
    prompt_builder : callable
        (config, snapshot, iteration, feedback) -> prompt text.
    """

    def __init__(
        self,
        collector: Collector,
        generator: Generator,
        applier: Applier,
        evaluator: Evaluator,
        config: Optional[RunConfig] = None,
        prompt_builder: PromptBuilder = build_generation_prompt,
    ) -> None:
        self.collector = collector
        self.generator = generator
        self.applier = applier
        self.evaluator = evaluator
        self.prompt_builder = prompt_builder

        self._config = config or RunConfig()
        self._references = ReferenceArtifactManager()
        self._references.replace_all(self._config.reference_artifacts)

        self._log = RunLog()
        self._listeners: List[ProgressListener] = []

        self._state = STATE_IDLE
        self._running = False
        self._token: Optional[CancellationToken] = None
        self._reserved: Optional[CancellationToken] = None
        self._context: Optional[ProcessingContext] = None
        self._run_config: Optional[RunConfig] = None
        self._error: Optional[PilotErrorInfo] = None
        self._result: Optional[ProcessingResult] = None

        self._current_iteration = 0
        self._iterations_finished = 0
        self._high_water = 0.0
        self._progress = self._idle_progress()

    # -------------------------------------------------------------------
    # Read-only observers
    # -------------------------------------------------------------------
    @property
    def state(self) -> str:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def config(self) -> RunConfig:
        return self._config

    @property
    def reference_artifacts(self) -> Tuple[ReferenceArtifact, ...]:
        return self._references.items

    @property
    def progress(self) -> ProgressInfo:
        return self._progress

    @property
    def logs(self) -> Tuple[LogEntry, ...]:
        return self._log.entries

    @property
    def processing_context(self) -> Optional[ProcessingContext]:
        return self._context

    @property
    def error(self) -> Optional[PilotErrorInfo]:
        return self._error

    @property
    def result(self) -> Optional[ProcessingResult]:
        return self._result

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def remove_progress_listener(self, listener: ProgressListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -------------------------------------------------------------------
    # Configuration (idle only)
    # -------------------------------------------------------------------
    def _ensure_idle(self, action: str) -> None:
        if self._running or self._reserved is not None:
            raise AlreadyRunningError(f"Cannot {action} while a run is active; stop it first")

    def update_config(self, updates: Dict[str, Any]) -> RunConfig:
        """Merge ``updates`` into the configuration. Raises ConfigError on invalid values."""
        self._ensure_idle("update the configuration")
        try:
            new_config = self._config.with_updates(updates)
        except PydanticValidationError as exc:
            raise ConfigError(
                f"Invalid configuration: {exc.error_count()} error(s)",
                details={"errors": [e["msg"] for e in exc.errors()]},
            ) from exc
        self._config = new_config
        if "reference_artifacts" in updates:
            self._references.replace_all(new_config.reference_artifacts)
        return self._config

    def add_reference_artifact(self, name: str, data: bytes, mime_type: str) -> ReferenceArtifact:
        self._ensure_idle("add reference images")
        try:
            artifact = self._references.add(name, data, mime_type)
        except ValidationError as exc:
            self._log.error(f"Failed to add reference image: {exc.message}")
            raise
        self._sync_references()
        self._log.success(f"Added reference image: {name}")
        return artifact

    def remove_reference_artifact(self, artifact_id: str) -> Optional[ReferenceArtifact]:
        self._ensure_idle("remove reference images")
        removed = self._references.remove(artifact_id)
        if removed is None:
            self._log.info(f"Reference image {artifact_id} not found")
            return None
        self._sync_references()
        self._log.info(f"Removed reference image: {removed.name}")
        return removed

    def _sync_references(self) -> None:
        self._config = self._config.with_updates(
            {"reference_artifacts": list(self._references.items)}
        )

    # -------------------------------------------------------------------
    # Control surface
    # -------------------------------------------------------------------
    def check_can_start(self, config: Optional[RunConfig] = None) -> RunConfig:
        """Raise AlreadyRunningError / ConfigError if start() would be refused."""
        if self._running:
            raise AlreadyRunningError("A run is already active; stop it before starting another")
        run_config = config or self._config
        if not run_config.reference_artifacts:
            raise ConfigError("Please add at least one reference image")
        return run_config

    def record_refusal(self, exc: ConfigError) -> None:
        """Surface a refused start through error() and the run log."""
        self._error = build_error_info(exc)
        self._log.error(exc.message)

    def reserve(self) -> RunConfig:
        """
        Claim the orchestrator for the next start() without running it yet.

        Used when the run itself is scheduled for later (e.g. a background
        task). Edits are refused from here on, and stop() cancels the
        reserved run: start() then ends it "aborted" before any collaborator
        is called.

        Raises
        ------
        AlreadyRunningError
            A run is active or already reserved.
        ConfigError
            The current configuration cannot start (recorded like a refused start).
        """
        if self._reserved is not None:
            raise AlreadyRunningError("A run is already scheduled; stop it before starting another")
        try:
            run_config = self.check_can_start()
        except ConfigError as exc:
            self.record_refusal(exc)
            raise
        self._reserved = self._token = CancellationToken()
        return run_config

    async def start(self, config: Optional[RunConfig] = None) -> ProcessingResult:
        """
        Execute one complete refinement run.

        Returns the ProcessingResult once the run is complete, aborted or
        failed. Only refusal to start raises (ConfigError, AlreadyRunningError).
        """
        reserved, self._reserved = self._reserved, None
        try:
            run_config = self.check_can_start(config)
        except ConfigError as exc:
            self.record_refusal(exc)
            raise

        if config is not None:
            self._config = config
            self._references.replace_all(config.reference_artifacts)

        # --- Initialisation ---
        self._running = True
        self._run_config = run_config
        self._token = token = reserved or CancellationToken()
        self._context = context = ProcessingContext()
        self._error = None
        self._result = None
        self._current_iteration = 0
        self._iterations_finished = 0
        self._high_water = 0.0
        self._state = STATE_SETUP
        self._emit_progress(STATE_SETUP, 0.0)

        total = run_config.max_iterations
        self._info(f"Starting pilot mode processing (session {context.session_id})...")

        try:
            # ===========================================================
            # 1. Collect the initial state of the target
            # ===========================================================
            snapshot = await self._collect(token)
            context.last_snapshot = snapshot
            feedback: Optional[str] = None

            # ===========================================================
            # 2. Refinement loop
            # ===========================================================
            for iteration in range(1, total + 1):
                token.raise_if_cancelled()
                self._current_iteration = iteration
                self._info(f"Starting iteration {iteration}/{total}")

                artifact = await self._generate(run_config, context, snapshot, iteration, feedback, token)
                snapshot_after = await self._apply(artifact, token)
                context.update(iteration, artifact, snapshot_after)

                if iteration < total:
                    result = await self._evaluate(run_config, iteration, artifact, snapshot_after, token)
                    context.record_evaluation(result)
                    self._iterations_finished = iteration

                    if result.is_done:
                        self._success(f"Quality threshold met in {iteration} iteration(s)!")
                        break

                    feedback = result.feedback
                    self._info(f"Iteration {iteration} complete, improving...")
                else:
                    self._iterations_finished = iteration
                    self._info(f"Completed maximum iterations ({total})")

                snapshot = snapshot_after

            self._finish_complete(run_config, context)

        except asyncio.CancelledError:
            # The surrounding task was cancelled: record the abort, then let it propagate.
            self._finish_aborted(context)
            raise
        except Exception as exc:
            if classify_error(exc) == CANCELLED:
                self._finish_aborted(context)
            else:
                self._finish_error(exc, context)
        finally:
            self._running = False

        return self._result

    def stop(self) -> bool:
        """
        Request cancellation of the active run.

        Cooperative: the run stops at its next checkpoint and ends "aborted".
        A reserved run that has not started yet is aborted as soon as it does.
        Returns False when no run is active or reserved.
        """
        if not (self._running or self._reserved is not None) or self._token is None:
            self._log.info("No active run to stop")
            return False
        if not self._token.is_cancelled:
            self._token.cancel("stopped by user")
            self._info("Stop requested, finishing current stage...")
        return True

    def reset(self) -> None:
        """Clear context, logs, error and progress. Reference images and config are kept."""
        self._ensure_idle("reset the session")
        self._context = None
        self._run_config = None
        self._token = None
        self._error = None
        self._result = None
        self._current_iteration = 0
        self._iterations_finished = 0
        self._high_water = 0.0
        self._state = STATE_IDLE
        self._log.clear()
        self._progress = self._idle_progress()
        self._log.info("Session reset")

    # -------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------
    async def _collect(self, token: CancellationToken) -> Snapshot:
        token.raise_if_cancelled()
        self._enter_stage(STAGE_COLLECTING_DATA)
        self._info("Collecting page data...")

        snapshot = await self.collector.collect(token)
        token.raise_if_cancelled()
        if not isinstance(snapshot, Snapshot):
            raise CollectionError("Collector returned no snapshot")

        self._success("Page data collected successfully")
        self._leave_stage(STAGE_COLLECTING_DATA)

        # The visual capture is part of the collected snapshot; this stage
        # only accounts for it.
        self._enter_stage(STAGE_TAKING_SCREENSHOT)
        if snapshot.has_visual:
            self._info(f"Initial screenshot captured ({len(snapshot.visual)} bytes)")
        else:
            self._warning("No screenshot in collected snapshot; continuing with structure only")
        self._leave_stage(STAGE_TAKING_SCREENSHOT)
        return snapshot

    async def _generate(
        self,
        run_config: RunConfig,
        context: ProcessingContext,
        snapshot: Snapshot,
        iteration: int,
        feedback: Optional[str],
        token: CancellationToken,
    ) -> str:
        token.raise_if_cancelled()
        self._enter_stage(STAGE_GENERATING)
        self._info(f"Generating stylesheet (iteration {iteration})...")

        prompt = self.prompt_builder(run_config, snapshot, iteration, feedback)
        artifact = await self.generator.generate(
            prompt,
            snapshot,
            list(run_config.reference_artifacts),
            context.session_id,
            token,
        )
        token.raise_if_cancelled()
        if not artifact or not artifact.strip():
            raise GenerationError("No stylesheet generated")

        self._success(f"Stylesheet generated ({len(artifact)} characters)")
        self._leave_stage(STAGE_GENERATING)
        return artifact

    async def _apply(self, artifact: str, token: CancellationToken) -> Snapshot:
        token.raise_if_cancelled()
        self._enter_stage(STAGE_APPLYING)
        self._info("Applying stylesheet to page...")

        outcome = await self.applier.apply(artifact, token)
        token.raise_if_cancelled()
        if not outcome.success:
            raise ApplicationError(outcome.error or "Failed to apply stylesheet")
        if outcome.snapshot_after is None:
            raise ApplicationError("Applier reported success without a snapshot")

        self._success("Stylesheet applied successfully")
        self._leave_stage(STAGE_APPLYING)
        return outcome.snapshot_after

    async def _evaluate(
        self,
        run_config: RunConfig,
        iteration: int,
        artifact: str,
        snapshot_after: Snapshot,
        token: CancellationToken,
    ) -> EvaluationResult:
        token.raise_if_cancelled()
        self._enter_stage(STAGE_EVALUATING)
        self._info(f"Evaluating results (iteration {iteration})...")

        response = await self.evaluator.evaluate(
            list(run_config.reference_artifacts),
            snapshot_after,
            artifact,
            run_config.quality_threshold,
            token,
            intent_description=run_config.intent_description,
        )
        token.raise_if_cancelled()
        verdict = resolve_verdict(response, run_config.quality_threshold)

        if verdict.quality_score is not None:
            self._log_at(
                "success" if verdict.is_done else "warning",
                f"Quality score: {verdict.quality_score:.2f} "
                f"({'threshold met' if verdict.is_done else 'needs improvement'})",
            )
        elif verdict.is_done:
            self._success("Evaluation complete - quality threshold met!")
        else:
            self._warning("Evaluation gave no score; continuing with generic feedback")

        self._leave_stage(STAGE_EVALUATING)
        return EvaluationResult(
            iteration=iteration,
            is_done=verdict.is_done,
            feedback=verdict.feedback,
            quality_score=verdict.quality_score,
            improvements_suggested=verdict.improvements_suggested,
            timestamp=time.time() * 1000,
            artifact_applied=artifact,
            snapshot_after=snapshot_after,
        )

    # -------------------------------------------------------------------
    # Termination
    # -------------------------------------------------------------------
    def _base_result(self, status: str, context: ProcessingContext) -> Dict[str, Any]:
        history = context.feedback_history
        latest = history[-1] if history else None
        return {
            "session_id": context.session_id,
            "status": status,
            "final_quality_score": latest.quality_score if latest else None,
            "iterations_used": context.iteration,
            "evaluations_run": len(history),
            "processing_time_ms": context.elapsed_ms,
            "generated_artifact": context.last_artifact_text,
        }

    def _finish_complete(self, run_config: RunConfig, context: ProcessingContext) -> None:
        latest = context.latest_evaluation
        threshold_met = bool(latest and latest.is_done)
        if threshold_met:
            message = f"Quality threshold met after {context.iteration} iteration(s)"
        else:
            message = f"Completed {context.iteration} of {run_config.max_iterations} iteration(s)"

        self._state = STATE_COMPLETE
        self._emit_progress(STATE_COMPLETE, 1.0)
        self._success("Style transformation complete!")
        self._result = ProcessingResult(
            **self._base_result(STATE_COMPLETE, context),
            success=True,
            threshold_met=threshold_met,
            final_message=message,
        )
        logger.info("Pilot run %s complete: %s", context.session_id, message)

    def _finish_aborted(self, context: ProcessingContext) -> None:
        self._state = STATE_ABORTED
        self._emit_progress(STATE_ABORTED, 0.0)
        self._warning("Processing stopped by user")
        self._result = ProcessingResult(
            **self._base_result(STATE_ABORTED, context),
            final_message="Processing stopped by user",
        )

    def _finish_error(self, exc: Exception, context: ProcessingContext) -> None:
        failed_stage = self._progress.stage if self._progress.stage in PROCESSING_STAGES else None
        info = build_error_info(exc, failed_stage)
        self._error = info
        self._state = STATE_ERROR
        self._emit_progress(STATE_ERROR, 0.0)
        self._error_log(f"[{info.kind}] {info.message}", details=info.details)
        logger.error("Pilot run %s failed: %s", context.session_id, exc, exc_info=True)
        self._result = ProcessingResult(
            **self._base_result(STATE_ERROR, context),
            final_message=info.message,
            error=info,
        )

    # -------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------
    def _idle_progress(self) -> ProgressInfo:
        return ProgressInfo(
            stage=STATE_IDLE,
            message=progress_message(STATE_IDLE, 0),
            total_iterations=self._config.max_iterations,
        )

    def _enter_stage(self, stage: str) -> None:
        self._state = stage
        self._emit_progress(stage, 0.0)

    def _leave_stage(self, stage: str) -> None:
        self._emit_progress(stage, 1.0)

    def _emit_progress(self, stage: str, fraction: float) -> None:
        run_config = self._run_config or self._config
        total = run_config.max_iterations
        completed = max(0, self._current_iteration - 1)

        if stage in (STATE_ABORTED, STATE_ERROR):
            percent = self._high_water
        else:
            percent = max(self._high_water, calculate_progress(stage, completed, total, fraction))
        self._high_water = percent

        eta = None
        if self._context is not None and stage not in TERMINAL_STATES:
            eta = estimate_time_remaining(self._context.elapsed_ms, self._iterations_finished, total)

        self._progress = ProgressInfo(
            stage=stage,
            progress_percent=percent,
            message=progress_message(stage, self._current_iteration),
            iteration=self._current_iteration,
            total_iterations=total,
            eta_millis=eta,
        )
        for listener in list(self._listeners):
            try:
                listener(self._progress)
            except Exception:
                logger.exception("Progress listener failed")

    # -------------------------------------------------------------------
    # Logging helpers (tag entries with the current stage and iteration)
    # -------------------------------------------------------------------
    def _log_at(self, level: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        stage = self._progress.stage if self._progress.stage in PROCESSING_STAGES else None
        self._log.add(
            message,
            level,
            stage=stage,
            iteration=self._current_iteration or None,
            details=details,
        )

    def _info(self, message: str) -> None:
        self._log_at("info", message)

    def _success(self, message: str) -> None:
        self._log_at("success", message)

    def _warning(self, message: str) -> None:
        self._log_at("warning", message)

    def _error_log(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self._log_at("error", message, details)

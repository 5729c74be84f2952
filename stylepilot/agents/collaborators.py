"""
Collaborator Contracts
======================
Typed interfaces the orchestrator consumes. Implementations live elsewhere
(services/stylesheet_target.py, agents/generator_agent.py,
agents/evaluator_agent.py) or are supplied by the caller.

Every call receives the run's CancellationToken. Implementations may ignore
it; the orchestrator checks it before and after each call regardless.

    Collector.collect        → complete Snapshot, or raise CollectionError
    Generator.generate       → artifact text, or raise GenerationError
    Applier.apply            → ApplyResult (success=False means ApplicationError)
    Evaluator.evaluate       → EvaluationVerdict or raw evaluator text, given the
                               run's intent_description as a keyword;
                               raise EvaluationError only on transport failure
"""
from typing import Protocol, Sequence, Union, runtime_checkable

from stylepilot.models.apply_result import ApplyResult
from stylepilot.models.evaluation_result import EvaluationVerdict
from stylepilot.models.reference_artifact import ReferenceArtifact
from stylepilot.models.snapshot import Snapshot
from stylepilot.state.cancellation import CancellationToken


@runtime_checkable
class Collector(Protocol):
    async def collect(self, token: CancellationToken) -> Snapshot:
        ...


@runtime_checkable
class Generator(Protocol):
    async def generate(
        self,
        prompt: str,
        snapshot: Snapshot,
        reference_artifacts: Sequence[ReferenceArtifact],
        session_id: str,
        token: CancellationToken,
    ) -> str:
        ...


@runtime_checkable
class Applier(Protocol):
    async def apply(self, artifact_text: str, token: CancellationToken) -> ApplyResult:
        ...


@runtime_checkable
class Evaluator(Protocol):
    async def evaluate(
        self,
        reference_artifacts: Sequence[ReferenceArtifact],
        snapshot_after: Snapshot,
        artifact_text: str,
        threshold: float,
        token: CancellationToken,
        intent_description: str = "",
    ) -> Union[EvaluationVerdict, str]:
        ...

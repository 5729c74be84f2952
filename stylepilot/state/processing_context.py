"""
Processing Context
==================
The single mutable record of one refinement run.

Owned by exactly one Orchestrator; only the orchestrator writes to it.
feedback_history is append-only — records() exposes a tuple so readers
cannot mutate the audit trail.
"""
import time
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from stylepilot.core.constants import SESSION_ID_PREFIX
from stylepilot.models.evaluation_result import EvaluationResult
from stylepilot.models.snapshot import Snapshot


def generate_session_id(prefix: str = SESSION_ID_PREFIX) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class ProcessingContext:
    session_id: str = field(default_factory=generate_session_id)
    start_time: float = field(default_factory=time.time)   # epoch seconds
    iteration: int = 0
    last_artifact_text: str = ""
    last_snapshot: Optional[Snapshot] = None
    _feedback_history: List[EvaluationResult] = field(default_factory=list, repr=False)

    @property
    def feedback_history(self) -> Tuple[EvaluationResult, ...]:
        return tuple(self._feedback_history)

    @property
    def elapsed_ms(self) -> float:
        return (time.time() - self.start_time) * 1000

    def update(self, iteration: int, artifact_text: str, snapshot_after: Snapshot) -> None:
        """Record the outcome of a generate+apply pair."""
        if iteration < self.iteration:
            raise ValueError(f"iteration went backwards: {iteration} < {self.iteration}")
        self.iteration = iteration
        self.last_artifact_text = artifact_text
        self.last_snapshot = snapshot_after

    def record_evaluation(self, result: EvaluationResult) -> None:
        self._feedback_history.append(result)

    @property
    def latest_evaluation(self) -> Optional[EvaluationResult]:
        return self._feedback_history[-1] if self._feedback_history else None

    def to_dict(self) -> dict:
        """Serialisable view (visual bytes omitted)."""
        return {
            "session_id": self.session_id,
            "start_time": self.start_time,
            "iteration": self.iteration,
            "last_artifact_text": self.last_artifact_text,
            "has_snapshot": self.last_snapshot is not None,
            "feedback_history": [
                r.model_dump(exclude={"snapshot_after"}) for r in self._feedback_history
            ],
        }

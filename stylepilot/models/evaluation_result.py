"""
Evaluation Models
=================
EvaluationVerdict — what the evaluation gate decides for one evaluator response.
EvaluationResult  — the audit record appended to ProcessingContext.feedback_history.

EvaluationResult is frozen: once appended it is never edited or removed.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .snapshot import Snapshot


class EvaluationVerdict(BaseModel):
    is_done: bool = False
    feedback: Optional[str] = None
    quality_score: Optional[float] = None
    improvements_suggested: List[str] = []


class EvaluationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    iteration: int = Field(ge=1)
    is_done: bool
    feedback: Optional[str] = None
    quality_score: Optional[float] = None
    improvements_suggested: List[str] = []
    timestamp: float
    artifact_applied: str = ""
    snapshot_after: Optional[Snapshot] = None

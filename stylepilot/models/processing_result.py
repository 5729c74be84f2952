"""
Processing Result Model
Summary returned by Orchestrator.start() once a run reaches a terminal state.
"""
from typing import Optional
from pydantic import BaseModel

from .error_info import PilotErrorInfo


class ProcessingResult(BaseModel):
    session_id: str
    status: str                         # complete / aborted / error
    success: bool = False
    threshold_met: bool = False
    final_quality_score: Optional[float] = None
    iterations_used: int = 0
    evaluations_run: int = 0
    processing_time_ms: float = 0.0
    generated_artifact: str = ""
    final_message: str = ""
    error: Optional[PilotErrorInfo] = None

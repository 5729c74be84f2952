"""
Progress Info Model
Derived view recomputed on every stage transition; never stored as run state.
"""
from typing import Optional
from pydantic import BaseModel


class ProgressInfo(BaseModel):
    stage: str
    progress_percent: float = 0.0
    message: str = ""
    iteration: int = 0
    total_iterations: int = 0
    eta_millis: Optional[float] = None

"""
Apply Result Model
Outcome of one Applier call. success=False is promoted to ApplicationError by the orchestrator.
"""
from typing import Optional
from pydantic import BaseModel

from .snapshot import Snapshot


class ApplyResult(BaseModel):
    success: bool
    snapshot_after: Optional[Snapshot] = None
    applied_rules: int = 0
    error: str = ""

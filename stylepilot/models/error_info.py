"""
Pilot Error Info Model
======================
Structured, user-facing description of why a run ended in the error state.

Fields:
    kind         — classified error kind (GENERATION_ERROR, COLLECTION_ERROR, ...)
    message      — human-readable message from the originating failure
    details      — optional structured context
    recoverable  — True when restarting the run can succeed without code changes
    suggestions  — remediation hints keyed by kind
"""
from typing import Any, Dict, List
from pydantic import BaseModel


class PilotErrorInfo(BaseModel):
    kind: str
    message: str
    details: Dict[str, Any] = {}
    recoverable: bool = True
    suggestions: List[str] = []

"""
Log Entry Model
Pydantic model for one structured run log line shown to the caller.
"""
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: float                      # epoch milliseconds
    level: Literal["info", "warning", "error", "success"]
    message: str
    details: Optional[Dict[str, Any]] = None
    stage: Optional[str] = None
    iteration: Optional[int] = None

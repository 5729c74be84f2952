"""
Run Log
=======
Append-only structured log of one pilot session.

Every entry is also forwarded to the standard ``logging`` module so the
console/file handlers from utils/logging_config.py see the same timeline.
Single writer (the orchestrator), any number of readers.
"""
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from stylepilot.core.constants import (
    LEVEL_INFO,
    LEVEL_WARNING,
    LEVEL_ERROR,
    LEVEL_SUCCESS,
)
from stylepilot.models.log_entry import LogEntry

logger = logging.getLogger("stylepilot.run")

_STDLIB_LEVELS = {
    LEVEL_INFO: logging.INFO,
    LEVEL_SUCCESS: logging.INFO,
    LEVEL_WARNING: logging.WARNING,
    LEVEL_ERROR: logging.ERROR,
}


def format_log_message(entry: LogEntry, show_timestamp: bool = True) -> str:
    """One-line rendering: ``12:00:01 WARNING [evaluating] (2) message``."""
    parts = []
    if show_timestamp:
        parts.append(datetime.fromtimestamp(entry.timestamp / 1000).strftime("%H:%M:%S"))
    parts.append(entry.level.upper())
    if entry.stage:
        parts.append(f"[{entry.stage}]")
    if entry.iteration:
        parts.append(f"({entry.iteration})")
    parts.append(entry.message)
    return " ".join(parts)


class RunLog:
    def __init__(self) -> None:
        self._entries: List[LogEntry] = []

    def add(
        self,
        message: str,
        level: str = LEVEL_INFO,
        stage: Optional[str] = None,
        iteration: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> LogEntry:
        entry = LogEntry(
            id=f"log_{uuid.uuid4().hex[:12]}",
            timestamp=time.time() * 1000,
            level=level,
            message=message,
            details=details,
            stage=stage,
            iteration=iteration,
        )
        self._entries.append(entry)
        logger.log(_STDLIB_LEVELS.get(level, logging.INFO), format_log_message(entry, show_timestamp=False))
        return entry

    def info(self, message: str, **kwargs) -> LogEntry:
        return self.add(message, LEVEL_INFO, **kwargs)

    def success(self, message: str, **kwargs) -> LogEntry:
        return self.add(message, LEVEL_SUCCESS, **kwargs)

    def warning(self, message: str, **kwargs) -> LogEntry:
        return self.add(message, LEVEL_WARNING, **kwargs)

    def error(self, message: str, **kwargs) -> LogEntry:
        return self.add(message, LEVEL_ERROR, **kwargs)

    @property
    def entries(self) -> Tuple[LogEntry, ...]:
        return tuple(self._entries)

    def tail(self, limit: int) -> List[LogEntry]:
        """Last ``limit`` entries (display window for callers)."""
        if limit <= 0:
            return []
        return self._entries[-limit:]

    def clear(self) -> None:
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)

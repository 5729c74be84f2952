"""
GET /api/pilot/status | /logs | /context
Progress polling for clients monitoring the current pilot run.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from stylepilot.api.session import PilotSession, get_session
from stylepilot.services.run_log import format_log_message
from stylepilot.utils.progress import format_duration

router = APIRouter(prefix="/api/pilot")


@router.get("/status")
async def get_status(session: PilotSession = Depends(get_session)):
    orchestrator = session.orchestrator
    progress = orchestrator.progress
    error = orchestrator.error
    return {
        "state": orchestrator.state,
        "is_running": session.busy,
        "progress": progress.model_dump(),
        "eta": format_duration(progress.eta_millis) if progress.eta_millis is not None else None,
        "error": error.model_dump() if error else None,
        "reference_count": len(orchestrator.reference_artifacts),
        "providers": session.router.provider_health_state if session.router else {},
    }


@router.get("/logs")
async def get_logs(
    limit: Optional[int] = Query(default=None, ge=1),
    session: PilotSession = Depends(get_session),
):
    entries = list(session.orchestrator.logs)
    if limit is not None:
        entries = entries[-limit:]
    return {
        "total": len(session.orchestrator.logs),
        "entries": [
            {**entry.model_dump(), "formatted": format_log_message(entry)}
            for entry in entries
        ],
    }


@router.get("/context")
async def get_context(session: PilotSession = Depends(get_session)):
    context = session.orchestrator.processing_context
    if context is None:
        return {"context": None}
    return {"context": {**context.to_dict(), "elapsed_ms": context.elapsed_ms}}

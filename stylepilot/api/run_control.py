"""
POST /api/pilot/start | /stop | /reset
Run control for the style pilot. /start returns immediately; the run
continues as a background task and is observed through /status and /logs.
"""
from fastapi import APIRouter, BackgroundTasks, Depends

from stylepilot.api.session import PilotSession, get_session, to_http_error
from stylepilot.core.errors import AlreadyRunningError, PilotError

router = APIRouter(prefix="/api/pilot")


@router.post("/start", status_code=202)
async def start_run(background_tasks: BackgroundTasks, session: PilotSession = Depends(get_session)):
    try:
        config = session.prepare_start()
    except PilotError as exc:
        raise to_http_error(exc)

    background_tasks.add_task(session.run)
    return {
        "message": "Pilot run started",
        "max_iterations": config.max_iterations,
        "quality_threshold": config.quality_threshold,
        "reference_count": len(config.reference_artifacts),
    }


@router.post("/stop")
async def stop_run(session: PilotSession = Depends(get_session)):
    stopped = session.orchestrator.stop()
    return {"stopped": stopped, "state": session.orchestrator.state}


@router.post("/reset")
async def reset_session(session: PilotSession = Depends(get_session)):
    if session.busy:
        raise to_http_error(AlreadyRunningError("Cannot reset the session while a run is active; stop it first"))
    try:
        session.orchestrator.reset()
    except PilotError as exc:
        raise to_http_error(exc)
    return {"state": session.orchestrator.state}

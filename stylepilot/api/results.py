"""
GET /api/pilot/result
Returns the ProcessingResult of the last finished run, with the same
summary layout ResultsWriter writes to disk.
"""
from fastapi import APIRouter, Depends, HTTPException

from stylepilot.api.session import PilotSession, get_session
from stylepilot.services.results_writer import ResultsWriter

router = APIRouter(prefix="/api/pilot")


@router.get("/result")
async def get_result(session: PilotSession = Depends(get_session)):
    orchestrator = session.orchestrator
    if orchestrator.result is None:
        raise HTTPException(status_code=404, detail="No finished run yet")
    return ResultsWriter.build_summary(
        orchestrator.result,
        context=orchestrator.processing_context,
        logs=list(orchestrator.logs),
    )

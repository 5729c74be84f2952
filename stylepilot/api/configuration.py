"""
GET/PATCH /api/pilot/config
POST /api/pilot/references, DELETE /api/pilot/references/{artifact_id}
Run configuration and reference image management. Both are rejected with
409 while a run is active.
"""
import base64
import binascii
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from stylepilot.api.session import PilotSession, get_session, to_http_error
from stylepilot.core.errors import AlreadyRunningError, PilotError
from stylepilot.models.reference_artifact import ReferenceArtifact
from stylepilot.models.run_config import RunConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pilot")


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class ConfigUpdateRequest(BaseModel):
    # Range checks happen in RunConfig so violations come back as 400, not 422
    intent_description: Optional[str] = None
    max_iterations: Optional[Any] = None
    quality_threshold: Optional[Any] = None
    options: Optional[Dict[str, Any]] = None


class ReferenceUploadRequest(BaseModel):
    name: str
    mime_type: str
    data: str       # base64, with or without a data: URL prefix


def describe_reference(artifact: ReferenceArtifact) -> Dict[str, Any]:
    return {
        "id": artifact.id,
        "name": artifact.name,
        "size": artifact.size,
        "mime_type": artifact.mime_type,
    }


def describe_config(config: RunConfig) -> Dict[str, Any]:
    return {
        "intent_description": config.intent_description,
        "max_iterations": config.max_iterations,
        "quality_threshold": config.quality_threshold,
        "options": config.options.model_dump(),
        "reference_artifacts": [describe_reference(a) for a in config.reference_artifacts],
    }


def _ensure_idle(session: PilotSession) -> None:
    if session.busy:
        raise to_http_error(AlreadyRunningError("Cannot change the session while a run is active; stop it first"))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("/config")
async def get_config(session: PilotSession = Depends(get_session)):
    return describe_config(session.orchestrator.config)


@router.patch("/config")
async def update_config(request: ConfigUpdateRequest, session: PilotSession = Depends(get_session)):
    _ensure_idle(session)
    updates = request.model_dump(exclude_unset=True)
    try:
        config = session.orchestrator.update_config(updates)
    except PilotError as exc:
        raise to_http_error(exc)
    return describe_config(config)


@router.post("/references", status_code=201)
async def add_reference(request: ReferenceUploadRequest, session: PilotSession = Depends(get_session)):
    _ensure_idle(session)
    payload = request.data.partition("base64,")[2] if request.data.startswith("data:") else request.data
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(
            status_code=400,
            detail={"kind": "VALIDATION_ERROR", "message": "Reference data is not valid base64", "details": {}},
        )

    try:
        artifact = session.orchestrator.add_reference_artifact(request.name, data, request.mime_type)
    except PilotError as exc:
        raise to_http_error(exc)
    return describe_reference(artifact)


@router.delete("/references/{artifact_id}")
async def remove_reference(artifact_id: str, session: PilotSession = Depends(get_session)):
    _ensure_idle(session)
    removed = session.orchestrator.remove_reference_artifact(artifact_id)
    if removed is None:
        raise HTTPException(status_code=404, detail=f"Reference image {artifact_id} not found")
    return {"removed": describe_reference(removed)}

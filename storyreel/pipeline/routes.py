"""
FastAPI routes for the brief-to-video pipeline.

Script Endpoints:
  POST /scripts                   Generate script ideas from a creative brief

Pipeline Endpoints:
  POST /pipeline/run              Start video generation for a selected script
  GET  /pipeline/status/{id}      Get pipeline job status
  GET  /pipeline/{id}/video       Download the finished clip
"""

import uuid
import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from ..errors import ScriptGenerationFailed
from .models import (
    CreativeBrief,
    PipelineRunRequest,
    PipelineStage,
    PipelineStatusResponse,
    ScriptsResponse,
)
from .orchestrator import VideoGenerationService

logger = logging.getLogger(__name__)

NO_SCRIPTS_MESSAGE = "The AI couldn't generate any scripts. Try adjusting your inputs."

# Singleton service instance
_service = VideoGenerationService()


def get_service() -> VideoGenerationService:
    return _service


# ═════════════════════════════════════════════════════════════════════════════
# Scripts Router
# ═════════════════════════════════════════════════════════════════════════════

scripts_router = APIRouter(prefix="/scripts", tags=["scripts"])


@scripts_router.post("", response_model=ScriptsResponse)
async def create_scripts(
    brief: CreativeBrief,
    service: VideoGenerationService = Depends(get_service),
):
    """Generate script candidates. An empty list is returned with a hint, not an error."""
    try:
        scripts = await service.generate_scripts(brief)
    except ScriptGenerationFailed as e:
        raise HTTPException(status_code=502, detail=e.message)

    if not scripts:
        return ScriptsResponse(scripts=[], message=NO_SCRIPTS_MESSAGE)
    return ScriptsResponse(scripts=scripts)


# ═════════════════════════════════════════════════════════════════════════════
# Pipeline Router
# ═════════════════════════════════════════════════════════════════════════════

pipeline_router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@pipeline_router.post("/run", response_model=PipelineStatusResponse)
async def run_pipeline(
    request: PipelineRunRequest,
    service: VideoGenerationService = Depends(get_service),
):
    """Start the video pipeline for one script (async). Poll /pipeline/status for progress."""
    job_id = request.job_id or str(uuid.uuid4())

    try:
        return await service.run_pipeline_background(
            job_id=job_id,
            script=request.script,
            brief=request.brief,
        )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@pipeline_router.get("/status/{job_id}", response_model=PipelineStatusResponse)
async def get_pipeline_status(
    job_id: str,
    service: VideoGenerationService = Depends(get_service),
):
    """Get the current status of a pipeline job."""
    status = service.get_status(job_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return status


@pipeline_router.get("/{job_id}/video")
async def get_pipeline_video(
    job_id: str,
    service: VideoGenerationService = Depends(get_service),
):
    """Return the downloaded clip once the job is COMPLETE."""
    status = service.get_status(job_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Job not found")

    result = service.get_result(job_id)
    if status.status is not PipelineStage.COMPLETE or result is None:
        raise HTTPException(status_code=409, detail=f"Video not ready (status={status.status.value})")

    return Response(content=result.video_bytes, media_type=result.video_mime_type)

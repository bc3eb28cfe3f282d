"""
Pipeline orchestrator: selected script → keyframe → Veo video → download.

Chains the stages for one script, with one fork decided up front:
  Edit path (brief has inspiration images):
    1. Prompt Derivation (video + keyframe edit prompts)
    2. Keyframe Edit (first inspiration image)
  Synthesis path (no inspiration images):
    1. Keyframe Synthesis (image prompt → Imagen)
    2. Prompt Derivation (video prompt only)
  Then, on both paths:
    3. Video Synthesis (Veo, long-running operation)
    4. Download
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from .. import config, gemini, metrics
from ..errors import PipelineFailed
from .animate import download_video, synthesize_video
from .keyframe import edit_keyframe, select_base_image, synthesize_keyframe
from .models import (
    CreativeBrief,
    KeyframePath,
    PipelineResult,
    PipelineStage,
    PipelineStatusResponse,
    ProgressEvent,
    ScriptCandidate,
)
from .prompts import derive_prompts
from .scripts import generate_scripts

logger = logging.getLogger(__name__)

ProgressSink = Callable[[ProgressEvent], None]

# FAILED is reachable from every non-terminal stage and is not listed here.
TRANSITIONS: dict[PipelineStage, set[PipelineStage]] = {
    PipelineStage.IDLE: {PipelineStage.DERIVING_PROMPTS, PipelineStage.SYNTHESIZING_KEYFRAME},
    PipelineStage.DERIVING_PROMPTS: {PipelineStage.SYNTHESIZING_KEYFRAME, PipelineStage.SYNTHESIZING_VIDEO},
    PipelineStage.SYNTHESIZING_KEYFRAME: {PipelineStage.DERIVING_PROMPTS, PipelineStage.SYNTHESIZING_VIDEO},
    PipelineStage.SYNTHESIZING_VIDEO: {PipelineStage.DOWNLOADING},
    PipelineStage.DOWNLOADING: {PipelineStage.COMPLETE},
    PipelineStage.COMPLETE: set(),
    PipelineStage.FAILED: set(),
}

TERMINAL_STAGES = {PipelineStage.COMPLETE, PipelineStage.FAILED}

# Progress shown after the Nth stage-reached event.
STEP_PROGRESS = (10, 30, 50, 90)

COMPLETE_MESSAGE = "Pipeline complete!"


class PipelineRun:
    """
    State machine for a single run. Owns its progress sink; nothing is
    shared between runs.
    """

    def __init__(self, path: KeyframePath, on_progress: Optional[ProgressSink] = None, job_id: str = ""):
        self.path = path
        self.job_id = job_id
        self.stage = PipelineStage.IDLE
        self.events: list[ProgressEvent] = []
        self._on_progress = on_progress
        self._stage_started = time.monotonic()

    def advance(self, stage: PipelineStage, message: str):
        allowed = TRANSITIONS[self.stage] | ({PipelineStage.FAILED} if self.stage not in TERMINAL_STAGES else set())
        if stage not in allowed:
            raise RuntimeError(f"Illegal pipeline transition {self.stage.value} → {stage.value}")

        now = time.monotonic()
        if self.stage is not PipelineStage.IDLE:
            metrics.record_latency(self.stage.value, (now - self._stage_started) * 1000)
        self._stage_started = now

        self.stage = stage
        event = ProgressEvent(stage=stage, message=message, path=self.path)
        self.events.append(event)
        logger.info(f"[{self.job_id}] {self.path.value} {stage.value} → {message}")
        if self._on_progress:
            self._on_progress(event)

    def fail(self):
        if self.stage not in TERMINAL_STAGES:
            self.advance(PipelineStage.FAILED, PipelineFailed().message)


async def run_pipeline(
    script: ScriptCandidate,
    brief: CreativeBrief,
    on_progress: Optional[ProgressSink] = None,
    *,
    client: Optional["gemini.GeminiClient"] = None,
    job_id: str = "",
) -> PipelineResult:
    """
    Generate the final video for one selected script.

    Args:
        script:      The script the user picked.
        brief:       The brief the script came from.
        on_progress: Receives one ProgressEvent per stage reached, in order.

    Raises:
        PipelineFailed: for any failure at any stage. The specific cause is
            logged here and not passed on; no partial result is returned.
    """
    path = KeyframePath.EDIT if brief.inspiration_images else KeyframePath.SYNTHESIZE
    run = PipelineRun(path, on_progress, job_id=job_id)
    metrics.inc_counter("requests.pipeline")
    metrics.inc_counter(f"pipeline.path.{path.value.lower()}")

    try:
        client = client or gemini.GeminiClient()

        if path is KeyframePath.EDIT:
            base_image = select_base_image(brief)

            run.advance(PipelineStage.DERIVING_PROMPTS, "Developing creative prompts for AI models...")
            prompts = await derive_prompts(script, True, client=client)

            run.advance(PipelineStage.SYNTHESIZING_KEYFRAME, "Editing inspiration image to create a keyframe...")
            keyframe = await edit_keyframe(base_image, prompts.keyframe_edit_prompt, client=client)
        else:
            run.advance(PipelineStage.SYNTHESIZING_KEYFRAME, "Generating a keyframe image from your script...")
            keyframe = await synthesize_keyframe(script, brief.aspect_ratio, client=client)

            run.advance(PipelineStage.DERIVING_PROMPTS, "Developing a video prompt from your script...")
            prompts = await derive_prompts(script, False, client=client)

        run.advance(
            PipelineStage.SYNTHESIZING_VIDEO,
            "Generating video with Veo 2.0 (this may take several minutes)...",
        )
        video_uri = await synthesize_video(prompts.video_prompt, keyframe, client=client)

        run.advance(PipelineStage.DOWNLOADING, "Downloading generated video...")
        video_bytes, video_mime_type = await download_video(video_uri, client=client)

        result = PipelineResult(
            video_uri=video_uri,
            video_bytes=video_bytes,
            video_mime_type=video_mime_type,
            keyframe=keyframe,
            keyframe_url=keyframe.data_url,
            script=script,
        )
        run.advance(PipelineStage.COMPLETE, COMPLETE_MESSAGE)

    except Exception as e:
        kind = getattr(e, "kind", None)
        logger.error(
            f"[{job_id}] Error in video generation pipeline at {run.stage.value}: {e}",
            exc_info=True,
        )
        metrics.inc_counter(f"errors.{kind.value if kind else 'UNEXPECTED'}")
        metrics.record_error(run.stage.value, type(e).__name__, str(e), job_id)
        run.fail()
        raise PipelineFailed() from None

    metrics.inc_counter("pipeline.completed")
    return result


class VideoGenerationService:
    """
    Runs pipelines in the background for the HTTP layer and keeps their
    status and results in memory. Only the newest JOB_HISTORY_LIMIT finished
    jobs are kept; one run per job id may be in flight at a time.

    Usage:
        service = VideoGenerationService()

        # Once per brief
        scripts = await service.generate_scripts(brief)

        # Once per selected script
        await service.run_pipeline_background(job_id, scripts[0], brief)
        status = service.get_status(job_id)
    """

    def __init__(self, client: Optional["gemini.GeminiClient"] = None):
        self._client = client
        self._jobs: dict[str, PipelineStatusResponse] = {}
        self._results: dict[str, PipelineResult] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def get_status(self, job_id: str) -> Optional[PipelineStatusResponse]:
        return self._jobs.get(job_id)

    def get_result(self, job_id: str) -> Optional[PipelineResult]:
        return self._results.get(job_id)

    def is_running(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    async def generate_scripts(self, brief: CreativeBrief) -> list[ScriptCandidate]:
        return await generate_scripts(brief, client=self._client)

    def _on_progress(self, job_id: str) -> ProgressSink:
        def sink(event: ProgressEvent):
            status = self._jobs[job_id]
            messages = status.messages + [event.message]
            if event.stage is PipelineStage.COMPLETE:
                progress = 100
            elif event.stage is PipelineStage.FAILED:
                progress = status.progress_pct
            else:
                progress = STEP_PROGRESS[min(len(messages), len(STEP_PROGRESS)) - 1]
            self._jobs[job_id] = status.model_copy(update={
                "status": event.stage,
                "path": event.path,
                "current_step": event.message,
                "progress_pct": progress,
                "messages": messages,
            })
        return sink

    async def run_pipeline(
        self,
        job_id: str,
        script: ScriptCandidate,
        brief: CreativeBrief,
    ) -> PipelineStatusResponse:
        """Run one pipeline to completion and record the outcome. Never raises PipelineFailed."""
        if job_id not in self._jobs:
            self._jobs[job_id] = PipelineStatusResponse(job_id=job_id, status=PipelineStage.IDLE)

        try:
            result = await run_pipeline(
                script, brief, self._on_progress(job_id), client=self._client, job_id=job_id
            )
        except PipelineFailed as e:
            status = self._jobs[job_id].model_copy(update={
                "status": PipelineStage.FAILED,
                "error": e.message,
            })
        else:
            self._results[job_id] = result
            status = self._jobs[job_id].model_copy(update={
                "keyframe_url": result.keyframe_url,
                "video_uri": result.video_uri,
            })

        self._jobs[job_id] = status
        self._evict_finished(keep=job_id)
        return status

    def _evict_finished(self, keep: str):
        """Drop the oldest finished jobs (and their clips) beyond JOB_HISTORY_LIMIT."""
        for job_id in list(self._jobs):
            if len(self._jobs) <= config.JOB_HISTORY_LIMIT:
                break
            finished = self._jobs[job_id].status in TERMINAL_STAGES
            if job_id == keep or not finished or self.is_running(job_id):
                continue
            self._jobs.pop(job_id, None)
            self._results.pop(job_id, None)
            logger.info(f"[{job_id}] Evicted from job history")

    async def run_pipeline_background(
        self,
        job_id: str,
        script: ScriptCandidate,
        brief: CreativeBrief,
    ) -> PipelineStatusResponse:
        """Fire-and-forget wrapper for run_pipeline. One run per job id at a time."""
        if self.is_running(job_id):
            raise ValueError(f"Job {job_id} is already running")

        # Re-inserting moves a re-run to the newest end of the history
        self._results.pop(job_id, None)
        self._jobs.pop(job_id, None)
        self._jobs[job_id] = PipelineStatusResponse(job_id=job_id, status=PipelineStage.IDLE)
        task = asyncio.create_task(self.run_pipeline(job_id, script, brief))
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._forget_task(job_id, t))
        return self._jobs[job_id]

    def _forget_task(self, job_id: str, task: asyncio.Task):
        # A re-run may already have replaced this task under the same job id
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]

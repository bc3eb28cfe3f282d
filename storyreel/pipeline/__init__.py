"""
Brief-to-Video Pipeline

  Scripts  : Creative brief → script candidates (Gemini 2.5 Flash)
  Pipeline : Selected script → Prompts → Keyframe (edit or synthesize) → Veo video → Download
"""

from .orchestrator import VideoGenerationService, run_pipeline
from .routes import pipeline_router, scripts_router
from .models import KeyframePath, PipelineStage

__all__ = [
    "VideoGenerationService",
    "run_pipeline",
    "pipeline_router",
    "scripts_router",
    "KeyframePath",
    "PipelineStage",
]

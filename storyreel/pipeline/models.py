"""
Pydantic models and enums for the brief-to-video pipeline.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Creative Brief ───────────────────────────────────────────────────────────

class InspirationFile(BaseModel):
    """A user-supplied image / video / audio file, already base64-encoded."""
    model_config = ConfigDict(frozen=True)

    data: str = Field(..., description="Base64-encoded file bytes", repr=False)
    mime_type: str
    name: str
    description: str = ""


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    VERTICAL = "3:4"
    CLASSIC = "4:3"
    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"


ASPECT_RATIO_LIST = [a.value for a in AspectRatio]
DEFAULT_ASPECT_RATIO = AspectRatio.LANDSCAPE.value


class CreativeBrief(BaseModel):
    """Everything the user told us about the video they want. Immutable once submitted."""
    model_config = ConfigDict(frozen=True)

    idea: str = Field(..., min_length=1)
    inspiration_images: list[InspirationFile] = Field(default_factory=list)
    inspiration_videos: list[InspirationFile] = Field(default_factory=list)
    inspiration_audio: Optional[InspirationFile] = None
    duration: str = "15"  # seconds, whole number as text
    mood: str = "Cinematic"
    # Free text: unsupported ratios are coerced at keyframe synthesis, not rejected here
    aspect_ratio: str = "9:16"
    audience: str = "General audience on social media"

    @field_validator("idea")
    @classmethod
    def validate_idea(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("idea must not be blank")
        return v

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        v = v.strip()
        if not v.isdigit() or int(v) <= 0:
            raise ValueError("duration must be a positive whole number of seconds")
        return v


# ── Scripts & Prompts ────────────────────────────────────────────────────────

class ScriptCandidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = Field(..., min_length=1)
    logline: str = Field(..., min_length=1)
    full_script: str = Field(..., min_length=1, alias="fullScript")


class SynthesisPrompts(BaseModel):
    video_prompt: str = Field(..., min_length=1)
    keyframe_edit_prompt: Optional[str] = None


# ── Assets ───────────────────────────────────────────────────────────────────

class Keyframe(BaseModel):
    data: str = Field(..., repr=False)  # base64
    mime_type: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class VideoOperation(BaseModel):
    """Handle for a long-running video job. Replaced, never mutated, by each poll."""
    name: str
    done: bool = False
    video_uri: Optional[str] = None
    error_message: Optional[str] = None


class PipelineResult(BaseModel):
    video_uri: str
    video_bytes: bytes = Field(..., exclude=True, repr=False)
    video_mime_type: str = "video/mp4"
    keyframe: Keyframe = Field(..., exclude=True)
    keyframe_url: str = Field(..., repr=False)
    script: ScriptCandidate


# ── Pipeline State ───────────────────────────────────────────────────────────

class PipelineStage(str, Enum):
    IDLE = "IDLE"
    DERIVING_PROMPTS = "DERIVING_PROMPTS"
    SYNTHESIZING_KEYFRAME = "SYNTHESIZING_KEYFRAME"
    SYNTHESIZING_VIDEO = "SYNTHESIZING_VIDEO"
    DOWNLOADING = "DOWNLOADING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class KeyframePath(str, Enum):
    EDIT = "EDIT"              # edit the first inspiration image
    SYNTHESIZE = "SYNTHESIZE"  # generate a keyframe from the script


class ProgressEvent(BaseModel):
    stage: PipelineStage
    message: str
    path: Optional[KeyframePath] = None


# ── API Request / Response Models ────────────────────────────────────────────

class ScriptsResponse(BaseModel):
    scripts: list[ScriptCandidate]
    message: Optional[str] = None


class PipelineRunRequest(BaseModel):
    """Generate the final video for one selected script."""
    job_id: Optional[str] = None
    script: ScriptCandidate
    brief: CreativeBrief


class PipelineStatusResponse(BaseModel):
    job_id: str
    status: PipelineStage
    path: Optional[KeyframePath] = None
    current_step: str = ""
    progress_pct: int = 0
    messages: list[str] = Field(default_factory=list)
    keyframe_url: Optional[str] = None
    video_uri: Optional[str] = None
    error: Optional[str] = None

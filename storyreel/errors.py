"""
Error handling.

Every stage raises a narrowly-scoped exception tagged with a FailureKind.
The orchestrator catches them at its single boundary and re-raises
PipelineFailed, so callers only ever see one generic pipeline error.
"""

from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    SCHEMA_OR_PARSE = "SCHEMA_OR_PARSE"  # malformed / unexpected model response
    MISSING_ASSET = "MISSING_ASSET"      # model claimed success but returned nothing usable
    TRANSPORT = "TRANSPORT"              # network or download error


class PipelineError(Exception):
    """Base exception for all generation errors."""

    kind: Optional[FailureKind] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        kind: Optional[FailureKind] = None,
    ):
        """
        Args:
            message: Human-readable error message
            code: Optional short code for categorization
            kind: Failure taxonomy tag; defaults to the class-level kind
        """
        self.message = message
        self.code = code
        if kind is not None:
            self.kind = kind
        super().__init__(self.message)


class ConfigError(PipelineError):
    """Missing or invalid configuration (e.g. no API key)."""
    pass


# ── Transport / parse ────────────────────────────────────────────────────────

class TransportError(PipelineError):
    """Gemini API returned a non-success status or the request never completed."""

    kind = FailureKind.TRANSPORT

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message, code)


class ResponseParseError(PipelineError):
    """Model response was not the JSON shape that was requested."""

    kind = FailureKind.SCHEMA_OR_PARSE


class PollTimeout(PipelineError):
    """A bounded poll ran out of attempts before the operation completed."""

    kind = FailureKind.TRANSPORT


# ── Stage errors ─────────────────────────────────────────────────────────────

class ScriptGenerationFailed(PipelineError):
    kind = FailureKind.SCHEMA_OR_PARSE

    def __init__(self, message: str = "Failed to generate scripts from the idea."):
        super().__init__(message, code="script_generation_failed")


class MissingEditPrompt(PipelineError):
    kind = FailureKind.MISSING_ASSET

    def __init__(self, message: str = "Failed to generate a keyframe editing prompt."):
        super().__init__(message, code="missing_edit_prompt")


class KeyframeEditFailed(PipelineError):
    kind = FailureKind.MISSING_ASSET

    def __init__(self, message: str = "Image editing model did not return an image."):
        super().__init__(message, code="keyframe_edit_failed")


class KeyframeSynthesisFailed(PipelineError):
    kind = FailureKind.MISSING_ASSET

    def __init__(self, message: str = "Image generation model did not return an image."):
        super().__init__(message, code="keyframe_synthesis_failed")


class VideoLinkMissing(PipelineError):
    kind = FailureKind.MISSING_ASSET

    def __init__(self, message: str = "Video generation did not produce a download link."):
        super().__init__(message, code="video_link_missing")


class VideoDownloadFailed(PipelineError):
    kind = FailureKind.TRANSPORT

    def __init__(self, message: str = "Failed to download video."):
        super().__init__(message, code="video_download_failed")


class PipelineFailed(PipelineError):
    """The only error a pipeline caller sees; the specific cause is logged, not attached."""

    def __init__(self, message: str = "Failed to generate the final video."):
        super().__init__(message, code="pipeline_failed")


__all__ = [
    "FailureKind",
    "PipelineError",
    "ConfigError",
    "TransportError",
    "ResponseParseError",
    "PollTimeout",
    "ScriptGenerationFailed",
    "MissingEditPrompt",
    "KeyframeEditFailed",
    "KeyframeSynthesisFailed",
    "VideoLinkMissing",
    "VideoDownloadFailed",
    "PipelineFailed",
]

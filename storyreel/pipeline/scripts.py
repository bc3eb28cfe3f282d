"""
Script ideas: Gemini 2.5 Flash with a strict JSON schema.

Turns a CreativeBrief into a handful of ScriptCandidates. Runs once per
brief, independently of the video pipeline.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from .. import config, gemini
from ..errors import PipelineError, ScriptGenerationFailed
from .models import CreativeBrief, ScriptCandidate

logger = logging.getLogger(__name__)

NO_INSPIRATION_TEXT = "No specific visual or video inspiration provided."

SCRIPTS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "scripts": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "logline": {"type": "STRING"},
                    "fullScript": {"type": "STRING"},
                },
                "required": ["title", "logline", "fullScript"],
            },
        },
    },
    "required": ["scripts"],
}


def inspiration_summary(brief: CreativeBrief) -> str:
    """One line per inspiration image/video; undescribed items still appear by name."""
    lines = [f'- Image "{img.name}": {img.description}' for img in brief.inspiration_images]
    lines += [f'- Video "{vid.name}": {vid.description}' for vid in brief.inspiration_videos]
    return "\n".join(lines)


def build_brief_prompt(brief: CreativeBrief, count: int) -> str:
    inspiration_text = inspiration_summary(brief) or NO_INSPIRATION_TEXT

    # Only the audio file name is passed along; its bytes never reach the text model.
    audio_line = ""
    if brief.inspiration_audio:
        audio_line = (
            f'- The user provided an audio track named "{brief.inspiration_audio.name}" '
            f"to set the tone."
        )

    return f"""You are a creative assistant for a storyteller. Based on the following detailed creative brief, generate {count} distinct script ideas for a short video.

--- Creative Brief ---
Core Idea: "{brief.idea}"

Fine-Tuning Details:
- Desired Mood & Style: {brief.mood}
- Target Audience: {brief.audience}
- Aspect Ratio: {brief.aspect_ratio}
- Desired Duration: Approximately {brief.duration} seconds

User-Provided Inspirations:
{inspiration_text}
{audio_line}
---

For each of the {count} ideas, provide:
1. A catchy Title.
2. A concise Logline (1-2 sentences).
3. A Full Script with scene descriptions and actions, tailored to the specified duration and aspect ratio.
"""


async def generate_scripts(
    brief: CreativeBrief,
    *,
    client: Optional["gemini.GeminiClient"] = None,
    count: Optional[int] = None,
) -> list[ScriptCandidate]:
    """
    Ask the text model for script candidates.

    Returns:
        Zero or more ScriptCandidates. An empty list is a valid result, not an error.

    Raises:
        ScriptGenerationFailed: on any transport, parse or shape failure.
    """
    client = client or gemini.GeminiClient()
    count = config.SCRIPT_COUNT if count is None else count
    prompt = build_brief_prompt(brief, count)

    logger.info(f"Generating {count} script ideas for idea={brief.idea[:60]!r}")
    try:
        data = await client.generate_json(config.TEXT_MODEL, prompt, SCRIPTS_SCHEMA)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        scripts = [ScriptCandidate.model_validate(item) for item in data.get("scripts") or []]
    except (PipelineError, ValidationError, ValueError, TypeError, AttributeError) as e:
        logger.error(f"Error generating scripts: {e}", exc_info=True)
        raise ScriptGenerationFailed() from e

    logger.info(f"Received {len(scripts)} script candidate(s)")
    return scripts

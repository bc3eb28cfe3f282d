"""
Prompt derivation: Gemini 2.5 Flash.

For one selected script, asks for a Veo video prompt and, only on the edit
branch, a prompt for the image-editing model.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from .. import config, gemini
from ..errors import MissingEditPrompt, ResponseParseError
from .models import ScriptCandidate, SynthesisPrompts

logger = logging.getLogger(__name__)

EDIT_PROMPT_INSTRUCTION = (
    "2. A short, creative prompt for an image editing AI to modify a base image to become "
    "a representative keyframe for the video. This prompt should describe what to add or "
    "change to capture the video's essence."
)


def prompts_schema(needs_edit_prompt: bool) -> dict:
    """The edit-prompt field only exists in the schema when it is going to be used."""
    properties = {
        "videoPrompt": {"type": "STRING", "description": "Prompt for Veo video generation."},
    }
    required = ["videoPrompt"]
    if needs_edit_prompt:
        properties["keyframeEditPrompt"] = {
            "type": "STRING",
            "description": "Prompt for the image editing model.",
        }
        required.append("keyframeEditPrompt")
    return {"type": "OBJECT", "properties": properties, "required": required}


def build_prompts_request(script: ScriptCandidate, needs_edit_prompt: bool) -> str:
    return f"""Based on the following script, create one or two things:
1. A concise, descriptive prompt for a video generation AI (Veo) to create a single, cohesive video that tells the story of the script. This prompt should describe the visual style, pacing, key actions, and overall mood.
{EDIT_PROMPT_INSTRUCTION if needs_edit_prompt else ""}

Script Title: "{script.title}"
Script Logline: "{script.logline}"
Full Script: "{script.full_script}"
"""


async def derive_prompts(
    script: ScriptCandidate,
    needs_edit_prompt: bool,
    *,
    client: Optional["gemini.GeminiClient"] = None,
) -> SynthesisPrompts:
    """
    Raises:
        ResponseParseError: the response was not the requested shape.
        MissingEditPrompt: ``needs_edit_prompt`` is set but no edit prompt came back.
    """
    client = client or gemini.GeminiClient()

    data = await client.generate_json(
        config.TEXT_MODEL,
        build_prompts_request(script, needs_edit_prompt),
        prompts_schema(needs_edit_prompt),
    )
    if not isinstance(data, dict):
        raise ResponseParseError(f"Prompt response is not a JSON object: {str(data)[:200]}")

    try:
        prompts = SynthesisPrompts(
            video_prompt=data["videoPrompt"],
            keyframe_edit_prompt=data.get("keyframeEditPrompt") if needs_edit_prompt else None,
        )
    except (KeyError, ValidationError) as e:
        raise ResponseParseError(f"Prompt response missing videoPrompt: {str(data)[:200]}") from e

    if needs_edit_prompt and not (prompts.keyframe_edit_prompt or "").strip():
        raise MissingEditPrompt()

    logger.info(f"Video prompt: {prompts.video_prompt[:80]}...")
    if prompts.keyframe_edit_prompt:
        logger.info(f"Keyframe edit prompt: {prompts.keyframe_edit_prompt[:80]}...")
    return prompts

"""
Keyframe: the single still the video is conditioned on.

Two mutually exclusive paths:
  - Edit:       first inspiration image + edit prompt → Gemini 2.5 Flash Image
  - Synthesize: script → image prompt (Gemini 2.5 Flash) → Imagen 4.0, PNG

When several inspiration images are supplied, the first one wins.
"""

import logging
from typing import Optional

from .. import config, gemini
from ..errors import KeyframeEditFailed, KeyframeSynthesisFailed
from .models import (
    ASPECT_RATIO_LIST,
    DEFAULT_ASPECT_RATIO,
    CreativeBrief,
    InspirationFile,
    Keyframe,
    ScriptCandidate,
)

logger = logging.getLogger(__name__)

SYNTHESIS_MIME_TYPE = "image/png"


def select_base_image(brief: CreativeBrief) -> Optional[InspirationFile]:
    """First supplied inspiration image, or None to take the synthesis path."""
    return brief.inspiration_images[0] if brief.inspiration_images else None


def validate_aspect_ratio(aspect_ratio: str) -> str:
    """Unsupported ratios fall back to 16:9; they are never rejected."""
    if aspect_ratio in ASPECT_RATIO_LIST:
        return aspect_ratio
    logger.warning(f"Unsupported aspect ratio {aspect_ratio!r}, using {DEFAULT_ASPECT_RATIO}")
    return DEFAULT_ASPECT_RATIO


# ── Edit path ────────────────────────────────────────────────────────────────

async def edit_keyframe(
    base_image: InspirationFile,
    edit_prompt: str,
    *,
    client: Optional["gemini.GeminiClient"] = None,
) -> Keyframe:
    """
    Edit the inspiration image into a keyframe. The result keeps the
    inspiration image's media type.
    """
    client = client or gemini.GeminiClient()

    logger.info(f"Editing inspiration image {base_image.name!r}: {edit_prompt[:60]}...")
    parts = await client.edit_image(
        config.IMAGE_EDIT_MODEL,
        base_image.data,
        base_image.mime_type,
        edit_prompt,
    )

    for part in parts:
        inline = part.get("inlineData")
        if inline and inline.get("data"):
            logger.info(f"Keyframe edited from {base_image.name!r}")
            return Keyframe(data=inline["data"], mime_type=base_image.mime_type)

    raise KeyframeEditFailed()


# ── Synthesis path ───────────────────────────────────────────────────────────

def build_image_prompt_request(script: ScriptCandidate, aspect_ratio: str) -> str:
    return f"""Based on the following script, create a single, concise, and highly descriptive prompt for an image generation AI to create a beautiful and representative keyframe image. The prompt should capture the core visual essence, style, and mood of the story. The aspect ratio should be {aspect_ratio}.

Script Title: "{script.title}"
Script Logline: "{script.logline}"
Full Script: "{script.full_script}"

The final output should be just the prompt text, nothing else."""


async def synthesize_keyframe(
    script: ScriptCandidate,
    aspect_ratio: str,
    *,
    client: Optional["gemini.GeminiClient"] = None,
) -> Keyframe:
    """Generate a fresh PNG keyframe from the script alone."""
    client = client or gemini.GeminiClient()

    # Free text, not schema-constrained: the whole trimmed response is the prompt.
    image_prompt = (
        await client.generate_text(config.TEXT_MODEL, build_image_prompt_request(script, aspect_ratio))
    ).strip()
    logger.info(f"Keyframe image prompt: {image_prompt[:80]}...")

    images = await client.generate_images(
        config.IMAGE_MODEL,
        image_prompt,
        number_of_images=1,
        output_mime_type=SYNTHESIS_MIME_TYPE,
        aspect_ratio=validate_aspect_ratio(aspect_ratio),
    )
    if not images:
        raise KeyframeSynthesisFailed()

    logger.info("Keyframe synthesized from script")
    return Keyframe(data=images[0]["bytesBase64Encoded"], mime_type=SYNTHESIS_MIME_TYPE)

"""
The Motion: Veo 2.0 via the Gemini API.

Submits one image-conditioned video job, polls the long-running operation
until it reports done, and resolves the generated clip's download URI.
"""

import logging
from typing import Optional

import httpx

from .. import config, gemini
from ..errors import VideoDownloadFailed, VideoLinkMissing
from .models import Keyframe
from .polling import poll_until

logger = logging.getLogger(__name__)


async def synthesize_video(
    video_prompt: str,
    keyframe: Keyframe,
    *,
    client: Optional["gemini.GeminiClient"] = None,
    poll_interval: Optional[float] = None,
    max_polls: Optional[int] = None,
) -> str:
    """
    Generate a video from the prompt, using the keyframe as its first frame.

    Polling is unbounded unless ``max_polls`` (or VIDEO_POLL_MAX_ATTEMPTS) is set.

    Returns:
        The generated video's URI. It is not public; see download_video.
    """
    client = client or gemini.GeminiClient()
    interval = config.VIDEO_POLL_INTERVAL if poll_interval is None else poll_interval
    if max_polls is None:
        max_polls = config.VIDEO_POLL_MAX_ATTEMPTS

    operation = await client.generate_videos(
        config.VIDEO_MODEL,
        video_prompt,
        keyframe.data,
        keyframe.mime_type,
        number_of_videos=1,
    )
    logger.info(f"Veo job submitted: operation={operation.name}")

    operation = await poll_until(
        operation,
        client.get_video_operation,
        lambda op: op.done,
        interval=interval,
        max_attempts=max_polls,
        label="Veo",
    )

    if not operation.video_uri:
        if operation.error_message:
            logger.error(f"Veo operation {operation.name} finished with error: {operation.error_message}")
        raise VideoLinkMissing()

    logger.info(f"Veo video ready: {operation.video_uri[:80]}")
    return operation.video_uri


async def download_video(
    video_uri: str,
    *,
    client: Optional["gemini.GeminiClient"] = None,
) -> tuple[bytes, str]:
    """
    Fetch the generated clip. The API key is appended to the URI as a query parameter.

    Returns:
        (video bytes, media type)
    """
    client = client or gemini.GeminiClient()
    try:
        resp = await client.download(video_uri)
    except httpx.HTTPError as e:
        raise VideoDownloadFailed(f"Failed to download video: {e}") from e

    if not resp.is_success:
        raise VideoDownloadFailed(f"Failed to download video: {resp.status_code} {resp.reason_phrase}")

    content_type = resp.headers.get("Content-Type", "video/mp4").split(";")[0]
    logger.info(f"Downloaded video: {len(resp.content)} bytes ({content_type})")
    return resp.content, content_type

"""
Gemini API integration over REST (httpx).

- Text:        gemini-2.5-flash via :generateContent (optionally JSON-schema constrained)
- Image edit:  gemini-2.5-flash-image-preview via :generateContent (IMAGE + TEXT modalities)
- Image synth: imagen-4.0 via :predict
- Video:       veo-2.0 via :predictLongRunning, polled through the operations endpoint
"""

import json
import logging
from typing import Any, Optional

import httpx

from . import config
from .errors import ConfigError, ResponseParseError, TransportError
from .pipeline.models import VideoOperation

logger = logging.getLogger(__name__)


def _parse_json_response(text: str) -> Any:
    """Parse JSON from a Gemini response, handling markdown code blocks."""
    text = text.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        if "```" in text:
            json_block = text.split("```")[1]
            if json_block.startswith("json"):
                json_block = json_block[4:]
            try:
                return json.loads(json_block.strip())
            except json.JSONDecodeError:
                pass
        raise ResponseParseError(f"Gemini returned invalid JSON: {text[:200]}")


def response_parts(result: dict) -> list[dict]:
    """Parts of the first candidate, or [] when the model returned no candidates."""
    candidates = result.get("candidates") or []
    if not candidates:
        return []
    return (candidates[0].get("content") or {}).get("parts") or []


def response_text(result: dict) -> str:
    """Concatenate every text part of the first candidate."""
    return "".join(part.get("text", "") for part in response_parts(result))


class GeminiClient:
    """
    Thin async wrapper around the Gemini REST endpoints the pipeline needs.

    A fresh httpx.AsyncClient is opened per call; pass ``transport`` to route
    requests somewhere other than the network (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.api_base = (api_base or config.GEMINI_API_BASE).rstrip("/")
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        if not self.api_key:
            raise ConfigError("GEMINI_API_KEY not set")
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        params = dict(kwargs.pop("params", None) or {})
        params["key"] = self.api_key
        try:
            async with self._client() as client:
                resp = await client.request(method, url, params=params, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"Gemini request failed: {e.__class__.__name__}: {e}") from e

        if resp.status_code != 200:
            raise TransportError(
                f"Gemini API error {resp.status_code}: {resp.text[:500]}",
                status_code=resp.status_code,
            )
        return resp

    async def _post_json(self, url: str, body: dict) -> dict:
        resp = await self._request("POST", url, json=body)
        try:
            return resp.json()
        except ValueError as e:
            raise ResponseParseError(f"Gemini returned a non-JSON body: {resp.text[:200]}") from e

    def _model_url(self, model: str, method: str) -> str:
        return f"{self.api_base}/models/{model}:{method}"

    # ── Text ─────────────────────────────────────────────────────────────

    async def generate_content(
        self,
        model: str,
        parts: list[dict],
        generation_config: Optional[dict] = None,
    ) -> dict:
        """Call the generateContent endpoint and return the raw response body."""
        body: dict = {"contents": [{"parts": parts}]}
        if generation_config:
            body["generationConfig"] = generation_config
        return await self._post_json(self._model_url(model, "generateContent"), body)

    async def generate_text(self, model: str, prompt: str) -> str:
        """Free-text generation; returns the whole response text."""
        result = await self.generate_content(model, [{"text": prompt}])
        return response_text(result)

    async def generate_json(self, model: str, prompt: str, schema: dict) -> Any:
        """Schema-constrained generation; returns the parsed JSON value."""
        result = await self.generate_content(
            model,
            [{"text": prompt}],
            {"responseMimeType": "application/json", "responseSchema": schema},
        )
        text = response_text(result)
        if not text:
            raise ResponseParseError("Gemini returned no text for a JSON request")
        return _parse_json_response(text)

    # ── Images ───────────────────────────────────────────────────────────

    async def edit_image(self, model: str, image_data: str, mime_type: str, prompt: str) -> list[dict]:
        """Send a base image plus an edit prompt; returns the ordered response parts."""
        result = await self.generate_content(
            model,
            [
                {"inlineData": {"mimeType": mime_type, "data": image_data}},
                {"text": prompt},
            ],
            {"responseModalities": ["IMAGE", "TEXT"]},
        )
        return response_parts(result)

    async def generate_images(
        self,
        model: str,
        prompt: str,
        *,
        number_of_images: int = 1,
        output_mime_type: str = "image/png",
        aspect_ratio: Optional[str] = None,
    ) -> list[dict]:
        """Imagen predict call; returns predictions carrying ``bytesBase64Encoded``."""
        parameters: dict = {
            "sampleCount": number_of_images,
            "outputOptions": {"mimeType": output_mime_type},
        }
        if aspect_ratio:
            parameters["aspectRatio"] = aspect_ratio

        result = await self._post_json(
            self._model_url(model, "predict"),
            {"instances": [{"prompt": prompt}], "parameters": parameters},
        )
        return [p for p in result.get("predictions") or [] if p.get("bytesBase64Encoded")]

    # ── Video ────────────────────────────────────────────────────────────

    async def generate_videos(
        self,
        model: str,
        prompt: str,
        image_data: str,
        mime_type: str,
        number_of_videos: int = 1,
    ) -> VideoOperation:
        """Submit a Veo job conditioned on a still image."""
        result = await self._post_json(
            self._model_url(model, "predictLongRunning"),
            {
                "instances": [{
                    "prompt": prompt,
                    "image": {"bytesBase64Encoded": image_data, "mimeType": mime_type},
                }],
                "parameters": {"sampleCount": number_of_videos},
            },
        )
        return self._to_operation(result)

    async def get_video_operation(self, operation: VideoOperation) -> VideoOperation:
        """Fetch a fresher handle for a running operation."""
        resp = await self._request("GET", f"{self.api_base}/{operation.name}")
        try:
            return self._to_operation(resp.json())
        except ValueError as e:
            raise ResponseParseError(f"Gemini returned a non-JSON operation: {resp.text[:200]}") from e

    @staticmethod
    def _to_operation(data: Any) -> VideoOperation:
        if not isinstance(data, dict):
            raise ResponseParseError(f"Video operation response is not an object: {str(data)[:200]}")
        name = data.get("name")
        if not name:
            raise ResponseParseError(f"Video operation response has no name: {str(data)[:200]}")

        # Any level may be missing or null while the operation is still running
        video_uri = None
        samples = (
            ((data.get("response") or {}).get("generateVideoResponse") or {})
            .get("generatedSamples")
        ) or []
        if samples and isinstance(samples[0], dict):
            video_uri = (samples[0].get("video") or {}).get("uri")

        error = data.get("error") if isinstance(data.get("error"), dict) else {}
        return VideoOperation(
            name=name,
            done=bool(data.get("done", False)),
            video_uri=video_uri or None,
            error_message=error.get("message"),
        )

    # ── Download ─────────────────────────────────────────────────────────

    async def download(self, uri: str) -> httpx.Response:
        """
        GET a generated asset. The URI is not public: the API key is added as a
        ``key`` query parameter. Returns the response without checking status.
        """
        async with self._client() as client:
            return await client.get(uri, params={"key": self.api_key})

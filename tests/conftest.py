"""
Pytest configuration and fixtures.

Gemini is faked at the HTTP layer: FakeGeminiAPI is handed to
httpx.MockTransport and injected into GeminiClient, so every request the
pipeline makes is routed and recorded without touching the network.
"""

import json
from typing import Any, Callable, Union

import httpx
import pytest

from storyreel import config, metrics
from storyreel.gemini import GeminiClient
from storyreel.pipeline.models import CreativeBrief, InspirationFile, ScriptCandidate

API_BASE = "https://gemini.test/v1beta"
API_KEY = "test-key"

Reply = Union[dict, httpx.Response, Callable[[httpx.Request], httpx.Response], Exception]


class FakeGeminiAPI:
    """Routes requests by URL path suffix. Queued replies are used in order; the last one repeats."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._replies: dict[str, list[Reply]] = {}

    def on(self, suffix: str, *replies: Reply) -> "FakeGeminiAPI":
        self._replies.setdefault(suffix, []).extend(replies)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, queue in self._replies.items():
            if request.url.path.endswith(suffix):
                reply = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(reply, Exception):
                    raise reply
                if isinstance(reply, httpx.Response):
                    return reply
                if callable(reply):
                    return reply(request)
                return httpx.Response(200, json=reply)
        return httpx.Response(404, json={"error": {"message": f"no fake for {request.url.path}"}})

    def calls(self, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]

    def bodies(self, suffix: str) -> list[dict]:
        return [json.loads(r.content) for r in self.calls(suffix)]


# ── Canned Gemini payloads ───────────────────────────────────────────────────

def text_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def json_reply(value: Any) -> dict:
    return text_reply(json.dumps(value))


def parts_reply(parts: list[dict]) -> dict:
    return {"candidates": [{"content": {"parts": parts}}]}


def operation_reply(name: str, done: bool = False, uri: str | None = None) -> dict:
    data: dict = {"name": name}
    if done:
        data["done"] = True
        samples = [{"video": {"uri": uri}}] if uri else []
        data["response"] = {"generateVideoResponse": {"generatedSamples": samples}}
    return data


# ── Endpoint suffixes ────────────────────────────────────────────────────────

TEXT = f"{config.TEXT_MODEL}:generateContent"
IMAGE_EDIT = f"{config.IMAGE_EDIT_MODEL}:generateContent"
IMAGE = f"{config.IMAGE_MODEL}:predict"
VIDEO = f"{config.VIDEO_MODEL}:predictLongRunning"
OPERATION_NAME = f"models/{config.VIDEO_MODEL}/operations/op-123"
VIDEO_URI = f"{API_BASE}/files/clip-1:download?alt=media"


# ── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def fast_polling(monkeypatch):
    """No real waiting between Veo polls, and no poll bound unless a test sets one."""
    monkeypatch.setattr(config, "VIDEO_POLL_INTERVAL", 0)
    monkeypatch.setattr(config, "VIDEO_POLL_MAX_ATTEMPTS", None)


@pytest.fixture(autouse=True)
def clean_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def fake_api() -> FakeGeminiAPI:
    return FakeGeminiAPI()


@pytest.fixture
def client(fake_api) -> GeminiClient:
    return GeminiClient(api_key=API_KEY, api_base=API_BASE, transport=httpx.MockTransport(fake_api))


@pytest.fixture
def script() -> ScriptCandidate:
    return ScriptCandidate(
        title="The Last Lighthouse",
        logline="An old keeper lights the lamp one final time.",
        full_script="SCENE 1 - EXT. CLIFF - DUSK. The keeper climbs the stairs...",
    )


@pytest.fixture
def sunset_image() -> InspirationFile:
    return InspirationFile(
        data="aW1hZ2UtYnl0ZXM=",
        mime_type="image/jpeg",
        name="sunset.jpg",
        description="warm sunset tones",
    )


@pytest.fixture
def brief() -> CreativeBrief:
    return CreativeBrief(idea="A lighthouse keeper's last night on the job")


@pytest.fixture
def full_video_flow(fake_api):
    """Veo submit → one pending poll → done, plus a working download."""
    fake_api.on(VIDEO, operation_reply(OPERATION_NAME))
    fake_api.on(
        "operations/op-123",
        operation_reply(OPERATION_NAME),
        operation_reply(OPERATION_NAME, done=True, uri=VIDEO_URI),
    )
    fake_api.on(
        "files/clip-1:download",
        httpx.Response(200, content=b"mp4-bytes", headers={"Content-Type": "video/mp4"}),
    )
    return fake_api

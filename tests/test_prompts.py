"""
Tests for video / keyframe-edit prompt derivation.
"""

import pytest

from storyreel.errors import FailureKind, MissingEditPrompt, ResponseParseError
from storyreel.pipeline.prompts import build_prompts_request, derive_prompts, prompts_schema

from conftest import TEXT, json_reply


@pytest.mark.parametrize("needs_edit_prompt", [True, False])
def test_schema_has_edit_prompt_only_when_needed(needs_edit_prompt):
    schema = prompts_schema(needs_edit_prompt)

    assert ("keyframeEditPrompt" in schema["properties"]) is needs_edit_prompt
    assert ("keyframeEditPrompt" in schema["required"]) is needs_edit_prompt
    assert "videoPrompt" in schema["required"]


def test_request_mentions_editing_only_on_edit_branch(script):
    assert "image editing AI" in build_prompts_request(script, True)
    assert "image editing AI" not in build_prompts_request(script, False)
    assert script.full_script in build_prompts_request(script, False)


@pytest.mark.asyncio
async def test_edit_branch_returns_both_prompts(client, fake_api, script):
    fake_api.on(TEXT, json_reply({"videoPrompt": "Slow dolly up the tower", "keyframeEditPrompt": "Add a glowing lamp"}))

    prompts = await derive_prompts(script, True, client=client)

    assert prompts.video_prompt == "Slow dolly up the tower"
    assert prompts.keyframe_edit_prompt == "Add a glowing lamp"
    schema = fake_api.bodies(TEXT)[0]["generationConfig"]["responseSchema"]
    assert "keyframeEditPrompt" in schema["properties"]


@pytest.mark.asyncio
async def test_synthesis_branch_never_asks_for_edit_prompt(client, fake_api, script):
    fake_api.on(TEXT, json_reply({"videoPrompt": "Waves crash", "keyframeEditPrompt": "unused"}))

    prompts = await derive_prompts(script, False, client=client)

    assert prompts.video_prompt == "Waves crash"
    assert prompts.keyframe_edit_prompt is None
    schema = fake_api.bodies(TEXT)[0]["generationConfig"]["responseSchema"]
    assert "keyframeEditPrompt" not in schema["properties"]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"videoPrompt": "Waves crash"},
    {"videoPrompt": "Waves crash", "keyframeEditPrompt": ""},
    {"videoPrompt": "Waves crash", "keyframeEditPrompt": "   "},
    {"videoPrompt": "Waves crash", "keyframeEditPrompt": None},
])
async def test_missing_edit_prompt_is_fatal(client, fake_api, script, payload):
    fake_api.on(TEXT, json_reply(payload))

    with pytest.raises(MissingEditPrompt) as exc:
        await derive_prompts(script, True, client=client)
    assert exc.value.kind is FailureKind.MISSING_ASSET


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"keyframeEditPrompt": "x"}, {"videoPrompt": ""}, ["videoPrompt"]])
async def test_bad_video_prompt_is_parse_error(client, fake_api, script, payload):
    fake_api.on(TEXT, json_reply(payload))

    with pytest.raises(ResponseParseError):
        await derive_prompts(script, False, client=client)

"""
Tests for the fixed-interval poll loop.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from storyreel.errors import PollTimeout
from storyreel.pipeline.models import VideoOperation
from storyreel.pipeline.polling import poll_until


def _ops(pending: int) -> list[VideoOperation]:
    return [VideoOperation(name="op", done=False)] * pending + [
        VideoOperation(name="op", done=True, video_uri="https://x/video")
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("pending", [0, 1, 25])
async def test_never_returns_while_not_done(pending):
    refresh = AsyncMock(side_effect=_ops(pending))

    result = await poll_until(
        VideoOperation(name="op"), refresh, lambda op: op.done, interval=0
    )

    assert result.done is True
    assert refresh.await_count == pending + 1


@pytest.mark.asyncio
async def test_already_done_does_not_poll():
    refresh = AsyncMock()
    done = VideoOperation(name="op", done=True)

    assert await poll_until(done, refresh, lambda op: op.done, interval=10) is done
    refresh.assert_not_awaited()


@pytest.mark.asyncio
async def test_waits_fixed_interval_before_each_refresh():
    refresh = AsyncMock(side_effect=_ops(2))

    with patch("storyreel.pipeline.polling.asyncio.sleep", new=AsyncMock()) as sleep:
        await poll_until(VideoOperation(name="op"), refresh, lambda op: op.done, interval=10)

    assert [c.args for c in sleep.await_args_list] == [(10,), (10,), (10,)]


@pytest.mark.asyncio
async def test_each_refresh_gets_the_latest_handle():
    first = VideoOperation(name="op-a")
    second = VideoOperation(name="op-b")
    refresh = AsyncMock(side_effect=[second, VideoOperation(name="op-c", done=True)])

    await poll_until(first, refresh, lambda op: op.done, interval=0)

    assert [c.args[0] for c in refresh.await_args_list] == [first, second]


@pytest.mark.asyncio
async def test_bounded_poll_times_out():
    refresh = AsyncMock(return_value=VideoOperation(name="op", done=False))

    with pytest.raises(PollTimeout):
        await poll_until(
            VideoOperation(name="op"), refresh, lambda op: op.done, interval=0, max_attempts=3
        )
    assert refresh.await_count == 3


@pytest.mark.asyncio
async def test_cancelling_the_task_stops_polling():
    refresh = AsyncMock(return_value=VideoOperation(name="op", done=False))
    task = asyncio.create_task(
        poll_until(VideoOperation(name="op"), refresh, lambda op: op.done, interval=60)
    )
    await asyncio.sleep(0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    refresh.assert_not_awaited()

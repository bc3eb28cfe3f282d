"""
Fixed-interval polling for long-running remote operations.

Not a retry helper: every iteration waits the same interval and the loop
only ends when ``is_done`` says so (or a configured bound runs out).
Waiting uses asyncio.sleep, so cancelling the calling task stops the poll.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import PollTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def poll_until(
    initial: T,
    refresh: Callable[[T], Awaitable[T]],
    is_done: Callable[[T], bool],
    *,
    interval: float,
    max_attempts: Optional[int] = None,
    label: str = "operation",
) -> T:
    """
    Refresh ``initial`` every ``interval`` seconds until ``is_done`` holds.

    Args:
        initial:      The handle returned by the submit call.
        refresh:      Fetches a fresher handle from the current one.
        is_done:      Completion predicate; the only way out of an unbounded poll.
        interval:     Seconds to wait before each refresh.
        max_attempts: None polls forever; otherwise raise PollTimeout after this many refreshes.

    Returns:
        The first handle for which ``is_done`` is true.
    """
    current = initial
    attempt = 0
    while not is_done(current):
        if max_attempts is not None and attempt >= max_attempts:
            raise PollTimeout(f"{label} not done after {attempt} polls ({attempt * interval:.0f}s)")
        await asyncio.sleep(interval)
        attempt += 1
        current = await refresh(current)
        logger.info(f"{label} poll #{attempt}: done={is_done(current)}")
    return current

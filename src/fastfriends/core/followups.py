"""Fire-and-forget follow-up messages to Slack ``response_url``s.

Interaction callbacks must be acknowledged within Slack's three-second budget,
so feedback ("Correct!", "already answered") is sent from a background task
after the acknowledgement. ``FollowUpQueue`` keeps a reference to every
in-flight task until it finishes and logs failures; nothing is returned to
the caller that enqueued it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SendFollowUp = Callable[[str, str], Awaitable[None]]


class FollowUpQueue:
    """Tracks unawaited follow-up sends.

    Usage:
        queue = FollowUpQueue(slack.post_follow_up)
        queue.enqueue(response_url, "Correct!")
        ...
        await queue.drain()  # on shutdown / in tests
    """

    def __init__(self, send: SendFollowUp) -> None:
        self._send = send
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def enqueue(self, response_url: str, text: str) -> asyncio.Task[None] | None:
        if not response_url:
            logger.warning("follow_up_skipped: no response_url")
            return None
        task = asyncio.create_task(self._deliver(response_url, text), name="slack-follow-up")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, response_url: str, text: str) -> None:
        try:
            await self._send(response_url, text)
        except Exception:  # Last-resort handler: the callback was already acknowledged
            logger.exception("follow_up_failed")

    async def drain(self) -> None:
        """Wait for every in-flight follow-up to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

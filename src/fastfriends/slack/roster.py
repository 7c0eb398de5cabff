"""Workspace roster collaborator with a TTL cache in front of ``users.list``.

``users.list`` is a tier-2 Slack method, and every due game asks for the
roster of its workspace. The dispatch engine only sees the ``RosterProvider``
interface: it gets a member list or a ``SlackRateLimitedError``. Caching and
stale-on-rate-limit behaviour stay behind it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from fastfriends.errors import SlackRateLimitedError
from fastfriends.models.slack import SlackMember
from fastfriends.slack.client import SlackClient

logger = logging.getLogger(__name__)


class RosterProvider(Protocol):
    async def fetch_roster(self, token: str) -> list[SlackMember]: ...


@dataclass
class _CacheEntry:
    members: list[SlackMember]
    fetched_at: float


class CachedRosterProvider:
    """Serve ``users.list`` from memory for ``ttl_seconds``.

    When Slack rate limits a refresh, the last good copy is returned even if
    expired. Only a rate limit with nothing cached reaches the caller.
    """

    def __init__(
        self,
        slack: SlackClient,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._slack = slack
        self._ttl = ttl_seconds
        self._clock = clock
        self._cache: dict[str, _CacheEntry] = {}

    async def fetch_roster(self, token: str) -> list[SlackMember]:
        entry = self._cache.get(token)
        now = self._clock()
        if entry is not None and now - entry.fetched_at < self._ttl:
            return entry.members

        try:
            members = await self._slack.list_members(token)
        except SlackRateLimitedError as exc:
            if entry is None:
                raise
            logger.warning(
                "roster_stale_served age=%.0fs retry_after=%s",
                now - entry.fetched_at,
                exc.retry_after,
            )
            return entry.members

        self._cache[token] = _CacheEntry(members=members, fetched_at=now)
        return members

    def invalidate(self, token: str | None = None) -> None:
        """Drop one workspace's cached roster, or all of them."""
        if token is None:
            self._cache.clear()
        else:
            self._cache.pop(token, None)

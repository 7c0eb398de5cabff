"""Exception hierarchy for the dispatch engine and its Slack collaborators."""

from __future__ import annotations


class FastFriendsError(Exception):
    """Base class for all Fast Friends errors."""


class ScheduleError(FastFriendsError):
    """A game's schedule configuration cannot be evaluated (bad timezone, time, days)."""


class DuplicateMessageError(FastFriendsError):
    """The (session, recipient, subject) triple was already recorded."""

    def __init__(self, session_id: str, recipient_id: str, subject_id: str) -> None:
        super().__init__(
            f"message already recorded session={session_id} "
            f"recipient={recipient_id} subject={subject_id}"
        )
        self.session_id = session_id
        self.recipient_id = recipient_id
        self.subject_id = subject_id


class SlackError(FastFriendsError):
    """Base class for failures talking to the Slack Web API."""


class SlackApiError(SlackError):
    """Slack answered with ``ok: false`` or an unexpected HTTP status."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"{method} failed: {error}")
        self.method = method
        self.error = error


class SlackRateLimitedError(SlackError):
    """Slack rejected the call with HTTP 429 / ``ratelimited``."""

    def __init__(self, method: str, retry_after: float | None = None) -> None:
        super().__init__(f"{method} rate limited (retry_after={retry_after})")
        self.method = method
        self.retry_after = retry_after

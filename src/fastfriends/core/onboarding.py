"""Onboarding-link distribution: the ``onboarding`` game template.

Instead of pairing teammates, an onboarding game DMs every member who has not
completed their profile a personal, expiring link to the profile form. The
dispatch engine calls this once per due tick; re-sending is harmless because
completed members drop out of the pending list.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncEngine

from fastfriends.db.engine import get_session
from fastfriends.db.repository import Repository
from fastfriends.errors import SlackError
from fastfriends.slack.blocks import build_onboarding_message
from fastfriends.slack.client import SlackClient

logger = logging.getLogger(__name__)

# Onboarding links stay valid for a week.
TOKEN_EXPIRY_DAYS = 7


class OnboardingSender(Protocol):
    async def send_onboarding_dms(self, workspace_id: str, bot_token: str) -> int: ...


def onboarding_link(frontend_url: str, token: str) -> str:
    return f"{frontend_url.rstrip('/')}/onboard/{token}"


class SlackOnboardingSender:
    """Send profile-completion DMs through Slack."""

    def __init__(
        self,
        engine: AsyncEngine,
        slack: SlackClient,
        frontend_url: str,
        delay_seconds: float = 1.2,
    ) -> None:
        self._engine = engine
        self._slack = slack
        self._frontend_url = frontend_url
        self._delay = delay_seconds

    async def _issue_token(self, workspace_id: str, user_id: str) -> str:
        token = secrets.token_urlsafe(15)
        expires_at = datetime.now(UTC) + timedelta(days=TOKEN_EXPIRY_DAYS)
        async with get_session(self._engine) as session:
            await Repository(session).replace_onboarding_token(
                workspace_id, user_id, token, expires_at
            )
        return onboarding_link(self._frontend_url, token)

    async def send_onboarding_dms(self, workspace_id: str, bot_token: str) -> int:
        """DM a fresh link to each pending member. Returns the number sent."""
        async with get_session(self._engine) as session:
            pending = [
                (m.user_id, m.real_name or m.user_id)
                for m in await Repository(session).get_members_pending_onboarding(workspace_id)
            ]

        sent = 0
        for user_id, real_name in pending:
            try:
                link = await self._issue_token(workspace_id, user_id)
                channel_id = await self._slack.open_direct_channel(bot_token, user_id)
                await self._slack.post_message(
                    bot_token, channel_id, build_onboarding_message(real_name, link)
                )
                sent += 1
            except SlackError as exc:
                logger.warning("onboarding_dm_failed user=%s error=%s", user_id, exc)
            except Exception:  # Last-resort handler: DB and payload errors for one member
                logger.exception("onboarding_dm_error user=%s", user_id)
            if self._delay > 0:
                await asyncio.sleep(self._delay)

        logger.info(
            "onboarding_dms_sent workspace=%s sent=%d pending=%d",
            workspace_id,
            sent,
            len(pending),
        )
        return sent

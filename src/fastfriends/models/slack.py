"""Slack-facing models: workspace members and interaction callbacks."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# Slack's own system account; never a pairing candidate.
SLACKBOT_USER_ID = "USLACKBOT"


class SlackProfile(BaseModel):
    """Subset of a users.list profile used for game messages."""

    real_name: str = ""
    display_name: str = ""
    image_192: str = ""
    image_512: str = ""

    model_config = {"extra": "ignore"}


class SlackMember(BaseModel):
    """One workspace member as returned by users.list."""

    id: str
    name: str = ""
    real_name: str = ""
    deleted: bool = False
    is_bot: bool = False
    profile: SlackProfile = Field(default_factory=SlackProfile)

    model_config = {"extra": "ignore"}

    @property
    def display_real_name(self) -> str:
        return self.profile.real_name or self.real_name

    @property
    def image_url(self) -> str:
        return self.profile.image_512 or self.profile.image_192

    @property
    def is_playable(self) -> bool:
        """Humans only: no bots, no deactivated accounts, no Slackbot."""
        return not self.is_bot and not self.deleted and self.id != SLACKBOT_USER_ID


class InteractionCallback(BaseModel):
    """Fields the engine needs from a Slack ``block_actions`` payload."""

    responder_id: str
    action_identifier: str = ""
    chosen_value: str = ""
    correlation_id: str | None = None
    follow_up_url: str = ""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> InteractionCallback:
        """Extract the callback fields from the decoded ``payload`` JSON."""
        actions = payload.get("actions") or [{}]
        action = actions[0] or {}
        message = payload.get("message") or {}
        metadata = message.get("metadata") or {}
        event_payload = metadata.get("event_payload") or {}
        return cls(
            responder_id=(payload.get("user") or {}).get("id", ""),
            action_identifier=action.get("action_id", ""),
            chosen_value=action.get("value") or "Unknown",
            correlation_id=event_payload.get("gameMessageId"),
            follow_up_url=payload.get("response_url", ""),
        )

"""Block Kit payloads for game and onboarding DMs.

A game message shows the subject's photo and a row of name buttons. Exactly
one button carries a ``correct_<i>`` action id; the rest are
``incorrect_<i>``. The ``GameMessage`` id travels in message metadata, which
Slack returns verbatim on the interaction callback.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Any

from fastfriends.models.slack import SlackMember

GAME_RESPONSE_EVENT = "game_response"
NAME_OPTION_COUNT = 4
UNKNOWN_NAME = "Unknown"


def generate_name_options(
    subject: SlackMember,
    roster: Sequence[SlackMember],
    rng: random.Random | None = None,
    count: int = NAME_OPTION_COUNT,
) -> list[str]:
    """Return the subject's name plus up to ``count - 1`` distinct decoys, shuffled."""
    rng = rng or random.Random()
    correct = subject.display_real_name or UNKNOWN_NAME

    decoy_names: list[str] = []
    for member in roster:
        name = member.display_real_name
        if (
            member.id == subject.id
            or not member.is_playable
            or not name
            or name == correct
            or name in decoy_names
        ):
            continue
        decoy_names.append(name)

    rng.shuffle(decoy_names)
    options = [correct, *decoy_names[: count - 1]]
    rng.shuffle(options)
    return options


def build_game_message(
    subject: SlackMember,
    game_message_id: str,
    name_options: Sequence[str],
) -> dict[str, Any]:
    """Build the ``chat.postMessage`` body (minus ``channel``) for one pair."""
    correct = subject.display_real_name or UNKNOWN_NAME
    buttons = [
        {
            "type": "button",
            "text": {"type": "plain_text", "text": name, "emoji": True},
            "action_id": f"{'correct' if name == correct else 'incorrect'}_{index}",
            "value": name,
        }
        for index, name in enumerate(name_options)
    ]
    return {
        "text": "Who is this teammate?",
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "*Who is this teammate?*\n\nSelect the correct name below:",
                },
            },
            {
                "type": "image",
                "image_url": subject.image_url,
                "alt_text": "Teammate photo",
            },
            {"type": "actions", "elements": buttons},
        ],
        "metadata": {
            "event_type": GAME_RESPONSE_EVENT,
            "event_payload": {"gameMessageId": game_message_id},
        },
    }


def build_onboarding_message(real_name: str, link: str) -> dict[str, Any]:
    """DM asking a member to complete their profile."""
    return {
        "text": (
            f"👋 Hi {real_name}! Please complete your onboarding profile "
            "so your teammates can get to know you better."
        ),
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f"👋 Hi *{real_name}*!\n\nPlease take a moment to complete "
                        "your team profile. It only takes 2 minutes!"
                    ),
                },
            },
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "Complete My Profile ✏️"},
                        "style": "primary",
                        "url": link,
                    }
                ],
            },
        ],
    }

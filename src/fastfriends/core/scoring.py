"""Scoring for game responses."""

from __future__ import annotations

from typing import Literal

ActionKind = Literal["correct", "incorrect"]

CORRECT_POINTS = 10
INCORRECT_POINTS = 0


def action_kind_for(action_identifier: str | None) -> ActionKind:
    """Map a button's ``action_id`` (``correct_0``, ``incorrect_2``) to its kind."""
    if action_identifier and action_identifier.startswith("correct"):
        return "correct"
    return "incorrect"


def points_for(kind: ActionKind) -> int:
    return CORRECT_POINTS if kind == "correct" else INCORRECT_POINTS


def feedback_text(points: int, chosen: str) -> str:
    """Ephemeral follow-up shown to the responder."""
    if points > 0:
        return f"✅ *Correct!* You earned *{points} points*.\n\nYou selected: *{chosen}*"
    return f"❌ *Wrong answer!* Better luck next time.\n\nYou selected: *{chosen}*"


ALREADY_RESPONDED_TEXT = "You already responded to this question!"

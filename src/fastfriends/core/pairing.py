"""Select recipient/subject pairs for one round of the guess-the-teammate game.

Each playable member is a candidate recipient and gets at most one subject
per round: a random teammate they have not already been shown in the current
session. Scoping the "already seen" set to the session, not all time, is what
lets frequency games keep finding fresh pairs round after round within a day.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from fastfriends.models.slack import SlackMember

logger = logging.getLogger(__name__)

SeenLookup = Callable[[str], Awaitable[set[str]]]


@dataclass(frozen=True)
class Pair:
    """One message to send: *recipient* is asked to name *subject*."""

    recipient: SlackMember
    subject: SlackMember


async def select_pairs(
    members: Sequence[SlackMember],
    seen_lookup: SeenLookup,
    rng: random.Random | None = None,
) -> list[Pair]:
    """Pick at most one fresh subject for every playable member.

    Args:
        members: Candidate pool (already narrowed to the game's group).
        seen_lookup: Async callable returning the subject ids a recipient
            has already been shown in the current session.
        rng: Random source; injectable for deterministic tests.

    Returns:
        Pairs in roster order. Recipients with no unseen teammate left are
        skipped.
    """
    rng = rng or random.Random()
    active = [m for m in members if m.is_playable]
    pairs: list[Pair] = []

    for recipient in active:
        seen = await seen_lookup(recipient.id)
        available = [m for m in active if m.id != recipient.id and m.id not in seen]
        if not available:
            logger.info("pairing_exhausted recipient=%s seen=%d", recipient.id, len(seen))
            continue
        pairs.append(Pair(recipient=recipient, subject=rng.choice(available)))

    return pairs

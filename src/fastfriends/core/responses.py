"""Ingest button clicks on game messages.

A game message is either unanswered or answered once per responder. The
``(message, responder)`` unique constraint makes repeated callback delivery
harmless: the second delivery gets an "already answered" notice and no
points. Feedback goes out through the ``FollowUpQueue`` after the callback
has been acknowledged.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from fastfriends.core.followups import FollowUpQueue
from fastfriends.core.scoring import (
    ALREADY_RESPONDED_TEXT,
    action_kind_for,
    feedback_text,
    points_for,
)
from fastfriends.db.engine import get_session
from fastfriends.db.repository import Repository
from fastfriends.models.dispatch import IngestOutcome, IngestResult
from fastfriends.models.slack import InteractionCallback

logger = logging.getLogger(__name__)


async def ingest_interaction(
    engine: AsyncEngine,
    callback: InteractionCallback,
    follow_ups: FollowUpQueue,
) -> IngestResult:
    """Score and persist one response to a game message.

    Callbacks without a game message id belong to other interactive
    components (e.g. the onboarding link button) and are ignored.
    """
    message_id = callback.correlation_id
    if not message_id:
        return IngestResult(outcome=IngestOutcome.IGNORED)

    kind = action_kind_for(callback.action_identifier)
    points = points_for(kind)

    async with get_session(engine) as session:
        repo = Repository(session)
        message = await repo.get_game_message(message_id)
        existing = (
            await repo.get_game_response(message_id, callback.responder_id)
            if message is not None
            else None
        )

    if message is None:
        logger.warning("interaction_unknown_message message=%s", message_id)
        return IngestResult(outcome=IngestOutcome.UNKNOWN_MESSAGE)

    if existing is not None:
        follow_ups.enqueue(callback.follow_up_url, ALREADY_RESPONDED_TEXT)
        return IngestResult(
            outcome=IngestOutcome.DUPLICATE, action_kind=existing.action_kind, points=0
        )

    try:
        async with get_session(engine) as session:
            repo = Repository(session)
            await repo.create_game_response(
                game_message_id=message_id,
                responder_id=callback.responder_id,
                action_kind=kind,
                chosen_option_text=callback.chosen_value,
                points=points,
            )
            await repo.mark_message_responded(message_id)
    except IntegrityError:
        logger.info(
            "interaction_duplicate_race message=%s responder=%s",
            message_id,
            callback.responder_id,
        )
        follow_ups.enqueue(callback.follow_up_url, ALREADY_RESPONDED_TEXT)
        return IngestResult(outcome=IngestOutcome.DUPLICATE, action_kind=kind, points=0)

    logger.info(
        "interaction_recorded message=%s responder=%s kind=%s points=%d",
        message_id,
        callback.responder_id,
        kind,
        points,
    )
    follow_ups.enqueue(callback.follow_up_url, feedback_text(points, callback.chosen_value))
    return IngestResult(outcome=IngestOutcome.RECORDED, action_kind=kind, points=points)

"""Session/message ledger for the dispatch engine.

One ``GameSession`` per game per calendar day, one ``GameMessage`` per
(session, recipient, subject). Both uniqueness rules are enforced by the
database, which makes them the concurrency guard for overlapping ticks and
manual triggers. Each call here opens its own short DB session so a
constraint violation rolls back only the write that caused it.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from fastfriends.db.engine import get_session
from fastfriends.db.models import GameMessageRow, GameSessionRow
from fastfriends.db.repository import Repository
from fastfriends.errors import DuplicateMessageError

logger = logging.getLogger(__name__)

SESSION_SENT = "sent"


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


async def find_session(
    engine: AsyncEngine,
    game_id: str,
    date_key: str,
) -> GameSessionRow | None:
    async with get_session(engine) as db:
        return await Repository(db).get_game_session(game_id, date_key)


async def ensure_session(
    engine: AsyncEngine,
    game_id: str,
    workspace_id: str,
    date_key: str,
    now: datetime | None = None,
) -> tuple[GameSessionRow, bool]:
    """Get or create the session for ``(game_id, date_key)``.

    Returns ``(session, created)``. If a concurrent tick inserts the same
    session first, the unique constraint rejects ours and the winner's row is
    returned with ``created=False``.
    """
    existing = await find_session(engine, game_id, date_key)
    if existing is not None:
        return existing, False

    created_at = _as_utc(now or datetime.now(UTC)).astimezone(UTC)
    try:
        async with get_session(engine) as db:
            row = await Repository(db).create_game_session(
                game_id, workspace_id, date_key, created_at=created_at
            )
            return row, True
    except IntegrityError:
        logger.info("game_session_race game=%s date=%s", game_id, date_key)

    async with get_session(engine) as db:
        winner = await Repository(db).get_game_session(game_id, date_key)
    if winner is None:
        msg = f"game session for game={game_id} date={date_key} vanished after conflict"
        raise RuntimeError(msg)
    return winner, False


def minutes_since_last_round(session: GameSessionRow, now: datetime) -> float:
    reference = session.last_sent_at or session.created_at
    return (_as_utc(now) - _as_utc(reference)).total_seconds() / 60


def may_redispatch(
    session: GameSessionRow,
    frequency_minutes: int | None,
    now: datetime,
) -> bool:
    """Whether an already existing session may run another round at *now*.

    Games without a frequency run once per day, so an existing session means
    today's round already happened. Frequency games wait at least
    ``frequency_minutes`` since ``last_sent_at`` (or creation, if no round
    has finished yet).
    """
    if not frequency_minutes:
        return False
    return minutes_since_last_round(session, now) >= frequency_minutes


async def seen_subjects(engine: AsyncEngine, session_id: str, recipient_id: str) -> set[str]:
    async with get_session(engine) as db:
        return await Repository(db).get_seen_subject_ids(session_id, recipient_id)


async def record_message(
    engine: AsyncEngine,
    *,
    session_id: str,
    workspace_id: str,
    recipient_id: str,
    subject_id: str,
    channel_id: str,
) -> GameMessageRow:
    """Persist a message before it is sent so its id can ride along in the payload.

    Raises:
        DuplicateMessageError: the subject was already shown to the recipient
            in this session.
    """
    try:
        async with get_session(engine) as db:
            return await Repository(db).create_game_message(
                game_session_id=session_id,
                workspace_id=workspace_id,
                recipient_id=recipient_id,
                subject_id=subject_id,
                channel_id=channel_id,
            )
    except IntegrityError as exc:
        raise DuplicateMessageError(session_id, recipient_id, subject_id) from exc


async def attach_provider_message(
    engine: AsyncEngine,
    message_id: str,
    provider_message_id: str,
) -> None:
    async with get_session(engine) as db:
        await Repository(db).set_provider_message_id(message_id, provider_message_id)


async def mark_session_dispatched(
    engine: AsyncEngine,
    session_id: str,
    sent_count: int,
    now: datetime | None = None,
    always_mark_sent: bool = False,
) -> None:
    """Close out a round.

    Status becomes ``sent`` only when something went out (or when
    *always_mark_sent* is set, for rounds handed off to a collaborator);
    ``last_sent_at`` is refreshed either way, so a frequency game with no
    fresh pairs still waits a full interval before its next attempt.
    """
    async with get_session(engine) as db:
        await Repository(db).update_game_session(
            session_id,
            last_sent_at=_as_utc(now or datetime.now(UTC)).astimezone(UTC),
            status=SESSION_SENT if sent_count > 0 or always_mark_sent else None,
        )

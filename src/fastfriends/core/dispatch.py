"""Scheduled game dispatch.

Provides ``run_dispatch_tick``, invoked by APScheduler on the cron cadence in
``settings.fastfriends_dispatch_cron`` and by the manual trigger endpoints.
Each tick walks every active game, checks its trigger window, resolves the
day's session, selects pairs scoped to that session and DMs one interactive
message per pair.

Partial failure is normal: a failing pair skips that pair, a failing game
skips that game, and the tick itself never raises. The next tick is the
retry mechanism, gated again by the window and frequency checks.
"""

from __future__ import annotations

import logging
import random
from datetime import UTC, datetime

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncEngine

from fastfriends.core.ledger import (
    attach_provider_message,
    ensure_session,
    find_session,
    may_redispatch,
    mark_session_dispatched,
    record_message,
    seen_subjects,
)
from fastfriends.core.onboarding import OnboardingSender
from fastfriends.core.pairing import Pair, select_pairs
from fastfriends.core.schedule_window import is_due, session_date_key
from fastfriends.db.engine import get_session
from fastfriends.db.models import GameRow, GameSessionRow
from fastfriends.db.repository import Repository
from fastfriends.errors import DuplicateMessageError, ScheduleError, SlackError
from fastfriends.models.dispatch import TickSummary
from fastfriends.models.game import DispatchableGame, GameSchedule, GameTemplateKind
from fastfriends.models.slack import SlackMember
from fastfriends.slack.blocks import build_game_message, generate_name_options
from fastfriends.slack.client import SlackClient
from fastfriends.slack.roster import RosterProvider

logger = logging.getLogger(__name__)

# A round needs at least a recipient and someone to show them.
MIN_CANDIDATES = 2


def snapshot_game(row: GameRow) -> DispatchableGame:
    """Turn a loaded game row into a plain model, validating its schedule.

    Raises:
        ValidationError: the stored schedule is malformed.
    """
    schedule = GameSchedule(
        schedule_type=row.schedule_type,
        scheduled_days=row.scheduled_days or [],
        scheduled_time=row.scheduled_time,
        timezone=row.timezone,
        frequency_minutes=row.frequency_minutes or None,
    )
    return DispatchableGame(
        id=row.id,
        name=row.game_name,
        workspace_id=row.workspace_id,
        group_id=row.group_id,
        group_members=list(row.group.members or []) if row.group is not None else [],
        kind=GameTemplateKind.from_template_name(
            row.template.template_name if row.template is not None else None
        ),
        schedule=schedule,
    )


async def load_dispatchable_games(
    engine: AsyncEngine,
    workspace_id: str | None,
    summary: TickSummary,
) -> list[DispatchableGame]:
    games: list[DispatchableGame] = []
    async with get_session(engine) as session:
        rows = await Repository(session).get_schedulable_games(workspace_id)
        for row in rows:
            try:
                games.append(snapshot_game(row))
            except ValidationError as exc:
                logger.warning("game_config_invalid game=%s errors=%d", row.id, exc.error_count())
                summary.errors.append(f"game {row.id}: invalid schedule")
    return games


async def _send_pair(
    engine: AsyncEngine,
    slack: SlackClient,
    *,
    token: str,
    game: DispatchableGame,
    session_id: str,
    pair: Pair,
    roster: list[SlackMember],
    rng: random.Random,
    summary: TickSummary,
) -> bool:
    """Open a DM, record the message, post it. Returns True if it went out."""
    recipient_id = pair.recipient.id
    try:
        channel_id = await slack.open_direct_channel(token, recipient_id)
        message = await record_message(
            engine,
            session_id=session_id,
            workspace_id=game.workspace_id,
            recipient_id=recipient_id,
            subject_id=pair.subject.id,
            channel_id=channel_id,
        )
        options = generate_name_options(pair.subject, roster, rng)
        payload = build_game_message(pair.subject, message.id, options)
        ts = await slack.post_message(token, channel_id, payload)
        await attach_provider_message(engine, message.id, ts)
    except DuplicateMessageError:
        logger.warning(
            "pair_already_recorded game=%s recipient=%s subject=%s",
            game.id,
            recipient_id,
            pair.subject.id,
        )
        return False
    except SlackError as exc:
        logger.error("pair_send_failed game=%s recipient=%s error=%s", game.id, recipient_id, exc)
        summary.errors.append(f"game {game.id} recipient {recipient_id}: {exc}")
        return False
    except Exception:  # Last-resort handler: DB and payload errors for one recipient
        logger.exception("pair_send_error game=%s recipient=%s", game.id, recipient_id)
        summary.errors.append(f"game {game.id} recipient {recipient_id}: unexpected error")
        return False
    return True


async def dispatch_game(
    engine: AsyncEngine,
    slack: SlackClient,
    roster_provider: RosterProvider,
    onboarding: OnboardingSender,
    game: DispatchableGame,
    now: datetime,
    rng: random.Random,
    summary: TickSummary,
) -> None:
    """Run one game's round if it is due. Per-pair failures are absorbed here."""
    try:
        due = is_due(game.schedule, now)
    except ScheduleError as exc:
        logger.warning("game_config_invalid game=%s error=%s", game.id, exc)
        summary.errors.append(f"game {game.id}: {exc}")
        return
    if not due:
        logger.debug("game_skip_not_due game=%s", game.id)
        return
    summary.games_due += 1

    async with get_session(engine) as session:
        workspace = await Repository(session).get_workspace(game.workspace_id)
        token = workspace.bot_token if workspace is not None else ""
    if workspace is None:
        logger.error("workspace_missing game=%s workspace=%s", game.id, game.workspace_id)
        summary.errors.append(f"game {game.id}: workspace {game.workspace_id} not found")
        return

    existing = await find_session(engine, game.id, session_date_key(now))
    if existing is not None and not may_redispatch(
        existing, game.schedule.frequency_minutes, now
    ):
        logger.info("game_skip_already_sent game=%s session=%s", game.id, existing.id)
        return

    match game.kind:
        case GameTemplateKind.ONBOARDING_LINK:
            await _run_onboarding_round(engine, onboarding, game, token, existing, now, summary)
        case GameTemplateKind.PAIRING:
            await _run_pairing_round(
                engine, slack, roster_provider, game, token, existing, now, rng, summary
            )


async def _claim_session(
    engine: AsyncEngine,
    game: DispatchableGame,
    existing: GameSessionRow | None,
    now: datetime,
) -> str | None:
    """Return the id of the session this round runs in, creating today's if needed.

    ``None`` means a concurrent tick created the session first and owns the round.
    """
    if existing is not None:
        return existing.id
    game_session, created = await ensure_session(
        engine, game.id, game.workspace_id, session_date_key(now), now=now
    )
    if not created:
        logger.info("game_skip_session_claimed game=%s session=%s", game.id, game_session.id)
        return None
    return game_session.id


async def _run_onboarding_round(
    engine: AsyncEngine,
    onboarding: OnboardingSender,
    game: DispatchableGame,
    token: str,
    existing: GameSessionRow | None,
    now: datetime,
    summary: TickSummary,
) -> None:
    session_id = await _claim_session(engine, game, existing, now)
    if session_id is None:
        return
    sent = await onboarding.send_onboarding_dms(game.workspace_id, token)
    await mark_session_dispatched(engine, session_id, sent, now=now, always_mark_sent=True)
    summary.games_dispatched += 1
    summary.messages_sent += sent
    logger.info("onboarding_game_dispatched game=%s sent=%d", game.id, sent)


async def _run_pairing_round(
    engine: AsyncEngine,
    slack: SlackClient,
    roster_provider: RosterProvider,
    game: DispatchableGame,
    token: str,
    existing: GameSessionRow | None,
    now: datetime,
    rng: random.Random,
    summary: TickSummary,
) -> None:
    """Pair and message the group.

    Today's session is only created once the roster is in hand and enough
    candidates remain, so a skipped tick leaves nothing behind to block the
    next one.
    """
    try:
        roster = await roster_provider.fetch_roster(token)
    except SlackError as exc:
        logger.warning("roster_unavailable game=%s error=%s", game.id, exc)
        summary.errors.append(f"game {game.id}: roster unavailable ({exc})")
        return

    group_members = set(game.group_members)
    candidates = [m for m in roster if m.id in group_members]
    if len(candidates) < MIN_CANDIDATES:
        logger.info("game_skip_too_few_members game=%s candidates=%d", game.id, len(candidates))
        return

    session_id = await _claim_session(engine, game, existing, now)
    if session_id is None:
        return

    async def _seen(recipient_id: str) -> set[str]:
        return await seen_subjects(engine, session_id, recipient_id)

    pairs = await select_pairs(candidates, _seen, rng)
    if not pairs:
        logger.info("game_skip_pairs_exhausted game=%s session=%s", game.id, session_id)
        return

    sent = 0
    for pair in pairs:
        if await _send_pair(
            engine,
            slack,
            token=token,
            game=game,
            session_id=session_id,
            pair=pair,
            roster=roster,
            rng=rng,
            summary=summary,
        ):
            sent += 1

    await mark_session_dispatched(engine, session_id, sent, now=now)
    summary.games_dispatched += 1
    summary.messages_sent += sent
    logger.info(
        "game_round_done game=%s session=%s sent=%d pairs=%d",
        game.id,
        session_id,
        sent,
        len(pairs),
    )


async def run_dispatch_tick(
    engine: AsyncEngine,
    slack: SlackClient,
    roster_provider: RosterProvider,
    onboarding: OnboardingSender,
    now: datetime | None = None,
    workspace_id: str | None = None,
    rng: random.Random | None = None,
) -> TickSummary:
    """Evaluate every active game once and dispatch the ones that are due.

    * ``workspace_id`` restricts the tick to one workspace (manual trigger).
    * ``now`` and ``rng`` are injectable for tests.

    All exceptions are caught and logged so the scheduler is never interrupted.
    """
    now = now or datetime.now(UTC)
    rng = rng or random.Random()
    summary = TickSummary()

    try:
        games = await load_dispatchable_games(engine, workspace_id, summary)
        for game in games:
            summary.games_evaluated += 1
            try:
                await dispatch_game(
                    engine, slack, roster_provider, onboarding, game, now, rng, summary
                )
            except Exception:  # Last-resort handler: one game must not stop the tick
                logger.exception("game_dispatch_error game=%s", game.id)
                summary.errors.append(f"game {game.id}: unexpected error")
    except Exception:  # Last-resort handler: DB errors loading games
        logger.exception("dispatch_tick_error")
        summary.errors.append("tick failed")

    logger.info(
        "dispatch_tick_done evaluated=%d due=%d dispatched=%d sent=%d errors=%d",
        summary.games_evaluated,
        summary.games_due,
        summary.games_dispatched,
        summary.messages_sent,
        len(summary.errors),
    )
    return summary

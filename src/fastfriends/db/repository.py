"""Repository pattern for database access.

Wraps SQLAlchemy async sessions. Game responses are immutable once written;
sessions and messages are only ever created or updated, never deleted.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fastfriends.db.models import (
    GameMessageRow,
    GameResponseRow,
    GameRow,
    GameSessionRow,
    GameTemplateRow,
    GroupRow,
    MemberProfileRow,
    OnboardingTokenRow,
    WorkspaceRow,
)


class Repository:
    """Async repository for all database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Workspaces / Groups / Templates ---

    async def create_workspace(
        self,
        organization_id: str,
        team_id: str,
        team_name: str,
        bot_token: str,
        bot_user_id: str = "",
    ) -> WorkspaceRow:
        row = WorkspaceRow(
            organization_id=organization_id,
            team_id=team_id,
            team_name=team_name,
            bot_token=bot_token,
            bot_user_id=bot_user_id,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_workspace(self, workspace_id: str) -> WorkspaceRow | None:
        return await self.session.get(WorkspaceRow, workspace_id)

    async def create_group(
        self,
        workspace_id: str,
        group_name: str,
        members: list[str] | None = None,
    ) -> GroupRow:
        row = GroupRow(workspace_id=workspace_id, group_name=group_name, members=members or [])
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_group(self, group_id: str) -> GroupRow | None:
        return await self.session.get(GroupRow, group_id)

    async def create_game_template(
        self,
        template_name: str,
        display_name: str,
        description: str = "",
    ) -> GameTemplateRow:
        row = GameTemplateRow(
            template_name=template_name,
            display_name=display_name,
            description=description,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_game_template_by_name(self, template_name: str) -> GameTemplateRow | None:
        stmt = select(GameTemplateRow).where(GameTemplateRow.template_name == template_name)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # --- Games ---

    async def create_game(
        self,
        *,
        game_name: str,
        game_template_id: str,
        group_id: str,
        workspace_id: str,
        schedule_type: str,
        scheduled_days: list[int],
        scheduled_time: str,
        timezone: str = "UTC",
        frequency_minutes: int | None = None,
    ) -> GameRow:
        row = GameRow(
            game_name=game_name,
            game_template_id=game_template_id,
            group_id=group_id,
            workspace_id=workspace_id,
            schedule_type=schedule_type,
            scheduled_days=scheduled_days,
            scheduled_time=scheduled_time,
            timezone=timezone,
            frequency_minutes=frequency_minutes,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_schedulable_games(self, workspace_id: str | None = None) -> list[GameRow]:
        """Active games still in ``scheduled`` status, with group and template loaded."""
        stmt = (
            select(GameRow)
            .where(GameRow.is_active.is_(True), GameRow.status == "scheduled")
            .options(selectinload(GameRow.group), selectinload(GameRow.template))
            .order_by(GameRow.created_at)
        )
        if workspace_id is not None:
            stmt = stmt.where(GameRow.workspace_id == workspace_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # --- Game sessions ---

    async def get_game_session(self, game_id: str, date: str) -> GameSessionRow | None:
        stmt = select(GameSessionRow).where(
            GameSessionRow.game_id == game_id,
            GameSessionRow.date == date,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_game_session_by_id(self, session_id: str) -> GameSessionRow | None:
        return await self.session.get(GameSessionRow, session_id)

    async def create_game_session(
        self,
        game_id: str,
        workspace_id: str,
        date: str,
        created_at: datetime | None = None,
    ) -> GameSessionRow:
        row = GameSessionRow(game_id=game_id, workspace_id=workspace_id, date=date)
        if created_at is not None:
            row.created_at = created_at
        self.session.add(row)
        await self.session.flush()
        return row

    async def count_game_sessions(self, game_id: str) -> int:
        stmt = select(func.count()).where(GameSessionRow.game_id == game_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def update_game_session(
        self,
        session_id: str,
        *,
        last_sent_at: datetime,
        status: str | None = None,
    ) -> None:
        values: dict[str, object] = {"last_sent_at": last_sent_at}
        if status is not None:
            values["status"] = status
        await self.session.execute(
            update(GameSessionRow).where(GameSessionRow.id == session_id).values(**values)
        )

    # --- Game messages ---

    async def create_game_message(
        self,
        *,
        game_session_id: str,
        workspace_id: str,
        recipient_id: str,
        subject_id: str,
        channel_id: str,
    ) -> GameMessageRow:
        row = GameMessageRow(
            game_session_id=game_session_id,
            workspace_id=workspace_id,
            recipient_id=recipient_id,
            subject_id=subject_id,
            channel_id=channel_id,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_game_message(self, message_id: str) -> GameMessageRow | None:
        return await self.session.get(GameMessageRow, message_id)

    async def get_messages_for_session(self, session_id: str) -> list[GameMessageRow]:
        stmt = (
            select(GameMessageRow)
            .where(GameMessageRow.game_session_id == session_id)
            .order_by(GameMessageRow.sent_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_seen_subject_ids(self, session_id: str, recipient_id: str) -> set[str]:
        """Subjects already shown to *recipient_id* within one session."""
        stmt = select(GameMessageRow.subject_id).where(
            GameMessageRow.game_session_id == session_id,
            GameMessageRow.recipient_id == recipient_id,
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def set_provider_message_id(self, message_id: str, provider_message_id: str) -> None:
        await self.session.execute(
            update(GameMessageRow)
            .where(GameMessageRow.id == message_id)
            .values(provider_message_id=provider_message_id)
        )

    async def mark_message_responded(self, message_id: str) -> None:
        await self.session.execute(
            update(GameMessageRow).where(GameMessageRow.id == message_id).values(responded=True)
        )

    # --- Game responses ---

    async def get_game_response(
        self,
        message_id: str,
        responder_id: str,
    ) -> GameResponseRow | None:
        stmt = select(GameResponseRow).where(
            GameResponseRow.game_message_id == message_id,
            GameResponseRow.responder_id == responder_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_game_response(
        self,
        *,
        game_message_id: str,
        responder_id: str,
        action_kind: str,
        chosen_option_text: str,
        points: int,
    ) -> GameResponseRow:
        row = GameResponseRow(
            game_message_id=game_message_id,
            responder_id=responder_id,
            action_kind=action_kind,
            chosen_option_text=chosen_option_text,
            points=points,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_responses_for_message(self, message_id: str) -> list[GameResponseRow]:
        stmt = select(GameResponseRow).where(GameResponseRow.game_message_id == message_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # --- Member profiles / onboarding ---

    async def upsert_member_profile(
        self,
        workspace_id: str,
        user_id: str,
        real_name: str = "",
        onboarding_completed: bool = False,
    ) -> MemberProfileRow:
        stmt = select(MemberProfileRow).where(
            MemberProfileRow.workspace_id == workspace_id,
            MemberProfileRow.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            row = MemberProfileRow(workspace_id=workspace_id, user_id=user_id)
            self.session.add(row)
        row.real_name = real_name
        row.onboarding_completed = onboarding_completed
        await self.session.flush()
        return row

    async def get_members_pending_onboarding(self, workspace_id: str) -> list[MemberProfileRow]:
        stmt = (
            select(MemberProfileRow)
            .where(
                MemberProfileRow.workspace_id == workspace_id,
                MemberProfileRow.is_active.is_(True),
                MemberProfileRow.onboarding_completed.is_(False),
            )
            .order_by(MemberProfileRow.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def replace_onboarding_token(
        self,
        workspace_id: str,
        user_id: str,
        token: str,
        expires_at: datetime,
    ) -> OnboardingTokenRow:
        """Drop any earlier tokens for the user and store a fresh one."""
        await self.session.execute(
            delete(OnboardingTokenRow).where(
                OnboardingTokenRow.workspace_id == workspace_id,
                OnboardingTokenRow.user_id == user_id,
            )
        )
        row = OnboardingTokenRow(
            token=token,
            user_id=user_id,
            workspace_id=workspace_id,
            expires_at=expires_at,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_onboarding_tokens(
        self,
        workspace_id: str,
        user_id: str,
    ) -> list[OnboardingTokenRow]:
        stmt = select(OnboardingTokenRow).where(
            OnboardingTokenRow.workspace_id == workspace_id,
            OnboardingTokenRow.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

"""SQLAlchemy ORM models for the Fast Friends database.

Workspaces, templates, groups and games are owned by the management side of
the product; the dispatch engine only reads them. Game sessions, messages and
responses form the dispatch ledger and carry the uniqueness constraints the
engine relies on for idempotency.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class WorkspaceRow(Base):
    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    team_id: Mapped[str] = mapped_column(String(32), nullable=False)
    team_name: Mapped[str] = mapped_column(String(200), nullable=False)
    bot_user_id: Mapped[str] = mapped_column(String(32), default="")
    bot_token: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (
        UniqueConstraint("organization_id", "team_id", name="uq_workspace_org_team"),
    )


class GameTemplateRow(Base):
    __tablename__ = "game_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    template_name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)


class GroupRow(Base):
    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id"), nullable=False)
    group_name: Mapped[str] = mapped_column(String(100), nullable=False)
    members: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (
        UniqueConstraint("workspace_id", "group_name", name="uq_group_workspace_name"),
    )


class GameRow(Base):
    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    game_name: Mapped[str] = mapped_column(String(100), nullable=False)
    game_template_id: Mapped[str] = mapped_column(
        ForeignKey("game_templates.id"), nullable=False
    )
    group_id: Mapped[str] = mapped_column(ForeignKey("groups.id"), nullable=False)
    workspace_id: Mapped[str] = mapped_column(String(36), nullable=False)
    schedule_type: Mapped[str] = mapped_column(String(10), nullable=False)  # weekly | monthly
    scheduled_days: Mapped[list] = mapped_column(JSON, nullable=False)
    scheduled_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:mm
    timezone: Mapped[str] = mapped_column(String(64), default="UTC")
    frequency_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="scheduled")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    template: Mapped[GameTemplateRow] = relationship()
    group: Mapped[GroupRow] = relationship()

    __table_args__ = (
        Index("ix_games_group_active", "group_id", "is_active"),
        Index("ix_games_status_active", "status", "is_active"),
    )


class GameSessionRow(Base):
    __tablename__ = "game_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    game_id: Mapped[str] = mapped_column(ForeignKey("games.id"), nullable=False)
    workspace_id: Mapped[str] = mapped_column(String(36), nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD
    status: Mapped[str] = mapped_column(String(20), default="scheduled")
    last_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (UniqueConstraint("game_id", "date", name="uq_game_session_day"),)


class GameMessageRow(Base):
    __tablename__ = "game_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    game_session_id: Mapped[str] = mapped_column(
        ForeignKey("game_sessions.id"), nullable=False
    )
    workspace_id: Mapped[str] = mapped_column(String(36), nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(32), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(32), nullable=False)
    channel_id: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_message_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime, default=_now)
    responded: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        Index("ix_game_messages_session", "game_session_id"),
        UniqueConstraint(
            "game_session_id",
            "recipient_id",
            "subject_id",
            name="uq_game_message_pair",
        ),
    )


class GameResponseRow(Base):
    __tablename__ = "game_responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    game_message_id: Mapped[str] = mapped_column(
        ForeignKey("game_messages.id"), nullable=False
    )
    responder_id: Mapped[str] = mapped_column(String(32), nullable=False)
    action_kind: Mapped[str] = mapped_column(String(10), nullable=False)  # correct | incorrect
    chosen_option_text: Mapped[str] = mapped_column(String(200), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    responded_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (
        UniqueConstraint("game_message_id", "responder_id", name="uq_game_response_once"),
    )


class MemberProfileRow(Base):
    """Slack user synced into a workspace, with onboarding progress."""

    __tablename__ = "member_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    real_name: Mapped[str] = mapped_column(String(200), default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_member_workspace_user"),
    )


class OnboardingTokenRow(Base):
    __tablename__ = "onboarding_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    workspace_id: Mapped[str] = mapped_column(String(36), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (Index("ix_onboarding_tokens_user", "user_id", "workspace_id"),)

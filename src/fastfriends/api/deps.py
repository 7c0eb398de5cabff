"""FastAPI dependency injection for the engine and the Slack collaborators on app state."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from fastfriends.config import Settings
from fastfriends.core.followups import FollowUpQueue
from fastfriends.core.onboarding import OnboardingSender
from fastfriends.slack.client import SlackClient
from fastfriends.slack.roster import RosterProvider


async def get_engine(request: Request) -> AsyncEngine:
    """Get the database engine from app state."""
    return request.app.state.engine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_slack(request: Request) -> SlackClient:
    return request.app.state.slack


def get_roster(request: Request) -> RosterProvider:
    return request.app.state.roster


def get_onboarding(request: Request) -> OnboardingSender:
    return request.app.state.onboarding


def get_follow_ups(request: Request) -> FollowUpQueue:
    return request.app.state.follow_ups


EngineDep = Annotated[AsyncEngine, Depends(get_engine)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
SlackDep = Annotated[SlackClient, Depends(get_slack)]
RosterDep = Annotated[RosterProvider, Depends(get_roster)]
OnboardingDep = Annotated[OnboardingSender, Depends(get_onboarding)]
FollowUpsDep = Annotated[FollowUpQueue, Depends(get_follow_ups)]

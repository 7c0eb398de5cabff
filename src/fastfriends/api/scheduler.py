"""Manual dispatch triggers.

POST /api/scheduler/run                         one tick over every workspace
POST /api/workspaces/{workspace_id}/dispatch    one tick over a single workspace

Both run the same ``run_dispatch_tick`` the cron job runs, due checks
included, and return its ``TickSummary``.
"""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException

from fastfriends.api.deps import EngineDep, OnboardingDep, RosterDep, SettingsDep, SlackDep
from fastfriends.core.dispatch import run_dispatch_tick
from fastfriends.db.engine import get_session
from fastfriends.db.repository import Repository
from fastfriends.models.dispatch import TickSummary

router = APIRouter(prefix="/api", tags=["scheduler"])


async def require_scheduler_key(
    settings: SettingsDep,
    x_scheduler_key: Annotated[str | None, Header()] = None,
) -> None:
    """Reject the request unless it carries the configured scheduler key."""
    expected = settings.fastfriends_scheduler_secret_key
    if not expected:
        return
    if x_scheduler_key is None or not hmac.compare_digest(x_scheduler_key, expected):
        raise HTTPException(status_code=401, detail="Invalid scheduler key")


SchedulerKeyDep = Depends(require_scheduler_key)


@router.post("/scheduler/run", dependencies=[SchedulerKeyDep])
async def run_scheduler(
    engine: EngineDep,
    slack: SlackDep,
    roster: RosterDep,
    onboarding: OnboardingDep,
) -> TickSummary:
    return await run_dispatch_tick(engine, slack, roster, onboarding)


@router.post("/workspaces/{workspace_id}/dispatch", dependencies=[SchedulerKeyDep])
async def dispatch_workspace(
    workspace_id: str,
    engine: EngineDep,
    slack: SlackDep,
    roster: RosterDep,
    onboarding: OnboardingDep,
) -> TickSummary:
    async with get_session(engine) as session:
        workspace = await Repository(session).get_workspace(workspace_id)
    if workspace is None:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return await run_dispatch_tick(engine, slack, roster, onboarding, workspace_id=workspace_id)

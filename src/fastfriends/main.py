"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from fastfriends.api.interactions import router as interactions_router
from fastfriends.api.scheduler import router as scheduler_router
from fastfriends.config import Settings
from fastfriends.core.followups import FollowUpQueue
from fastfriends.core.onboarding import SlackOnboardingSender
from fastfriends.db.engine import create_engine, create_tables
from fastfriends.slack.client import SlackClient
from fastfriends.slack.roster import CachedRosterProvider

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create engine/tables and Slack collaborators, optionally start the scheduler."""
    settings: Settings = app.state.settings
    engine = create_engine(settings.database_url)
    await create_tables(engine)
    app.state.engine = engine

    slack = SlackClient(
        base_url=settings.slack_api_base_url,
        timeout=settings.slack_timeout_seconds,
    )
    app.state.slack = slack
    app.state.roster = CachedRosterProvider(
        slack, ttl_seconds=settings.fastfriends_roster_cache_seconds
    )
    app.state.onboarding = SlackOnboardingSender(
        engine,
        slack,
        frontend_url=settings.fastfriends_frontend_url,
        delay_seconds=settings.fastfriends_onboarding_dm_delay_seconds,
    )
    follow_ups = FollowUpQueue(slack.post_follow_up)
    app.state.follow_ups = follow_ups

    # Start APScheduler for recurring dispatch ticks
    scheduler = None
    effective_cron = settings.effective_dispatch_cron()
    if effective_cron is not None:
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.cron import CronTrigger

        from fastfriends.core.dispatch import run_dispatch_tick

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            run_dispatch_tick,
            trigger=CronTrigger.from_crontab(effective_cron),
            kwargs={
                "engine": engine,
                "slack": slack,
                "roster_provider": app.state.roster,
                "onboarding": app.state.onboarding,
            },
            id="dispatch_tick",
            name="Dispatch due games",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        app.state.scheduler = scheduler
        logger.info("scheduler_started cron=%s", effective_cron)
    else:
        app.state.scheduler = None
        logger.info("scheduler_disabled")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")

    await follow_ups.drain()
    await slack.aclose()
    await engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the Fast Friends FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.fastfriends_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Fast Friends",
        version="0.1.0",
        description="Scheduled Slack name-guessing games for getting to know teammates",
        docs_url="/docs" if settings.fastfriends_env != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.include_router(interactions_router)
    app.include_router(scheduler_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "env": settings.fastfriends_env}

    return app


app = create_app()

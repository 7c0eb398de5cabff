"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Default cron expression: the dispatch engine works at minute granularity.
DEFAULT_DISPATCH_CRON = "* * * * *"


class Settings(BaseSettings):
    """Fast Friends application configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Slack
    slack_signing_secret: str = ""
    slack_api_base_url: str = "https://slack.com/api"
    slack_timeout_seconds: float = 10.0

    # Database
    database_url: str = "sqlite+aiosqlite:///fastfriends.db"

    # Environment
    fastfriends_env: str = "development"

    # Scheduling
    fastfriends_auto_dispatch: bool = True
    fastfriends_dispatch_cron: str = DEFAULT_DISPATCH_CRON
    fastfriends_scheduler_secret_key: str = ""  # Guards POST /api/scheduler/run

    # Roster cache in front of users.list (Slack tier 2 rate limit)
    fastfriends_roster_cache_seconds: int = 300

    # Onboarding links
    fastfriends_frontend_url: str = "http://localhost:5173"
    fastfriends_onboarding_dm_delay_seconds: float = 1.2  # chat.postMessage ~1 req/sec

    # Logging
    fastfriends_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _require_signing_secret_in_production(self) -> Settings:
        """Reject unsigned Slack callbacks in production."""
        if self.fastfriends_env == "production" and not self.slack_signing_secret:
            msg = "SLACK_SIGNING_SECRET must be set in production."
            raise ValueError(msg)
        return self

    def effective_dispatch_cron(self) -> str | None:
        """Return the cron expression that drives dispatch ticks.

        ``None`` means the recurring job should not be started; ticks then
        only happen through the manual trigger endpoints.
        """
        if not self.fastfriends_auto_dispatch or not self.fastfriends_dispatch_cron.strip():
            return None
        return self.fastfriends_dispatch_cron

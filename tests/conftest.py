"""Shared test fixtures."""

import json
from dataclasses import dataclass, field

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from fastfriends.config import Settings
from fastfriends.db.engine import create_engine, create_tables, get_session
from fastfriends.db.repository import Repository
from fastfriends.models.game import ONBOARDING_TEMPLATE_NAME
from fastfriends.models.slack import SlackMember
from fastfriends.slack.client import SlackClient

SLACK_TEST_BASE_URL = "https://slack.test/api"


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(
        fastfriends_env="development",
        database_url="sqlite+aiosqlite:///:memory:",
        fastfriends_auto_dispatch=False,
    )


@pytest.fixture
async def engine() -> AsyncEngine:
    """Create an in-memory SQLite engine with all tables."""
    eng = create_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(eng)
    yield eng
    await eng.dispose()


def _member(user_id: str, real_name: str | None = None, **kwargs: object) -> SlackMember:
    """Build a playable roster entry with a photo."""
    name = real_name if real_name is not None else f"Person {user_id}"
    return SlackMember.model_validate(
        {
            "id": user_id,
            "name": user_id.lower(),
            "real_name": name,
            "profile": {"real_name": name, "image_512": f"https://img.test/{user_id}.png"},
            **kwargs,
        }
    )


@dataclass
class FakeSlackApi:
    """In-memory Slack Web API served through ``httpx.MockTransport``.

    ``failures`` maps a method name to the Slack error it should return.
    """

    members: list[dict] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    fail_for_users: set[str] = field(default_factory=set)
    rate_limited: bool = False
    opened: list[str] = field(default_factory=list)
    posted: list[dict] = field(default_factory=list)
    follow_ups: list[dict] = field(default_factory=list)
    users_list_calls: int = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host != "slack.test":
            self.follow_ups.append({"url": str(request.url), **json.loads(request.content)})
            return httpx.Response(200, text="ok")

        method = request.url.path.rsplit("/", 1)[-1]
        if method in self.failures:
            return httpx.Response(200, json={"ok": False, "error": self.failures[method]})

        if method == "users.list":
            self.users_list_calls += 1
            if self.rate_limited:
                return httpx.Response(429, headers={"Retry-After": "30"})
            return httpx.Response(200, json={"ok": True, "members": self.members})

        body = json.loads(request.content)
        if method == "conversations.open":
            user_id = body["users"]
            if user_id in self.fail_for_users:
                return httpx.Response(200, json={"ok": False, "error": "user_not_found"})
            self.opened.append(user_id)
            return httpx.Response(200, json={"ok": True, "channel": {"id": f"D{user_id}"}})
        if method == "chat.postMessage":
            self.posted.append(body)
            ts = f"1700000000.{len(self.posted):06d}"
            return httpx.Response(200, json={"ok": True, "ts": ts})
        return httpx.Response(404)

    def client(self) -> SlackClient:
        return SlackClient(
            base_url=SLACK_TEST_BASE_URL, transport=httpx.MockTransport(self.handler)
        )


@pytest.fixture
def slack_api() -> FakeSlackApi:
    return FakeSlackApi()


@pytest.fixture
async def slack(slack_api: FakeSlackApi) -> SlackClient:
    client = slack_api.client()
    yield client
    await client.aclose()


async def _seed_game(
    engine: AsyncEngine,
    members: list[str],
    *,
    team_id: str = "T001",
    schedule_type: str = "weekly",
    scheduled_days: list[int] | None = None,
    scheduled_time: str = "09:00",
    timezone: str = "UTC",
    frequency_minutes: int | None = None,
    template_name: str = "guess_who",
) -> tuple[str, str]:
    """Create a workspace, group, template and game. Returns ``(workspace_id, game_id)``."""
    async with get_session(engine) as session:
        repo = Repository(session)
        workspace = await repo.create_workspace("org-1", team_id, "Acme", "xoxb-test")
        group = await repo.create_group(workspace.id, "Everyone", members)
        template = await repo.get_game_template_by_name(template_name)
        if template is None:
            template = await repo.create_game_template(
                template_name,
                "Onboarding" if template_name == ONBOARDING_TEMPLATE_NAME else "Guess Who",
            )
        game = await repo.create_game(
            game_name="Weekly guess",
            game_template_id=template.id,
            group_id=group.id,
            workspace_id=workspace.id,
            schedule_type=schedule_type,
            scheduled_days=scheduled_days if scheduled_days is not None else [1],
            scheduled_time=scheduled_time,
            timezone=timezone,
            frequency_minutes=frequency_minutes,
        )
        return workspace.id, game.id


@pytest.fixture
def make_member():
    """Factory for playable roster entries."""
    return _member


@pytest.fixture
def seed_game():
    """Factory that seeds a workspace, group, template and game."""
    return _seed_game

"""Tests for database layer: engine, ORM models, repository round-trips."""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from fastfriends.db.engine import get_session
from fastfriends.db.models import GameRow
from fastfriends.db.repository import Repository


@pytest.fixture
async def repo(engine: AsyncEngine) -> Repository:
    """Yield a repository with a session bound to the in-memory database."""
    async with get_session(engine) as session:
        yield Repository(session)


class TestTableCreation:
    async def test_all_tables_created(self, engine: AsyncEngine):
        async with engine.connect() as conn:
            tables = await conn.run_sync(
                lambda sync_conn: sync_conn.dialect.get_table_names(sync_conn)
            )
        expected = {
            "workspaces",
            "game_templates",
            "groups",
            "games",
            "game_sessions",
            "game_messages",
            "game_responses",
            "member_profiles",
            "onboarding_tokens",
        }
        assert expected.issubset(set(tables))


class TestWorkspaceGroup:
    async def test_workspace_round_trip(self, repo: Repository):
        ws = await repo.create_workspace("org-1", "T1", "Acme", "xoxb-1", bot_user_id="UBOT")
        fetched = await repo.get_workspace(ws.id)
        assert fetched.team_name == "Acme"
        assert fetched.bot_token == "xoxb-1"

    async def test_group_members_json(self, repo: Repository):
        ws = await repo.create_workspace("org-1", "T1", "Acme", "xoxb-1")
        group = await repo.create_group(ws.id, "Design", ["U1", "U2"])
        fetched = await repo.get_group(group.id)
        assert fetched.members == ["U1", "U2"]

    async def test_missing_rows(self, repo: Repository):
        assert await repo.get_workspace("nope") is None
        assert await repo.get_group("nope") is None
        assert await repo.get_game_template_by_name("nope") is None

    async def test_duplicate_template_name(self, engine: AsyncEngine):
        async with get_session(engine) as session:
            await Repository(session).create_game_template("guess_who", "Guess Who")
        with pytest.raises(IntegrityError):
            async with get_session(engine) as session:
                await Repository(session).create_game_template("guess_who", "Again")


class TestSchedulableGames:
    async def test_filters_inactive_and_finished(self, engine: AsyncEngine, seed_game):
        _, active_id = await seed_game(engine, ["A", "B"], team_id="T1")
        _, inactive_id = await seed_game(engine, ["A", "B"], team_id="T2")
        _, done_id = await seed_game(engine, ["A", "B"], team_id="T3")
        async with get_session(engine) as session:
            (await session.get(GameRow, inactive_id)).is_active = False
            (await session.get(GameRow, done_id)).status = "completed"

        async with get_session(engine) as session:
            games = await Repository(session).get_schedulable_games()
        assert [g.id for g in games] == [active_id]
        assert games[0].group.members == ["A", "B"]
        assert games[0].template.template_name == "guess_who"

    async def test_scoped_to_workspace(self, engine: AsyncEngine, seed_game):
        ws1, game1 = await seed_game(engine, ["A", "B"], team_id="T1")
        await seed_game(engine, ["A", "B"], team_id="T2")
        async with get_session(engine) as session:
            games = await Repository(session).get_schedulable_games(ws1)
        assert [g.id for g in games] == [game1]

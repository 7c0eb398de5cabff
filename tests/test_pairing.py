"""Tests for pair selection."""

import random

from fastfriends.core.pairing import Pair, select_pairs


def _lookup(seen: dict[str, set[str]]):
    async def _seen(recipient_id: str) -> set[str]:
        return seen.get(recipient_id, set())

    return _seen


class TestSelectPairs:
    async def test_everyone_gets_one_subject(self, make_member) -> None:
        members = [make_member(uid) for uid in ("A", "B", "C")]
        pairs = await select_pairs(members, _lookup({}), random.Random(1))
        assert [p.recipient.id for p in pairs] == ["A", "B", "C"]
        for pair in pairs:
            assert pair.subject.id != pair.recipient.id

    async def test_excludes_bots_deleted_and_slackbot(self, make_member) -> None:
        members = [
            make_member("A"),
            make_member("B"),
            make_member("BOT", is_bot=True),
            make_member("GONE", deleted=True),
            make_member("USLACKBOT", "Slackbot"),
        ]
        pairs = await select_pairs(members, _lookup({}), random.Random(2))
        ids = {p.recipient.id for p in pairs} | {p.subject.id for p in pairs}
        assert ids == {"A", "B"}

    async def test_skips_recipient_with_nothing_left(self, make_member) -> None:
        """A has seen both teammates this session; B and C still get subjects."""
        members = [make_member(uid) for uid in ("A", "B", "C")]
        pairs = await select_pairs(members, _lookup({"A": {"B", "C"}}), random.Random(3))
        assert [p.recipient.id for p in pairs] == ["B", "C"]

    async def test_only_unseen_subjects(self, make_member) -> None:
        members = [make_member(uid) for uid in ("A", "B", "C")]
        seen = {"A": {"B"}, "B": {"A"}, "C": {"A"}}
        pairs = await select_pairs(members, _lookup(seen), random.Random(4))
        assert {(p.recipient.id, p.subject.id) for p in pairs} == {
            ("A", "C"),
            ("B", "C"),
            ("C", "B"),
        }

    async def test_repeated_rounds_never_repeat_a_pair(self, make_member) -> None:
        members = [make_member(uid) for uid in ("A", "B", "C", "D")]
        seen: dict[str, set[str]] = {}
        history: list[tuple[str, str]] = []
        rng = random.Random(5)
        for _ in range(5):
            for pair in await select_pairs(members, _lookup(seen), rng):
                history.append((pair.recipient.id, pair.subject.id))
                seen.setdefault(pair.recipient.id, set()).add(pair.subject.id)
        assert len(history) == len(set(history))
        # Four members, three possible subjects each.
        assert len(history) == 12

    async def test_single_member_no_pairs(self, make_member) -> None:
        assert await select_pairs([make_member("A")], _lookup({}), random.Random()) == []

    async def test_same_seed_same_pairs(self, make_member) -> None:
        members = [make_member(uid) for uid in ("A", "B", "C", "D")]
        first = await select_pairs(members, _lookup({}), random.Random(42))
        second = await select_pairs(members, _lookup({}), random.Random(42))
        assert first == second
        assert all(isinstance(p, Pair) for p in first)

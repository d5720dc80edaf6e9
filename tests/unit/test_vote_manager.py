"""Tests for VoteManager: one vote per user, tally counts, completion rule."""

import sys
import threading
from datetime import datetime, timezone
from pathlib import Path

_root = Path(__file__).resolve().parent.parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

import pytest
from goalbot.errors import InvalidGoalReference
from goalbot.goals.goal_manager import GoalManager, InMemoryGoalStore
from goalbot.goals.vote_manager import InMemoryVoteStore, JSONVoteStore, VoteManager, is_completed


@pytest.fixture(params=["memory", "json"])
def votes(request, tmp_path):
    if request.param == "memory":
        return VoteManager(InMemoryVoteStore())
    return VoteManager(JSONVoteStore(tmp_path / "votes.json"))


class TestTally:

    def test_no_votes(self, votes):
        assert votes.tally_votes(1) == (0, 0)

    def test_two_for_one_against(self, votes):
        votes.cast_vote("u1", 1, True)
        votes.cast_vote("u2", 1, True)
        votes.cast_vote("u3", 1, False)
        assert votes.tally_votes(1) == (2, 1)
        assert votes.check_completion(1).completed is True

    def test_later_vote_overwrites(self, votes):
        votes.cast_vote("u1", 1, True)
        votes.cast_vote("u1", 1, False)
        assert votes.tally_votes(1) == (0, 1)

    def test_repeat_same_vote_counts_once(self, votes):
        for _ in range(5):
            votes.cast_vote("u1", 1, True)
        assert votes.tally_votes(1) == (1, 0)

    def test_votes_are_per_goal(self, votes):
        votes.cast_vote("u1", 1, True)
        votes.cast_vote("u1", 2, False)
        assert votes.tally_votes(1) == (1, 0)
        assert votes.tally_votes(2) == (0, 1)

    def test_tally_is_pure(self, votes):
        votes.cast_vote("u1", 1, True)
        assert votes.tally_votes(1) == votes.tally_votes(1) == (1, 0)

    def test_overwrite_keeps_position(self, votes):
        votes.cast_vote("u1", 1, True)
        votes.cast_vote("u2", 1, True)
        votes.cast_vote("u1", 1, False)
        assert [v.user_id for v in votes.store.get_votes(1)] == ["u1", "u2"]


class TestCompletionRule:

    @pytest.mark.parametrize("for_count,against_count,expected", [
        (1, 0, True),
        (3, 2, True),
        (0, 0, False),
        (2, 2, False),
        (1, 3, False),
    ])
    def test_strict_majority(self, for_count, against_count, expected):
        assert is_completed(for_count, against_count) is expected

    def test_tie_not_completed(self, votes):
        votes.cast_vote("u1", 1, True)
        votes.cast_vote("u2", 1, True)
        votes.cast_vote("u3", 1, False)
        votes.cast_vote("u4", 1, False)
        result = votes.check_completion(1)
        assert (result.for_count, result.against_count) == (2, 2)
        assert result.completed is False

    def test_single_vote_decides(self, votes):
        votes.cast_vote("u1", 1, True)
        assert votes.check_completion(1).completed is True


class TestGoalReference:

    def test_permissive_without_goal_manager(self, votes):
        votes.cast_vote("u1", 12345, True)
        assert votes.tally_votes(12345) == (1, 0)

    def test_rejects_unknown_goal_with_goal_manager(self):
        goals = GoalManager(InMemoryGoalStore())
        votes = VoteManager(InMemoryVoteStore(), goal_manager=goals)
        with pytest.raises(InvalidGoalReference):
            votes.cast_vote("u1", 1, True)

        goal_id = goals.create_goal("u1", "x", datetime(2026, 1, 1, tzinfo=timezone.utc), "c1")
        votes.cast_vote("u2", goal_id, True)
        assert votes.tally_votes(goal_id) == (1, 0)


class TestConcurrency:

    def test_parallel_votes_and_tallies(self, tmp_path):
        path = tmp_path / "votes.json"
        votes = VoteManager(JSONVoteStore(path))
        users = [f"u{n}" for n in range(8)]
        tallies = []
        done = threading.Event()

        def voter(user_id, final):
            for i in range(10):
                votes.cast_vote(user_id, 1, i % 2 == 0)
            votes.cast_vote(user_id, 1, final)

        def reader():
            while not done.wait(0.001):
                tallies.append(votes.tally_votes(1))

        watcher = threading.Thread(target=reader)
        watcher.start()
        threads = [threading.Thread(target=voter, args=(u, n < 5)) for n, u in enumerate(users)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        done.set()
        watcher.join()

        assert votes.tally_votes(1) == (5, 3)
        assert all(f + a <= len(users) for f, a in tallies)
        assert sorted(v.user_id for v in votes.store.get_votes(1)) == sorted(users)
        assert VoteManager(JSONVoteStore(path)).tally_votes(1) == (5, 3)

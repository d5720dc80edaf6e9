"""
Tests for GoalManager and the goal stores.

Validates:
- ids are pairwise distinct and strictly increasing
- get_goal raises GoalNotFoundError for unknown ids
- list_goals keeps insertion order across calls
- naive due dates are stored as UTC
- concurrent create_goal calls never collide
"""

import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

_root = Path(__file__).resolve().parent.parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

import pytest
from goalbot.errors import GoalNotFoundError
from goalbot.goals.goal_manager import GoalManager, InMemoryGoalStore, JSONGoalStore

DUE = datetime(2026, 11, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "json"])
def manager(request, tmp_path):
    if request.param == "memory":
        return GoalManager(InMemoryGoalStore())
    return GoalManager(JSONGoalStore(tmp_path / "goals.json"))


class TestCreateGoal:

    def test_first_id_is_one(self, manager):
        assert manager.create_goal("u1", "Run 5k", DUE, "c1") == 1

    def test_ids_strictly_increasing(self, manager):
        ids = [manager.create_goal("u1", f"goal {i}", DUE, "c1") for i in range(10)]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)
        assert all(b > a for a, b in zip(ids, ids[1:]))

    def test_goal_fields_round_trip(self, manager):
        goal_id = manager.create_goal("u7", "Read a book", DUE, "c42")
        goal = manager.get_goal(goal_id)
        assert goal.id == goal_id
        assert goal.user_id == "u7"
        assert goal.description == "Read a book"
        assert goal.due_date == DUE
        assert goal.channel_id == "c42"

    def test_naive_due_date_taken_as_utc(self, manager):
        goal_id = manager.create_goal("u1", "x", datetime(2026, 11, 1, 12, 0), "c1")
        assert manager.get_goal(goal_id).due_date == DUE


class TestGetAndList:

    def test_unknown_goal_raises(self, manager):
        with pytest.raises(GoalNotFoundError) as exc:
            manager.get_goal(99)
        assert exc.value.goal_id == 99
        assert "99" in str(exc.value)

    def test_not_found_is_a_key_error(self, manager):
        with pytest.raises(KeyError):
            manager.get_goal(1)

    def test_goal_exists(self, manager):
        goal_id = manager.create_goal("u1", "x", DUE, "c1")
        assert manager.goal_exists(goal_id) is True
        assert manager.goal_exists(goal_id + 1) is False

    def test_list_empty(self, manager):
        assert manager.list_goals() == []

    def test_list_in_insertion_order(self, manager):
        for desc in ("b", "a", "c"):
            manager.create_goal("u1", desc, DUE - timedelta(days=1), "c1")
        first = [g.description for g in manager.list_goals()]
        second = [g.description for g in manager.list_goals()]
        assert first == ["b", "a", "c"]
        assert first == second

    def test_list_returns_a_copy(self, manager):
        manager.create_goal("u1", "x", DUE, "c1")
        listing = manager.list_goals()
        listing.clear()
        assert len(manager.list_goals()) == 1


class TestConcurrency:

    def test_parallel_creates_get_unique_ids(self, tmp_path):
        manager = GoalManager(JSONGoalStore(tmp_path / "goals.json"))
        ids = []
        lock = threading.Lock()

        def worker(n):
            for i in range(10):
                goal_id = manager.create_goal(f"u{n}", f"goal {n}-{i}", DUE, "c1")
                with lock:
                    ids.append(goal_id)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(ids) == list(range(1, 81))
        reloaded = JSONGoalStore(tmp_path / "goals.json")
        assert [g.id for g in reloaded.list()] == [g.id for g in manager.list_goals()]

"""
Goal lifecycle: create, fetch, list.

Goals are immutable once created. Ids are assigned by the store, strictly
increasing and never reused. Two interchangeable backends: in-memory (tests)
and a JSON file (data/goals.json).
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from goalbot.errors import GoalNotFoundError, StoreIOError
from goalbot.storage.json_file import JSONFileCollection

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class Goal:
    """A user-declared goal with a due date."""

    id: int
    user_id: str
    description: str
    due_date: datetime
    channel_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "description": self.description,
            "dueDate": self.due_date.isoformat(),
            "channelId": self.channel_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Goal":
        return cls(
            id=int(data["id"]),
            user_id=str(data["userId"]),
            description=data["description"],
            due_date=as_utc(datetime.fromisoformat(data["dueDate"])),
            channel_id=str(data["channelId"]),
        )


class GoalStore(ABC):
    """Persistence for goals."""

    @abstractmethod
    def create(self, user_id: str, description: str, due_date: datetime, channel_id: str) -> Goal:
        """Assign the next id, persist the goal and return it."""

    @abstractmethod
    def get(self, goal_id: int) -> Optional[Goal]:
        """Return the goal, or None if no goal has that id."""

    @abstractmethod
    def list(self) -> List[Goal]:
        """Return all goals in insertion order."""


class InMemoryGoalStore(GoalStore):
    """Process-local goal store; contents are lost on exit."""

    def __init__(self) -> None:
        self._goals: List[Goal] = []
        self._lock = threading.Lock()

    def _next_id(self) -> int:
        return max((g.id for g in self._goals), default=0) + 1

    def _persist(self) -> None:
        """Hook for durable backends; called with the lock held."""

    def create(self, user_id: str, description: str, due_date: datetime, channel_id: str) -> Goal:
        with self._lock:
            goal = Goal(
                id=self._next_id(),
                user_id=user_id,
                description=description,
                due_date=as_utc(due_date),
                channel_id=channel_id,
            )
            self._goals.append(goal)
            try:
                self._persist()
            except StoreIOError:
                self._goals.pop()
                raise
            return goal

    def get(self, goal_id: int) -> Optional[Goal]:
        with self._lock:
            for goal in self._goals:
                if goal.id == goal_id:
                    return goal
        return None

    def list(self) -> List[Goal]:
        with self._lock:
            return list(self._goals)


class JSONGoalStore(InMemoryGoalStore):
    """Goal store backed by a JSON array file, rewritten on every create."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self._file = JSONFileCollection(path)
        try:
            self._goals = [Goal.from_dict(r) for r in self._file.load()]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreIOError(f"Malformed goal record in {path}: {e}", path=str(path)) from e

    def _persist(self) -> None:
        self._file.write([g.to_dict() for g in self._goals])


class GoalManager:
    """Creates and looks up goals; durability is delegated to a GoalStore."""

    def __init__(self, store: GoalStore) -> None:
        self.store = store
        logger.info("Goal manager initialized (store=%s)", type(store).__name__)

    def create_goal(self, user_id: str, description: str, due_date: datetime, channel_id: str) -> int:
        """Create a goal and return its id."""
        goal = self.store.create(user_id, description, due_date, channel_id)
        logger.info("Goal %d created by %s (due %s)", goal.id, user_id, goal.due_date.isoformat())
        return goal.id

    def get_goal(self, goal_id: int) -> Goal:
        """Return the goal or raise GoalNotFoundError."""
        goal = self.store.get(goal_id)
        if goal is None:
            raise GoalNotFoundError(goal_id)
        return goal

    def goal_exists(self, goal_id: int) -> bool:
        return self.store.get(goal_id) is not None

    def list_goals(self) -> List[Goal]:
        return self.store.list()

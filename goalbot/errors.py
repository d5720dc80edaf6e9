"""
Error types raised by the goal, vote and evidence layers.

Managers propagate these unchanged; the bot façade turns them into replies.
"""

from typing import Optional


class GoalBotError(Exception):
    """Base class for errors a user-facing layer can report."""

    pass


class GoalNotFoundError(GoalBotError, KeyError):
    """No goal with the requested id exists."""

    def __init__(self, goal_id: int) -> None:
        super().__init__(goal_id)
        self.goal_id = goal_id

    def __str__(self) -> str:
        return f"Goal {self.goal_id} does not exist"


class InvalidGoalReference(GoalBotError):
    """A vote or evidence entry points at a goal that does not exist."""

    def __init__(self, goal_id: int) -> None:
        super().__init__(f"Goal {goal_id} does not exist")
        self.goal_id = goal_id


class StoreIOError(GoalBotError):
    """A backing file exists but could not be read, parsed or written."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class CommandParseError(GoalBotError, ValueError):
    """A command payload is missing an argument or has one of the wrong shape."""

    pass

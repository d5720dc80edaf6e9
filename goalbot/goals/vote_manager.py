"""
Peer votes on whether a goal was met, and the tally built from them.

At most one vote is kept per (goal, user): casting again replaces the
earlier vote in place. A goal counts as completed when votes for strictly
outnumber votes against; there is no quorum.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from goalbot.errors import InvalidGoalReference, StoreIOError
from goalbot.storage.json_file import JSONFileCollection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Vote:
    """One user's judgment on one goal."""

    goal_id: int
    user_id: str
    vote: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"goalId": self.goal_id, "userId": self.user_id, "vote": self.vote}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vote":
        if not isinstance(data["vote"], bool):
            raise ValueError(f"vote must be a boolean, got {data['vote']!r}")
        return cls(goal_id=int(data["goalId"]), user_id=str(data["userId"]), vote=data["vote"])


@dataclass(frozen=True)
class CompletionResult:
    """Tally for a goal plus the completion verdict derived from it."""

    for_count: int
    against_count: int
    completed: bool


def is_completed(for_count: int, against_count: int) -> bool:
    """Strict majority rule: ties and against-majorities are not completed."""
    return for_count > against_count


class VoteStore(ABC):
    """Persistence for votes, keyed by (goal_id, user_id)."""

    @abstractmethod
    def save(self, vote: Vote) -> None:
        """Insert the vote, replacing any earlier vote by the same user on the same goal."""

    @abstractmethod
    def get_votes(self, goal_id: int) -> List[Vote]:
        """Return the current votes for a goal in insertion order."""


class InMemoryVoteStore(VoteStore):
    """Process-local vote store."""

    def __init__(self) -> None:
        self._votes: List[Vote] = []
        self._lock = threading.Lock()

    def _persist(self) -> None:
        """Hook for durable backends; called with the lock held."""

    def save(self, vote: Vote) -> None:
        with self._lock:
            previous = list(self._votes)
            for i, existing in enumerate(self._votes):
                if existing.goal_id == vote.goal_id and existing.user_id == vote.user_id:
                    self._votes[i] = vote
                    break
            else:
                self._votes.append(vote)
            try:
                self._persist()
            except StoreIOError:
                self._votes = previous
                raise

    def get_votes(self, goal_id: int) -> List[Vote]:
        with self._lock:
            return [v for v in self._votes if v.goal_id == goal_id]


class JSONVoteStore(InMemoryVoteStore):
    """Vote store backed by a JSON array file (data/votes.json)."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self._file = JSONFileCollection(path)
        try:
            self._votes = [Vote.from_dict(r) for r in self._file.load()]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreIOError(f"Malformed vote record in {path}: {e}", path=str(path)) from e

    def _persist(self) -> None:
        self._file.write([v.to_dict() for v in self._votes])


class VoteManager:
    """
    Casts and tallies votes.

    When constructed with a goal_manager, votes on unknown goals are rejected
    with InvalidGoalReference; without one any goal id is accepted.
    """

    def __init__(self, store: VoteStore, goal_manager: Optional[Any] = None) -> None:
        self.store = store
        self.goal_manager = goal_manager
        logger.info("Vote manager initialized (store=%s)", type(store).__name__)

    def cast_vote(self, user_id: str, goal_id: int, vote: bool) -> None:
        if self.goal_manager is not None and not self.goal_manager.goal_exists(goal_id):
            raise InvalidGoalReference(goal_id)
        self.store.save(Vote(goal_id=goal_id, user_id=user_id, vote=bool(vote)))
        logger.info("Vote on goal %d by %s: %s", goal_id, user_id, "for" if vote else "against")

    def tally_votes(self, goal_id: int) -> Tuple[int, int]:
        """Return (for_count, against_count) counting each user once."""
        votes = self.store.get_votes(goal_id)
        for_count = sum(1 for v in votes if v.vote)
        return for_count, len(votes) - for_count

    def check_completion(self, goal_id: int) -> CompletionResult:
        for_count, against_count = self.tally_votes(goal_id)
        return CompletionResult(
            for_count=for_count,
            against_count=against_count,
            completed=is_completed(for_count, against_count),
        )

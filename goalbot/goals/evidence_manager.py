"""
Evidence log: free-text notes attached to goals in support of a completion
claim. Append-only; entries are never merged, edited or removed.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from goalbot.errors import InvalidGoalReference, StoreIOError
from goalbot.storage.json_file import JSONFileCollection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evidence:
    user_id: str
    goal_id: int
    evidence: str

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "goalId": self.goal_id, "evidence": self.evidence}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Evidence":
        return cls(user_id=str(data["userId"]), goal_id=int(data["goalId"]), evidence=str(data["evidence"]))


class EvidenceStore(ABC):
    @abstractmethod
    def save(self, evidence: Evidence) -> None:
        """Append an evidence entry."""

    @abstractmethod
    def get_evidences(self, goal_id: int) -> List[Evidence]:
        """Return every entry for the goal in insertion order."""


class InMemoryEvidenceStore(EvidenceStore):
    def __init__(self) -> None:
        self._evidences: List[Evidence] = []
        self._lock = threading.Lock()

    def _persist(self) -> None:
        """Hook for durable backends; called with the lock held."""

    def save(self, evidence: Evidence) -> None:
        with self._lock:
            self._evidences.append(evidence)
            try:
                self._persist()
            except StoreIOError:
                self._evidences.pop()
                raise

    def get_evidences(self, goal_id: int) -> List[Evidence]:
        with self._lock:
            return [e for e in self._evidences if e.goal_id == goal_id]


class JSONEvidenceStore(InMemoryEvidenceStore):
    """Evidence store backed by a JSON array file (data/evidences.json)."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self._file = JSONFileCollection(path)
        try:
            self._evidences = [Evidence.from_dict(r) for r in self._file.load()]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreIOError(f"Malformed evidence record in {path}: {e}", path=str(path)) from e

    def _persist(self) -> None:
        self._file.write([e.to_dict() for e in self._evidences])


class EvidenceManager:
    """Adds and lists evidence; optionally checks goal ids against a goal_manager."""

    def __init__(self, store: EvidenceStore, goal_manager: Optional[Any] = None) -> None:
        self.store = store
        self.goal_manager = goal_manager
        logger.info("Evidence manager initialized (store=%s)", type(store).__name__)

    def add_evidence(self, user_id: str, goal_id: int, evidence: str) -> None:
        if self.goal_manager is not None and not self.goal_manager.goal_exists(goal_id):
            raise InvalidGoalReference(goal_id)
        self.store.save(Evidence(user_id=user_id, goal_id=goal_id, evidence=evidence))
        logger.info("Evidence added to goal %d by %s", goal_id, user_id)

    def get_evidences(self, goal_id: int) -> List[Evidence]:
        return self.store.get_evidences(goal_id)

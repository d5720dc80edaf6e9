"""Backend selection for the goal, vote and evidence stores."""

import logging
import os
from typing import Tuple

from goalbot.goals.evidence_manager import EvidenceStore, InMemoryEvidenceStore, JSONEvidenceStore
from goalbot.goals.goal_manager import GoalStore, InMemoryGoalStore, JSONGoalStore
from goalbot.goals.vote_manager import InMemoryVoteStore, JSONVoteStore, VoteStore

logger = logging.getLogger(__name__)

BACKENDS = ("memory", "json")

GOALS_FILE = "goals.json"
VOTES_FILE = "votes.json"
EVIDENCES_FILE = "evidences.json"


def create_stores(backend: str, data_dir: str) -> Tuple[GoalStore, VoteStore, EvidenceStore]:
    """Build (goal_store, vote_store, evidence_store) for ``backend``.

    ``data_dir`` is only used by the json backend; it is created if missing.
    """
    backend = (backend or "").strip().lower()
    if backend == "memory":
        logger.info("Using in-memory stores (nothing is persisted)")
        return InMemoryGoalStore(), InMemoryVoteStore(), InMemoryEvidenceStore()
    if backend == "json":
        os.makedirs(data_dir, exist_ok=True)
        logger.info("Using JSON stores in %s", data_dir)
        return (
            JSONGoalStore(os.path.join(data_dir, GOALS_FILE)),
            JSONVoteStore(os.path.join(data_dir, VOTES_FILE)),
            JSONEvidenceStore(os.path.join(data_dir, EVIDENCES_FILE)),
        )
    raise ValueError(f"Unknown storage backend {backend!r} (expected one of {', '.join(BACKENDS)})")

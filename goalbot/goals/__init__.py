"""Goals, votes and evidence: entities, stores and managers."""

from goalbot.goals.evidence_manager import Evidence, EvidenceManager
from goalbot.goals.goal_manager import Goal, GoalManager
from goalbot.goals.vote_manager import CompletionResult, Vote, VoteManager, is_completed

__all__ = [
    "CompletionResult",
    "Evidence",
    "EvidenceManager",
    "Goal",
    "GoalManager",
    "Vote",
    "VoteManager",
    "is_completed",
]

"""GoalBot: community goal accountability over Discord."""

"""Weekly history."""

from taskgraph.history.weekly import WeeklyHistory, rollover

__all__ = ["WeeklyHistory", "rollover"]

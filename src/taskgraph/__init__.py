"""taskgraph - weekly task tracker with a live dependency graph."""

__version__ = "0.1.0"

from taskgraph.app import CommandResult, TrackerApp
from taskgraph.tasks.models import Goal, Task, TaskPriority, WeekRecord

__all__ = [
    "CommandResult",
    "TrackerApp",
    "Goal",
    "Task",
    "TaskPriority",
    "WeekRecord",
]

"""Task records, dependency rules and the task store."""

from taskgraph.tasks.errors import (
    BlockedTransition,
    CascadeConfirmationRequired,
    ExternalServiceFailure,
    FailureReason,
    TrackerError,
    ValidationError,
)
from taskgraph.tasks.models import Goal, Task, TaskPriority, WeekRecord
from taskgraph.tasks.store import TaskStore

__all__ = [
    "BlockedTransition",
    "CascadeConfirmationRequired",
    "ExternalServiceFailure",
    "FailureReason",
    "TrackerError",
    "ValidationError",
    "Goal",
    "Task",
    "TaskPriority",
    "WeekRecord",
    "TaskStore",
]

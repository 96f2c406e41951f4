"""Error taxonomy for tracker operations."""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taskgraph.tasks.models import Task


class TrackerError(Exception):
    """Base class for errors reported back to the user."""


class ValidationError(TrackerError):
    """Input rejected before any state change."""


class BlockedTransition(TrackerError):
    """Completion refused while dependencies are still incomplete."""

    def __init__(self, task: "Task", blocking_tasks: list["Task"]) -> None:
        self.task = task
        self.blocking_tasks = blocking_tasks
        names = ", ".join(f'"{t.text}"' for t in blocking_tasks)
        super().__init__(
            f"Cannot complete this task yet. Please complete these dependencies first: {names}"
        )


class CascadeConfirmationRequired(TrackerError):
    """Deleting this record would sever references held by other records."""

    def __init__(self, target_id: int, dependents: list["Task"], kind: str = "task") -> None:
        self.target_id = target_id
        self.dependents = dependents
        self.kind = kind
        names = ", ".join(f'"{t.text}"' for t in dependents)
        if kind == "goal":
            message = f"Tasks are linked to this goal: {names}. Delete anyway? (Links will be removed)"
        else:
            message = f"Other tasks depend on this one: {names}. Delete anyway? (Dependencies will be removed)"
        super().__init__(message)


class FailureReason(str, Enum):
    """Why a call to the summary service failed."""

    UNREACHABLE = "unreachable"
    OTHER = "other"


class ExternalServiceFailure(TrackerError):
    """The AI summary service could not produce a completion."""

    def __init__(self, reason: FailureReason, message: str) -> None:
        self.reason = reason
        super().__init__(message)

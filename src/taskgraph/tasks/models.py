"""Task data models."""

import time
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskPriority(str, Enum):
    """Task priority levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Higher sorts first in task listings
PRIORITY_ORDER = {
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}


class IdGenerator:
    """Time-derived, strictly increasing integer ids."""

    def __init__(self, last_id: int = 0) -> None:
        self.last_id = last_id

    def observe(self, existing_id: int) -> None:
        """Make sure future ids sort after an id that already exists."""
        if existing_id > self.last_id:
            self.last_id = existing_id

    def next_id(self) -> int:
        """Return milliseconds since epoch, bumped past the last id handed out."""
        candidate = int(time.time() * 1000)
        if candidate <= self.last_id:
            candidate = self.last_id + 1
        self.last_id = candidate
        return candidate


_default_ids = IdGenerator()


def new_id() -> int:
    """Allocate an id from the process-wide generator."""
    return _default_ids.next_id()


class Task(BaseModel):
    """Task with blocking dependencies on other tasks."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(default_factory=new_id)
    text: str
    completed: bool = False
    created_at: datetime = Field(default_factory=datetime.now, alias="createdAt")
    priority: TaskPriority = TaskPriority.MEDIUM

    # Ids of tasks that must complete first, in selection order
    depends_on: list[int] = Field(default_factory=list, alias="dependsOn")

    goal_id: Optional[int] = Field(default=None, alias="goalId")

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank text."""
        v = v.strip()
        if not v:
            raise ValueError("Task text cannot be empty")
        return v

    def to_record(self) -> dict:
        """Serialize with the camelCase keys used on disk."""
        return self.model_dump(mode="json", by_alias=True)


class Goal(BaseModel):
    """Goal that tasks can be linked to."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(default_factory=new_id)
    title: str
    created_at: datetime = Field(default_factory=datetime.now, alias="createdAt")

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class WeekRecord(BaseModel):
    """Snapshot of one week's tasks and summary."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(default_factory=new_id)
    week_of: date = Field(default_factory=date.today, alias="weekOf")
    summary: str = ""
    tasks: list[Task] = Field(default_factory=list)
    completed_count: int = Field(default=0, alias="completedCount")
    total_count: int = Field(default=0, alias="totalCount")

    @property
    def completion_rate(self) -> int:
        """Completed share of the week's tasks, as a rounded percentage."""
        if self.total_count == 0:
            return 0
        return round(self.completed_count / self.total_count * 100)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

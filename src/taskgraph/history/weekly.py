"""Weekly history snapshots and week rollover."""

import logging
from datetime import date
from typing import Iterable, Optional

from taskgraph.tasks.errors import ValidationError
from taskgraph.tasks.models import IdGenerator, Task, WeekRecord
from taskgraph.tasks.resolver import prune_dangling_edges

logger = logging.getLogger(__name__)


class WeeklyHistory:
    """Newest-first list of saved weeks."""

    def __init__(self, weeks: Optional[Iterable[WeekRecord]] = None):
        self.weeks: list[WeekRecord] = list(weeks or [])
        self._ids = IdGenerator()
        for week in self.weeks:
            self._ids.observe(week.id)

    @property
    def weeks_tracked(self) -> int:
        return len(self.weeks)

    def get(self, week_id: int) -> WeekRecord:
        """
        Get a week by ID.

        Raises:
            KeyError: If week not found
        """
        for week in self.weeks:
            if week.id == week_id:
                return week
        raise KeyError(f"Week not found: {week_id}")

    def save_week(self, tasks: list[Task], summary: str, week_of: Optional[date] = None) -> WeekRecord:
        """
        Snapshot the current tasks and summary as a new week.

        Raises:
            ValidationError: If there are no tasks and the summary is blank
        """
        summary = summary.strip()
        if not summary and not tasks:
            raise ValidationError("Add some tasks or write a summary before saving the week!")

        week = WeekRecord(
            id=self._ids.next_id(),
            week_of=week_of or date.today(),
            summary=summary,
            tasks=[t.model_copy(deep=True) for t in tasks],
            completed_count=sum(1 for t in tasks if t.completed),
            total_count=len(tasks),
        )
        self.weeks.insert(0, week)
        logger.info(
            f"Saved week of {week.week_of}: {week.completed_count}/{week.total_count} tasks completed"
        )
        return week

    def edit_week(self, week_id: int, summary: str) -> WeekRecord:
        week = self.get(week_id)
        week.summary = summary.strip()
        logger.debug(f"Edited summary for week {week_id}")
        return week

    def delete_week(self, week_id: int) -> WeekRecord:
        week = self.get(week_id)
        self.weeks.remove(week)
        logger.info(f"Deleted week {week_id}")
        return week


def rollover(tasks: Iterable[Task]) -> list[Task]:
    """
    Start a new week: keep unfinished tasks only.

    Edges that pointed at completed (now removed) tasks are pruned so the
    carried-over tasks only reference tasks that still exist.
    """
    unfinished = [t for t in tasks if not t.completed]
    return prune_dangling_edges(unfinished)

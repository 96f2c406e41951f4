"""Unit tests for weekly history and rollover."""

from datetime import date

import pytest

from taskgraph.history.weekly import WeeklyHistory, rollover
from taskgraph.tasks.errors import ValidationError
from taskgraph.tasks.models import Task


class TestWeeklyHistory:
    """Test WeeklyHistory."""

    def test_save_week(self):
        history = WeeklyHistory()
        tasks = [Task(id=1, text="A", completed=True), Task(id=2, text="B")]

        week = history.save_week(tasks, "  Solid week  ", week_of=date(2024, 5, 6))

        assert week.summary == "Solid week"
        assert week.completed_count == 1
        assert week.total_count == 2
        assert week.completion_rate == 50
        assert history.weeks_tracked == 1

    def test_snapshot_is_independent(self):
        history = WeeklyHistory()
        task = Task(id=1, text="A")
        week = history.save_week([task], "")

        task.completed = True
        assert week.tasks[0].completed is False

    def test_newest_first(self):
        history = WeeklyHistory()
        first = history.save_week([], "one")
        second = history.save_week([], "two")
        assert history.weeks == [second, first]

    def test_empty_week_rejected(self):
        history = WeeklyHistory()
        with pytest.raises(ValidationError, match="Add some tasks or write a summary"):
            history.save_week([], "   ")

    def test_edit_and_delete(self):
        history = WeeklyHistory()
        week = history.save_week([], "draft")

        assert history.edit_week(week.id, " final ").summary == "final"
        history.delete_week(week.id)
        assert history.weeks_tracked == 0

    def test_unknown_week(self):
        with pytest.raises(KeyError, match="Week not found"):
            WeeklyHistory().get(1)


class TestRollover:
    """Test rollover()."""

    def test_keeps_unfinished_and_prunes_edges(self):
        tasks = [
            Task(id=1, text="done", completed=True),
            Task(id=2, text="open", depends_on=[1]),
            Task(id=3, text="later", depends_on=[2, 1]),
        ]

        carried = rollover(tasks)

        assert [t.id for t in carried] == [2, 3]
        assert carried[0].depends_on == []
        assert carried[1].depends_on == [2]

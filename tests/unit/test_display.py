"""Unit tests for DisplayManager rendering."""

import random
from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from taskgraph.app import CommandResult
from taskgraph.display import DisplayManager
from taskgraph.graph.layout import ForceLayout
from taskgraph.graph.projector import GraphSettings, project
from taskgraph.graph.viewport import Viewport
from taskgraph.tasks.models import Task, WeekRecord


@pytest.fixture
def output():
    return StringIO()


@pytest.fixture
def display(output):
    return DisplayManager(Console(file=output, width=120, force_terminal=False))


class TestShowResult:
    """Test command feedback."""

    def test_success_message(self, display, output):
        display.show_result(CommandResult(success=True, message="Task created! 📋"))
        assert "Task created!" in output.getvalue()

    def test_blocking_tasks_listed(self, display, output):
        blocker = Task(id=1, text="Buy [paint]")
        display.show_result(CommandResult(success=False, error="Cannot complete", data=[blocker]))

        text = output.getvalue()
        assert "Cannot complete" in text
        assert "Buy [paint]" in text


class TestShowTasks:
    """Test the task table."""

    def test_empty(self, display, output):
        display.show_tasks([], [])
        assert "No tasks yet" in output.getvalue()

    def test_blocked_marker(self, display, output):
        a = Task(id=1, text="Paint walls")
        b = Task(id=2, text="Hang pictures", depends_on=[1])
        display.show_tasks([a, b], [a, b])

        text = output.getvalue()
        assert 'Waiting for: "Paint walls"' in text
        assert "(Blocked)" in text


class TestShowGraph:
    """Test the graph rendering."""

    def test_edges_and_zoom(self, display, output):
        tasks = [Task(id=1, text="Paint walls"), Task(id=2, text="Hang pictures", depends_on=[1])]
        projection = project(tasks, GraphSettings(highlight_blocked=True))
        layout = ForceLayout(projection.nodes, projection.edges, rng=random.Random(0))
        layout.run_until_settled()

        display.show_graph(projection, layout, Viewport())

        text = output.getvalue()
        assert "zoom 100%" in text
        assert "Paint walls → Hang pictures" in text
        assert "(blocking)" in text

    def test_empty_graph(self, display, output):
        projection = project([])
        display.show_graph(projection, ForceLayout([], []), Viewport())
        assert "No tasks to display" in output.getvalue()


class TestShowHistory:
    """Test history panels."""

    def test_week_panel(self, display, output):
        week = WeekRecord(id=1, summary="Good week", completed_count=3, total_count=4)
        display.show_history([week])

        text = output.getvalue()
        assert "Completed 3 of 4 tasks (75%)" in text
        assert "Good week" in text


class TestActivity:
    """Test the spinner context manager."""

    @pytest.mark.asyncio
    async def test_disabled(self, output):
        display = DisplayManager(Console(file=output), spinner_enabled=False)
        with patch("taskgraph.display.Live") as mock_live_class:
            async with display.activity("Generating..."):
                pass
        mock_live_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_starts_and_stops(self, display):
        with patch("taskgraph.display.Live") as mock_live_class:
            mock_live = MagicMock()
            mock_live_class.return_value = mock_live

            async with display.activity("Generating..."):
                mock_live.start.assert_called_once()

            mock_live.stop.assert_called_once()

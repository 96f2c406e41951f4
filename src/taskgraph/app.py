"""Application root: owns tracker state and exposes one command per user action."""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from taskgraph.graph.layout import ForceLayout, LayoutSettings
from taskgraph.graph.projector import GraphSettings, Projection, project
from taskgraph.graph.timer import SimulationTimer
from taskgraph.graph.viewport import Viewport
from taskgraph.history.weekly import WeeklyHistory, rollover
from taskgraph.storage.persistence import KeyValueStore, TrackerRepository
from taskgraph.summary.client import GenerationClient, create_client
from taskgraph.summary.generator import DEFAULT_GOAL_CONTEXT, SummaryGenerator
from taskgraph.tasks.errors import (
    BlockedTransition,
    CascadeConfirmationRequired,
    ExternalServiceFailure,
    FailureReason,
    TrackerError,
)
from taskgraph.tasks.models import TaskPriority
from taskgraph.tasks.store import TaskStore

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of a command, rendered by the presentation layer."""

    success: bool
    message: str = ""
    data: Optional[Any] = None
    error: Optional[str] = None
    needs_confirmation: bool = False


def _error_text(error: Exception) -> str:
    # KeyError wraps its message in quotes when converted with str()
    if isinstance(error, KeyError) and error.args:
        return str(error.args[0])
    return str(error)


class TrackerApp:
    """State container for the tracker."""

    def __init__(
        self,
        config: dict,
        repository: Optional[TrackerRepository] = None,
        summary_client: Optional[GenerationClient] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize the tracker and load persisted state.

        Args:
            config: Configuration dictionary
            repository: Storage for tracker records (default: JSON files from config)
            summary_client: Text-generation backend (default: built from config on first use)
            rng: Random source for the layout engine
        """
        self.config = config
        if repository is None:
            data_dir = config.get("storage", {}).get("data_dir", "./.taskgraph/data")
            repository = TrackerRepository(KeyValueStore(data_dir))
        self.repository = repository
        self.rng = rng

        self.store = TaskStore(repository.load_tasks(), repository.load_goals())
        self.history = WeeklyHistory(repository.load_history())
        self.summary = repository.load_summary()

        self.graph_settings = GraphSettings(**config.get("graph", {}))
        layout_config = config.get("layout", {})
        self.layout_settings = LayoutSettings(**layout_config)
        self.frame_interval = layout_config.get("frame_interval", 1 / 60)

        viewport_config = config.get("viewport", {})
        self.viewport = Viewport(
            width=self.layout_settings.width,
            height=self.layout_settings.height,
            min_zoom=viewport_config.get("min_zoom", 0.1),
            max_zoom=viewport_config.get("max_zoom", 5.0),
            zoom_factor=viewport_config.get("zoom_factor", 1.5),
            zoom_duration=viewport_config.get("zoom_duration", 0.3),
            reset_duration=viewport_config.get("reset_duration", 0.5),
        )

        self._summary_client = summary_client
        self._generator: Optional[SummaryGenerator] = None

        self.projection: Projection = Projection()
        self.layout: Optional[ForceLayout] = None
        self.refresh_graph()

        logger.info(
            f"Tracker ready: {len(self.store.tasks)} tasks, {self.history.weeks_tracked} weeks"
        )

    # Tasks

    def add_task(
        self,
        text: str,
        priority: str = TaskPriority.MEDIUM.value,
        depends_on: Iterable[int] = (),
        goal_id: Optional[int] = None,
    ) -> CommandResult:
        try:
            task = self.store.create(text, TaskPriority(priority), list(depends_on), goal_id)
        except (TrackerError, ValueError) as e:
            return CommandResult(success=False, error=_error_text(e))

        self._commit_tasks()
        dep_count = len(task.depends_on)
        message = (
            f"Task created with {dep_count} dependencies! 📋🔗" if dep_count else "Task created! 📋"
        )
        return CommandResult(success=True, message=message, data=task)

    def toggle_task(self, task_id: int) -> CommandResult:
        try:
            task = self.store.toggle_complete(task_id)
        except BlockedTransition as e:
            return CommandResult(success=False, error=str(e), data=e.blocking_tasks)
        except KeyError as e:
            return CommandResult(success=False, error=_error_text(e))

        self._commit_tasks()
        message = "Great job completing that task! 🎉" if task.completed else "Task reopened."
        return CommandResult(success=True, message=message, data=task)

    def delete_task(self, task_id: int, confirm: bool = False) -> CommandResult:
        try:
            removed_edges = self.store.delete(task_id, confirm=confirm)
        except CascadeConfirmationRequired as e:
            return CommandResult(
                success=False, error=str(e), data=e.dependents, needs_confirmation=True
            )
        except KeyError as e:
            return CommandResult(success=False, error=_error_text(e))

        self._commit_tasks()
        message = "Task deleted."
        if removed_edges:
            message = f"Task deleted. Removed {removed_edges} dependency link(s)."
        return CommandResult(success=True, message=message, data={"removed_edges": removed_edges})

    def edit_task(self, task_id: int, text: str) -> CommandResult:
        try:
            task = self.store.edit_text(task_id, text)
        except (TrackerError, KeyError) as e:
            return CommandResult(success=False, error=_error_text(e))

        self._commit_tasks()
        return CommandResult(success=True, message="Task updated! ✏️", data=task)

    def stats(self) -> CommandResult:
        tasks = self.store.tasks
        completed = sum(1 for t in tasks if t.completed)
        total = len(tasks)
        return CommandResult(
            success=True,
            data={
                "tasks_completed": completed,
                "total_tasks": total,
                "weeks_tracked": self.history.weeks_tracked,
                "completion_rate": round(completed / total * 100) if total else 0,
            },
        )

    # Goals

    def add_goal(self, title: str) -> CommandResult:
        try:
            goal = self.store.add_goal(title)
        except TrackerError as e:
            return CommandResult(success=False, error=str(e))

        self._commit_tasks()
        return CommandResult(success=True, message="Goal created! 🎯", data=goal)

    def delete_goal(self, goal_id: int, confirm: bool = False) -> CommandResult:
        try:
            unlinked = self.store.delete_goal(goal_id, confirm=confirm)
        except CascadeConfirmationRequired as e:
            return CommandResult(
                success=False, error=str(e), data=e.dependents, needs_confirmation=True
            )
        except KeyError as e:
            return CommandResult(success=False, error=_error_text(e))

        self._commit_tasks()
        return CommandResult(success=True, message="Goal deleted.", data={"unlinked_tasks": unlinked})

    # Graph

    def refresh_graph(self) -> CommandResult:
        """Reproject the task set and restart the layout from scratch."""
        self.projection = project(self.store.tasks, self.graph_settings)
        self.layout = ForceLayout(
            self.projection.nodes, self.projection.edges, self.layout_settings, rng=self.rng
        )
        return CommandResult(success=True, data=self.projection)

    def set_filters(
        self,
        show_completed: Optional[bool] = None,
        highlight_blocked: Optional[bool] = None,
    ) -> CommandResult:
        updates = {}
        if show_completed is not None:
            updates["show_completed"] = show_completed
        if highlight_blocked is not None:
            updates["highlight_blocked"] = highlight_blocked
        self.graph_settings = self.graph_settings.model_copy(update=updates)
        return self.refresh_graph()

    def settle_layout(self, max_ticks: int = 10_000) -> CommandResult:
        ticks = self.layout.run_until_settled(max_ticks)
        return CommandResult(success=True, data={"ticks": ticks})

    async def animate_layout(
        self, on_tick: Optional[Callable[[ForceLayout], Any]] = None
    ) -> CommandResult:
        """Run the layout frame by frame until it settles."""
        timer = SimulationTimer(self.layout, frame_interval=self.frame_interval, on_tick=on_tick)
        ticks = await timer.run()
        return CommandResult(success=True, data={"ticks": ticks})

    def drag_start(self, node_id: int) -> CommandResult:
        return self._drag(lambda: self.layout.drag_start(node_id))

    def drag_move(self, node_id: int, x: float, y: float) -> CommandResult:
        return self._drag(lambda: self.layout.drag_move(node_id, x, y))

    def drag_end(self, node_id: int) -> CommandResult:
        return self._drag(lambda: self.layout.drag_end(node_id))

    def _drag(self, action: Callable[[], None]) -> CommandResult:
        try:
            action()
        except KeyError as e:
            return CommandResult(success=False, error=_error_text(e))
        return CommandResult(success=True, data={"alpha": self.layout.alpha})

    def zoom_in(self) -> CommandResult:
        if self.viewport.zoom_in() is None:
            return CommandResult(success=False, error="Already at maximum zoom")
        return CommandResult(success=True, message=self.viewport.zoom_label, data=self.viewport.target)

    def zoom_out(self) -> CommandResult:
        if self.viewport.zoom_out() is None:
            return CommandResult(success=False, error="Already at minimum zoom")
        return CommandResult(success=True, message=self.viewport.zoom_label, data=self.viewport.target)

    def reset_view(self) -> CommandResult:
        self.viewport.reset_view()
        return CommandResult(success=True, message=self.viewport.zoom_label, data=self.viewport.target)

    # Weekly history

    def save_week(self) -> CommandResult:
        try:
            week = self.history.save_week(self.store.tasks, self.summary)
        except TrackerError as e:
            return CommandResult(success=False, error=str(e))

        self.repository.save_history(self.history.weeks)
        return CommandResult(success=True, message="Week saved! 🎉 Great progress this week!", data=week)

    def clear_week(self, confirm: bool = False) -> CommandResult:
        """Carry unfinished tasks into a new week and clear the summary draft."""
        if (self.store.tasks or self.summary.strip()) and not confirm:
            return CommandResult(
                success=False,
                error="This will clear your current tasks and summary. Are you sure?",
                needs_confirmation=True,
            )

        self.store.replace_all(rollover(self.store.tasks))
        self.summary = ""
        self.repository.clear_summary()
        self._commit_tasks()
        return CommandResult(
            success=True,
            message="Fresh start! Unfinished tasks carried over. Ready for another productive week! 💪",
            data=self.store.tasks,
        )

    def edit_week(self, week_id: int, summary: str) -> CommandResult:
        try:
            week = self.history.edit_week(week_id, summary)
        except KeyError as e:
            return CommandResult(success=False, error=_error_text(e))

        self.repository.save_history(self.history.weeks)
        return CommandResult(success=True, message="Week updated! ✏️", data=week)

    def delete_week(self, week_id: int) -> CommandResult:
        try:
            week = self.history.delete_week(week_id)
        except KeyError as e:
            return CommandResult(success=False, error=_error_text(e))

        self.repository.save_history(self.history.weeks)
        return CommandResult(success=True, message="Week deleted.", data=week)

    # Summary

    def set_summary(self, text: str) -> CommandResult:
        self.summary = text
        self.repository.save_summary(text)
        return CommandResult(success=True, data=text)

    @property
    def generator(self) -> SummaryGenerator:
        if self._generator is None:
            summary_config = self.config.get("summary", {})
            client = self._summary_client or create_client(summary_config)
            self._generator = SummaryGenerator(
                client, goal_context=summary_config.get("goal_context", DEFAULT_GOAL_CONTEXT)
            )
        return self._generator

    async def generate_summary(self) -> CommandResult:
        """Ask the generation service for a reflection and append it to the draft."""
        try:
            generator = self.generator
            new_summary = await generator.generate(self.store.tasks, self.summary)
        except ExternalServiceFailure as e:
            error = "Could not generate AI summary. "
            if e.reason == FailureReason.UNREACHABLE:
                error += str(e)
            else:
                error += "Check the log for details."
            return CommandResult(success=False, error=error, data=e.reason)
        except (TrackerError, ValueError) as e:
            return CommandResult(success=False, error=str(e))

        self.summary = new_summary
        self.repository.save_summary(new_summary)
        return CommandResult(success=True, message="AI summary generated! 🤖✨", data=new_summary)

    def _commit_tasks(self) -> None:
        """Persist the full snapshot and rebuild the graph."""
        self.repository.save_tasks(self.store.tasks)
        self.repository.save_goals(self.store.goals)
        self.refresh_graph()

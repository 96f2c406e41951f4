"""Rich rendering for the tracker CLI."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from taskgraph.app import CommandResult
from taskgraph.graph.layout import ForceLayout
from taskgraph.graph.projector import Projection
from taskgraph.graph.viewport import Viewport
from taskgraph.tasks.models import Task, TaskPriority, WeekRecord
from taskgraph.tasks.resolver import blocking_tasks

logger = logging.getLogger(__name__)

PRIORITY_STYLE = {
    TaskPriority.HIGH: ("🔴", "red"),
    TaskPriority.MEDIUM: ("🟡", "yellow"),
    TaskPriority.LOW: ("🟢", "green"),
}


def _truncate(text: str, limit: int) -> str:
    return escape(text if len(text) <= limit else text[:limit] + "...")


class DisplayManager:
    """
    Renders command results and tracker state.

    Covers:
    - Command feedback (celebrations, errors, blocking tasks)
    - Task list with priority and blocked markers
    - Dependency graph nodes, edges and viewport
    - Weekly history and statistics
    """

    def __init__(self, console: Console | None = None, spinner_enabled: bool = True):
        """
        Initialize display manager.

        Args:
            console: Rich Console instance (creates new if None)
            spinner_enabled: Show a spinner while waiting on the summary service
        """
        self.console = console or Console()
        self.spinner_enabled = spinner_enabled

    def show_result(self, result: CommandResult) -> None:
        """Print a command's celebration message or error."""
        if result.success:
            if result.message:
                self.console.print(f"[green]{escape(result.message)}[/green]")
            return

        self.console.print(f"[red]{escape(result.error or '')}[/red]")
        if isinstance(result.data, list) and result.data and isinstance(result.data[0], Task):
            for task in result.data:
                self.console.print(f"  [dim]• {escape(task.text)} ({task.id})[/dim]")

    def show_tasks(self, tasks: list[Task], all_tasks: list[Task]) -> None:
        if not tasks:
            self.console.print("[dim]No tasks yet. Add your first task! 💪[/dim]")
            return

        by_id = {t.id: t for t in all_tasks}
        table = Table(title="Tasks", show_lines=False)
        table.add_column("ID", style="dim")
        table.add_column("", width=2)
        table.add_column("Task")
        table.add_column("Priority")
        table.add_column("Dependencies")

        for task in tasks:
            emoji, color = PRIORITY_STYLE[task.priority]
            blockers = blocking_tasks(task, all_tasks)
            mark = "✓" if task.completed else ("🚫" if blockers else "○")

            deps = [by_id[d] for d in task.depends_on if d in by_id]
            if len(deps) == 1:
                dep_text = f'⏳ Waiting for: "{_truncate(deps[0].text, 30)}"'
            elif deps:
                dep_text = f"⏳ Waiting for {len(deps)} tasks"
            else:
                dep_text = ""
            if blockers:
                dep_text += " [yellow](Blocked)[/yellow]"

            text_style = "strike dim" if task.completed else ""
            table.add_row(
                str(task.id),
                mark,
                Text(task.text, style=text_style),
                f"[{color}]{emoji} {task.priority.value.capitalize()}[/{color}]",
                dep_text,
            )

        self.console.print(table)

    def show_graph(self, projection: Projection, layout: ForceLayout, viewport: Viewport) -> None:
        """Print node positions (in screen space) and edges."""
        if projection.is_empty:
            self.console.print("[dim]No tasks to display[/dim]")
            return

        transform = viewport.transform
        emphasized_nodes = {n.id for n in projection.emphasized_nodes()}
        emphasized_edges = set(projection.emphasized_edges())

        nodes = Table(title=f"Dependency graph (zoom {viewport.zoom_label})")
        nodes.add_column("ID", style="dim")
        nodes.add_column("Task")
        nodes.add_column("Status")
        nodes.add_column("x", justify="right")
        nodes.add_column("y", justify="right")
        for node in layout.nodes:
            sx, sy = transform.apply((node.x, node.y))
            emoji, _ = PRIORITY_STYLE[node.priority]
            status = node.status
            if node.id in emphasized_nodes:
                status = f"[red]{status}[/red]"
            elif node.completed:
                status = f"[green]{status}[/green]"
            nodes.add_row(
                str(node.id), f"{emoji} {_truncate(node.text, 30)}", status, f"{sx:.1f}", f"{sy:.1f}"
            )
        self.console.print(nodes)

        if projection.edges:
            by_id = {n.id: n for n in projection.nodes}
            lines = []
            for edge in projection.edges:
                arrow = f"{_truncate(by_id[edge.source].text, 20)} → {_truncate(by_id[edge.target].text, 20)}"
                if edge in emphasized_edges:
                    lines.append(f"[red bold]{arrow}  (blocking)[/red bold]")
                else:
                    lines.append(arrow)
            self.console.print(Panel("\n".join(lines), title="Edges", border_style="dim"))

    def show_stats(self, stats: dict) -> None:
        table = Table(show_header=False, box=None)
        table.add_row("Tasks completed", str(stats["tasks_completed"]))
        table.add_row("Total tasks", str(stats["total_tasks"]))
        table.add_row("Weeks tracked", str(stats["weeks_tracked"]))
        table.add_row("Completion rate", f"{stats['completion_rate']}%")
        self.console.print(Panel(table, title="This week", border_style="cyan"))

    def show_history(self, weeks: list[WeekRecord]) -> None:
        if not weeks:
            self.console.print("[dim]No history yet. Complete your first week to see your progress! 📈[/dim]")
            return

        for week in weeks:
            stats = f"Completed {week.completed_count} of {week.total_count} tasks"
            if week.total_count:
                stats += f" ({week.completion_rate}%)"
            body = stats
            if week.summary:
                body += f'\n\n[italic]"{escape(week.summary)}"[/italic]'
            title = f"Week of {week.week_of.strftime('%b %d, %Y')}  [dim]({week.id})[/dim]"
            self.console.print(Panel(body, title=title, border_style="blue"))

    def show_summary(self, summary: str) -> None:
        if not summary.strip():
            self.console.print("[dim]No summary yet.[/dim]")
            return
        self.console.print(Panel(Text(summary), title="Weekly summary", border_style="magenta"))

    @asynccontextmanager
    async def activity(self, message: str) -> AsyncIterator[None]:
        """
        Show a transient spinner while awaiting a slow operation.

        Usage:
            async with display.activity("Generating..."):
                result = await app.generate_summary()
        """
        if not self.spinner_enabled:
            yield
            return

        live = Live(
            Spinner("dots", text=f" {message}", style="cyan"),
            console=self.console,
            refresh_per_second=10,
            transient=True,
        )
        try:
            live.start()
            yield
        finally:
            live.stop()

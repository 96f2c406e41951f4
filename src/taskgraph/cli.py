"""CLI interface for the tracker."""

import asyncio
import shlex
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.prompt import Confirm
from rich.text import Text

from taskgraph import __version__
from taskgraph.app import CommandResult, TrackerApp
from taskgraph.config import load_config, setup_logging
from taskgraph.display import DisplayManager
from taskgraph.tasks.models import TaskPriority

# Load environment variables from .env file
load_dotenv()

console = Console()


def _get_app(ctx: click.Context) -> TrackerApp:
    """Build the tracker on first use and reuse it for the rest of the session."""
    obj = ctx.find_root().obj
    if "app" not in obj:
        config = load_config(obj.get("config_path"))
        if obj.get("data_dir"):
            config.setdefault("storage", {})["data_dir"] = str(obj["data_dir"])
        setup_logging(config)
        obj["config"] = config
        obj["app"] = TrackerApp(config)
        obj["display"] = DisplayManager(
            console, spinner_enabled=config.get("cli", {}).get("show_spinner", True)
        )
    return obj["app"]


def _get_display(ctx: click.Context) -> DisplayManager:
    _get_app(ctx)
    return ctx.find_root().obj["display"]


def _confirmed(result: CommandResult, assume_yes: bool) -> bool:
    """Ask before a cascading change; True means re-run with confirmation."""
    if not result.needs_confirmation:
        return False
    if assume_yes:
        return True
    return Confirm.ask(Text(result.error or "Are you sure?"), console=console)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding tracker data (overrides config)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, data_dir: Path | None) -> None:
    """taskgraph - weekly task tracker with a dependency graph."""
    ctx.ensure_object(dict)
    # The shell re-enters this group with the live app already in place
    if "app" not in ctx.obj:
        ctx.obj["config_path"] = config_path
        ctx.obj["data_dir"] = data_dir


@cli.command()
@click.argument("text")
@click.option(
    "--priority",
    "-p",
    type=click.Choice([p.value for p in TaskPriority], case_sensitive=False),
    default=TaskPriority.MEDIUM.value,
    help="Task priority",
)
@click.option("--depends-on", "-d", type=int, multiple=True, help="Id of a task that blocks this one")
@click.option("--goal", "goal_id", type=int, help="Goal to link the task to")
@click.pass_context
def add(ctx: click.Context, text: str, priority: str, depends_on: tuple[int, ...], goal_id: int | None) -> None:
    """Add a task."""
    app = _get_app(ctx)
    result = app.add_task(text, priority.lower(), depends_on, goal_id)
    _get_display(ctx).show_result(result)
    if result.success:
        console.print(f"[dim]id: {result.data.id}[/dim]")


@cli.command("list")
@click.pass_context
def list_tasks(ctx: click.Context) -> None:
    """List tasks, high priority first."""
    app = _get_app(ctx)
    _get_display(ctx).show_tasks(app.store.sorted_tasks(), app.store.tasks)


@cli.command()
@click.argument("task_id", type=int)
@click.pass_context
def done(ctx: click.Context, task_id: int) -> None:
    """Toggle a task's completion."""
    app = _get_app(ctx)
    _get_display(ctx).show_result(app.toggle_task(task_id))


@cli.command()
@click.argument("task_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete(ctx: click.Context, task_id: int, yes: bool) -> None:
    """Delete a task, unlinking tasks that depend on it."""
    app = _get_app(ctx)
    display = _get_display(ctx)

    task = app.store.get(task_id)
    if task is None:
        display.show_result(app.delete_task(task_id))
        return

    if app.store.dependents_of(task_id):
        # Dry run: reports the dependents without deleting anything
        if not _confirmed(app.delete_task(task_id), yes):
            console.print("[yellow]Cancelled[/yellow]")
            return
    elif not yes and not Confirm.ask(Text(f'Delete "{task.text}"?'), console=console):
        console.print("[yellow]Cancelled[/yellow]")
        return

    display.show_result(app.delete_task(task_id, confirm=True))


@cli.command()
@click.argument("task_id", type=int)
@click.argument("text")
@click.pass_context
def edit(ctx: click.Context, task_id: int, text: str) -> None:
    """Change a task's text."""
    app = _get_app(ctx)
    _get_display(ctx).show_result(app.edit_task(task_id, text))


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show this week's statistics."""
    app = _get_app(ctx)
    _get_display(ctx).show_stats(app.stats().data)


@cli.command()
@click.option("--show-completed/--hide-completed", default=None, help="Include completed tasks")
@click.option("--highlight-blocked/--no-highlight-blocked", default=None, help="Emphasize blocking edges")
@click.option("--animate", is_flag=True, help="Show the layout settling frame by frame")
@click.pass_context
def graph(ctx: click.Context, show_completed: bool | None, highlight_blocked: bool | None, animate: bool) -> None:
    """Lay out and print the dependency graph."""
    app = _get_app(ctx)
    if show_completed is not None or highlight_blocked is not None:
        app.set_filters(show_completed=show_completed, highlight_blocked=highlight_blocked)

    if animate and not app.layout.settled:
        with Live(console=console, transient=True) as live:

            def on_tick(layout) -> None:
                live.update(f"[cyan]tick {layout.tick_count}  alpha {layout.alpha:.3f}[/cyan]")

            result = asyncio.run(app.animate_layout(on_tick))
    else:
        result = app.settle_layout()

    app.viewport.finish()
    console.print(f"[dim]Settled after {result.data['ticks']} ticks[/dim]")
    _get_display(ctx).show_graph(app.projection, app.layout, app.viewport)


@cli.group()
def view() -> None:
    """Zoom, pan and drag the graph view (most useful inside the shell)."""
    pass


@view.command("zoom-in")
@click.pass_context
def view_zoom_in(ctx: click.Context) -> None:
    app = _get_app(ctx)
    result = app.zoom_in()
    app.viewport.finish()
    _get_display(ctx).show_result(result)


@view.command("zoom-out")
@click.pass_context
def view_zoom_out(ctx: click.Context) -> None:
    app = _get_app(ctx)
    result = app.zoom_out()
    app.viewport.finish()
    _get_display(ctx).show_result(result)


@view.command("reset")
@click.pass_context
def view_reset(ctx: click.Context) -> None:
    app = _get_app(ctx)
    result = app.reset_view()
    app.viewport.finish()
    _get_display(ctx).show_result(result)


@view.command("pan")
@click.argument("dx", type=float)
@click.argument("dy", type=float)
@click.pass_context
def view_pan(ctx: click.Context, dx: float, dy: float) -> None:
    app = _get_app(ctx)
    t = app.viewport.pan(dx, dy)
    console.print(f"[dim]translate ({t.x:.1f}, {t.y:.1f}) zoom {app.viewport.zoom_label}[/dim]")


@view.command("drag")
@click.argument("task_id", type=int)
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.pass_context
def view_drag(ctx: click.Context, task_id: int, x: float, y: float) -> None:
    """Drag a node to (x, y) in graph space and let its neighbors relax."""
    app = _get_app(ctx)
    display = _get_display(ctx)

    result = app.drag_start(task_id)
    if not result.success:
        display.show_result(result)
        return
    app.drag_move(task_id, x, y)
    # Hold the pin long enough for neighbors to react
    app.layout.tick(30)
    app.drag_end(task_id)
    app.settle_layout()
    display.show_graph(app.projection, app.layout, app.viewport)


@cli.group()
def week() -> None:
    """Weekly history."""
    pass


@week.command("save")
@click.pass_context
def week_save(ctx: click.Context) -> None:
    """Snapshot this week's tasks and summary."""
    app = _get_app(ctx)
    _get_display(ctx).show_result(app.save_week())


@week.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def week_clear(ctx: click.Context, yes: bool) -> None:
    """Start a new week, carrying over unfinished tasks."""
    app = _get_app(ctx)
    result = app.clear_week()
    if result.needs_confirmation:
        if not _confirmed(result, yes):
            console.print("[yellow]Cancelled[/yellow]")
            return
        result = app.clear_week(confirm=True)
    _get_display(ctx).show_result(result)


@week.command("list")
@click.pass_context
def week_list(ctx: click.Context) -> None:
    app = _get_app(ctx)
    _get_display(ctx).show_history(app.history.weeks)


@week.command("edit")
@click.argument("week_id", type=int)
@click.argument("summary")
@click.pass_context
def week_edit(ctx: click.Context, week_id: int, summary: str) -> None:
    app = _get_app(ctx)
    _get_display(ctx).show_result(app.edit_week(week_id, summary))


@week.command("delete")
@click.argument("week_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def week_delete(ctx: click.Context, week_id: int, yes: bool) -> None:
    app = _get_app(ctx)
    if not yes and not Confirm.ask(
        "Are you sure you want to delete this week? This cannot be undone.", console=console
    ):
        console.print("[yellow]Cancelled[/yellow]")
        return
    _get_display(ctx).show_result(app.delete_week(week_id))


@cli.group()
def summary() -> None:
    """Weekly summary draft."""
    pass


@summary.command("show")
@click.pass_context
def summary_show(ctx: click.Context) -> None:
    app = _get_app(ctx)
    _get_display(ctx).show_summary(app.summary)


@summary.command("set")
@click.argument("text")
@click.pass_context
def summary_set(ctx: click.Context, text: str) -> None:
    app = _get_app(ctx)
    _get_display(ctx).show_result(app.set_summary(text))


@summary.command("generate")
@click.pass_context
def summary_generate(ctx: click.Context) -> None:
    """Append an AI reflection on completed tasks."""
    app = _get_app(ctx)
    display = _get_display(ctx)

    async def _generate() -> CommandResult:
        async with display.activity("Generating..."):
            return await app.generate_summary()

    result = asyncio.run(_generate())
    display.show_result(result)
    if result.success:
        display.show_summary(app.summary)


@cli.group()
def goal() -> None:
    """Goals that tasks can be linked to."""
    pass


@goal.command("add")
@click.argument("title")
@click.pass_context
def goal_add(ctx: click.Context, title: str) -> None:
    app = _get_app(ctx)
    result = app.add_goal(title)
    _get_display(ctx).show_result(result)
    if result.success:
        console.print(f"[dim]id: {result.data.id}[/dim]")


@goal.command("list")
@click.pass_context
def goal_list(ctx: click.Context) -> None:
    app = _get_app(ctx)
    if not app.store.goals:
        console.print("[dim]No goals yet.[/dim]")
        return
    for g in app.store.goals:
        completed, total = app.store.goal_progress(g.id)
        console.print(f"[bold]{escape(g.title)}[/bold] [dim]({g.id})[/dim]  {completed}/{total} tasks done")


@goal.command("delete")
@click.argument("goal_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def goal_delete(ctx: click.Context, goal_id: int, yes: bool) -> None:
    app = _get_app(ctx)
    result = app.delete_goal(goal_id)
    if result.needs_confirmation:
        if not _confirmed(result, yes):
            console.print("[yellow]Cancelled[/yellow]")
            return
        result = app.delete_goal(goal_id, confirm=True)
    _get_display(ctx).show_result(result)


@cli.command()
@click.pass_context
def shell(ctx: click.Context) -> None:
    """Interactive session keeping graph and view state between commands."""
    _get_app(ctx)
    history_file = ctx.obj["config"].get("cli", {}).get("history_file", "./.taskgraph/history")
    Path(history_file).parent.mkdir(parents=True, exist_ok=True)
    session: PromptSession[str] = PromptSession(history=FileHistory(history_file))

    console.print("[cyan]taskgraph shell[/cyan] [dim](type 'help' for commands, 'exit' to quit)[/dim]")
    while True:
        try:
            line = session.prompt("taskgraph> ")
        except KeyboardInterrupt:
            continue
        except EOFError:
            break

        if not line.strip():
            continue
        if line.strip().lower() in ["exit", "quit"]:
            break
        if line.strip().lower() == "help":
            line = "--help"

        try:
            args = shlex.split(line)
        except ValueError as e:
            console.print(f"[red]Could not parse command:[/red] {e}")
            continue

        if args and args[0] == "shell":
            console.print("[yellow]Already in the shell[/yellow]")
            continue

        try:
            cli.main(args=args, prog_name="taskgraph", standalone_mode=False, obj=ctx.obj)
        except click.ClickException as e:
            e.show()
        except click.exceptions.Abort:
            console.print("[yellow]Cancelled[/yellow]")


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Typer CLI for weekload."""

from __future__ import annotations

import logging
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from weekload.errors import CapacityBlockedError, WeekloadError
from weekload.gatekeeper import CommitOutcome, CommitState
from weekload.overload import OverloadStatus, format_minutes
from weekload.persistence import Store
from weekload.service import WeekEngine

app = typer.Typer(
    name="weekload",
    help="Weekly capacity and commitment tracking for the command line.",
    no_args_is_help=True,
)
console = Console()

COLOR_STYLES = {"green": "green", "yellow": "yellow", "red": "bold red"}


def _get_engine() -> WeekEngine:
    return WeekEngine(Store())


def _fail(e: WeekloadError) -> None:
    console.print(f"[red]{e.message}[/red]")
    raise typer.Exit(1)


def _print_status(status: OverloadStatus) -> None:
    style = COLOR_STYLES[status.color]
    console.print(
        f"  Committed: [bold]{format_minutes(status.committed_minutes)}[/bold]"
        f" of {format_minutes(status.usable_minutes)} usable"
        f"  [{style}]{status.percentage}%[/{style}]"
    )
    if status.is_overloaded:
        console.print(f"  [bold red]Overloaded by {format_minutes(status.excess_minutes)}[/bold red]")


def _print_outcome(outcome: CommitOutcome, label: str) -> None:
    if not outcome.changed:
        console.print(f"{label} is already committed.")
    elif outcome.state == CommitState.ACCEPTED_WITH_WARNING:
        console.print(f"[yellow]Committed {label} anyway. {outcome.message}[/yellow]")
    else:
        console.print(f"[green]Committed {label}.[/green]")
    _print_status(outcome.status)


def _print_blocked(e: CapacityBlockedError) -> None:
    console.print(f"[red]Blocked: {e.message}[/red]")
    _print_status(e.overload)
    console.print("[dim]Retry with --force, or run 'weekload plan' to see what to drop.[/dim]")
    raise typer.Exit(2)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log engine activity")] = False,
) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@app.command()
def init(
    weekly_minutes: Annotated[int, typer.Option(help="Focus minutes available per week")] = 2400,
    buffer: Annotated[float, typer.Option(help="Percentage of the week kept as slack")] = 20,
) -> None:
    """Initialize (or reinitialize) the capacity configuration."""
    try:
        config = _get_engine().set_config({"weekly_minutes": weekly_minutes, "buffer_percentage": buffer})
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Initialized: {format_minutes(config.usable_minutes)} usable per week.[/green]")


@app.command()
def config(
    weekly_minutes: Annotated[Optional[int], typer.Option(help="Focus minutes available per week")] = None,
    buffer: Annotated[Optional[float], typer.Option(help="Percentage of the week kept as slack")] = None,
) -> None:
    """Show the capacity config, or update the fields given."""
    engine = _get_engine()
    try:
        if weekly_minutes is None and buffer is None:
            cfg = engine.get_config()
        else:
            cfg = engine.set_config({"weekly_minutes": weekly_minutes, "buffer_percentage": buffer})
    except WeekloadError as e:
        _fail(e)
    console.print(f"  Weekly minutes: {cfg.weekly_minutes}")
    console.print(f"  Buffer:         {cfg.buffer_percentage:g}%")
    console.print(f"  Usable:         {cfg.usable_minutes:g} min ({format_minutes(cfg.usable_minutes)})")


# ---------------------------------------------------------------------------
# Tasks, projects, milestones
# ---------------------------------------------------------------------------


@app.command("add-task")
def add_task(
    title: str,
    minutes: Annotated[int, typer.Option("--minutes", "-m", help="Time estimate in minutes")] = 60,
    priority: Annotated[str, typer.Option("--priority", "-p", help="low, normal or high")] = "normal",
) -> None:
    """Add a simple task."""
    try:
        t = _get_engine().add_task(title, minutes, priority)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Added '{title}' as {t.id}[/green]")


@app.command("add-project")
def add_project(
    title: str,
    parent: Annotated[Optional[str], typer.Option(help="Parent project ID")] = None,
) -> None:
    """Add a project."""
    try:
        p = _get_engine().add_project(title, parent_id=parent)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Added project '{title}' as {p.id}[/green]")


@app.command("add-milestone")
def add_milestone(
    project_id: str,
    title: str,
    minutes: Annotated[int, typer.Option("--minutes", "-m", help="Time estimate in minutes")] = 45,
) -> None:
    """Add a milestone to a project."""
    try:
        m = _get_engine().add_milestone(project_id, title, minutes)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Added milestone '{title}' to {project_id} as {m.id}[/green]")


@app.command()
def estimate(
    target_id: Annotated[str, typer.Argument(help="Task ID, or milestone ID with --project")],
    minutes: int,
    project: Annotated[Optional[str], typer.Option("--project", "-P", help="Project ID owning the milestone")] = None,
) -> None:
    """Change a task's or milestone's time estimate."""
    engine = _get_engine()
    try:
        if project:
            engine.set_milestone_estimate(project, target_id, minutes)
        else:
            engine.set_task_estimate(target_id, minutes)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]{target_id} now estimated at {minutes} min.[/green]")


@app.command()
def done(
    target_id: Annotated[str, typer.Argument(help="Task ID, or milestone ID with --project")],
    project: Annotated[Optional[str], typer.Option("--project", "-P", help="Project ID owning the milestone")] = None,
) -> None:
    """Mark a task or milestone as done."""
    engine = _get_engine()
    try:
        if project:
            engine.complete_milestone(project, target_id)
        else:
            engine.complete_task(target_id)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Completed {target_id}.[/green]")


@app.command()
def archive(project_id: str) -> None:
    """Archive a project; its milestones stop counting toward the week."""
    try:
        _get_engine().set_project_status(project_id, "archived")
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Archived {project_id}.[/green]")


@app.command()
def delete(task_id: str) -> None:
    """Delete a simple task."""
    try:
        _get_engine().delete_task(task_id)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Deleted {task_id}.[/green]")


@app.command("delete-project")
def delete_project(project_id: str) -> None:
    """Delete a project and release its committed milestones."""
    try:
        released = _get_engine().delete_project(project_id)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Deleted {project_id}.[/green]")
    if released:
        console.print(f"[dim]Released milestones: {', '.join(released)}[/dim]")


@app.command()
def reparent(
    project_id: str,
    parent: Annotated[Optional[str], typer.Argument(help="New parent project ID (omit to make it a root)")] = None,
) -> None:
    """Move a project under another project."""
    try:
        _get_engine().reparent_project(project_id, parent)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Moved {project_id} under {parent or 'the top level'}.[/green]")


@app.command("list")
def list_items() -> None:
    """List tasks and projects with their commitment state."""
    engine = _get_engine()
    tasks = engine.list_tasks()
    try:
        projects = engine.project_tree()
    except WeekloadError as e:
        _fail(e)
    if not tasks and not projects:
        console.print("Nothing here yet.")
        return

    table = Table(title="Tasks")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Minutes")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("This week")
    for t in tasks:
        table.add_row(
            t.id,
            t.title,
            str(t.time_estimate),
            t.status.value,
            t.priority.value,
            "yes" if t.this_week else "",
            style="dim" if t.completed else None,
        )
    console.print(table)

    for p, depth in projects:
        indent = "    " * depth
        console.print(f"\n{indent}[bold]{p.id}[/bold]  {p.title}  [dim]{p.status.value}[/dim]")
        for m in p.milestones:
            mark = "x" if m.completed else " "
            committed = "  [cyan]committed[/cyan]" if m.id in p.committed_milestones else ""
            console.print(f"{indent}  \\[{mark}] {m.id} {m.title} ({m.time_estimate} min){committed}")


# ---------------------------------------------------------------------------
# Commitments
# ---------------------------------------------------------------------------


@app.command()
def commit(
    task_id: str,
    force: Annotated[bool, typer.Option("--force", "-f", help="Commit even if the week overloads")] = False,
) -> None:
    """Commit a simple task to this week."""
    try:
        outcome = _get_engine().commit_task(task_id, force=force)
    except CapacityBlockedError as e:
        _print_blocked(e)
    except WeekloadError as e:
        _fail(e)
    _print_outcome(outcome, task_id)


@app.command("commit-milestone")
def commit_milestone(
    project_id: str,
    milestone_id: str,
    force: Annotated[bool, typer.Option("--force", "-f", help="Commit even if the week overloads")] = False,
) -> None:
    """Commit a project milestone to this week."""
    try:
        outcome = _get_engine().commit_milestone(project_id, milestone_id, force=force)
    except CapacityBlockedError as e:
        _print_blocked(e)
    except WeekloadError as e:
        _fail(e)
    _print_outcome(outcome, milestone_id)


@app.command()
def check(
    target_id: Annotated[str, typer.Argument(help="Task ID, or milestone ID with --project")],
    project: Annotated[Optional[str], typer.Option("--project", "-P", help="Project ID owning the milestone")] = None,
) -> None:
    """Show whether a commit would fit this week, without committing."""
    engine = _get_engine()
    try:
        if project:
            outcome = engine.validate_commit_milestone(project, target_id)
        else:
            outcome = engine.validate_commit_task(target_id)
    except WeekloadError as e:
        _fail(e)
    if not outcome.changed:
        console.print(f"{target_id} is already committed.")
    elif outcome.state == CommitState.BLOCKED:
        console.print(f"[red]{outcome.message}[/red]")
    else:
        console.print(f"[green]{target_id} fits this week.[/green]")
    _print_status(outcome.status)


@app.command()
def uncommit(task_id: str) -> None:
    """Take a simple task off this week."""
    try:
        status = _get_engine().uncommit_task(task_id)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Uncommitted {task_id}.[/green]")
    _print_status(status)


@app.command("uncommit-milestone")
def uncommit_milestone(project_id: str, milestone_id: str) -> None:
    """Take a milestone off this week."""
    try:
        status = _get_engine().uncommit_milestone(project_id, milestone_id)
    except WeekloadError as e:
        _fail(e)
    console.print(f"[green]Uncommitted {milestone_id}.[/green]")
    _print_status(status)


@app.command()
def status() -> None:
    """Week load against capacity."""
    week = _get_engine().week_status()
    console.print(f"\n[bold underline]Week {week.week_id}[/bold underline]\n")
    _print_status(week.status)
    console.print(f"  Units: {week.task_count} task(s), {week.milestone_count} milestone(s)")

    bar_width = 30
    filled = min(bar_width, int(bar_width * week.status.percentage / 100))
    style = COLOR_STYLES[week.status.color]
    console.print(f"  [{style}]{'#' * filled}[/{style}][dim]{'.' * (bar_width - filled)}[/dim]")
    console.print()


def _print_plan_table(suggestions, title: str) -> None:
    table = Table(title=title)
    table.add_column("#")
    table.add_column("Action")
    table.add_column("Kind")
    table.add_column("ID")
    table.add_column("Project")
    table.add_column("Frees")
    for i, s in enumerate(suggestions, 1):
        table.add_row(
            str(i),
            s.action.value,
            s.target_kind.value,
            s.target_id,
            s.parent_project_id or "-",
            format_minutes(s.minutes_freed),
        )
    console.print(table)


@app.command()
def plan() -> None:
    """Preview which commitments to drop to fit the week."""
    p = _get_engine().preview_redistribution()
    console.print(p.message)
    if not p.suggestions:
        return
    _print_plan_table(p.suggestions, "Suggested changes")
    if p.partial:
        console.print("[yellow]Even dropping everything would not close the gap.[/yellow]")
    console.print("[dim]Run 'weekload redistribute' to apply.[/dim]")


@app.command()
def redistribute() -> None:
    """Apply a fresh redistribution plan."""
    result = _get_engine().execute_redistribution()
    if result.report.applied:
        _print_plan_table(result.report.applied, "Applied changes")
    if result.report.skipped:
        console.print(f"[yellow]Skipped {len(result.report.skipped)} change(s): {result.report.failure}[/yellow]")
    style = "yellow" if result.after.is_overloaded else "green"
    console.print(f"[{style}]{result.message}[/{style}]")
    _print_status(result.after)


if __name__ == "__main__":
    app()
